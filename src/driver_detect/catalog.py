#!/usr/bin/env python3
"""
driver-detect - Device catalogs

Enumerate PCI devices and hand them out filtered by DeviceType mask,
in discovery order. Three backends are available:

- StaticDeviceCatalog: a fixed list (tests, saved JSON dumps)
- SysfsDeviceCatalog: walks /sys/bus/pci/devices
- UdevDeviceCatalog: asks udev through pyudev
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, runtime_checkable

import pyudev

from common.decorators import handle_errors
from common.exceptions import CatalogError

from .device import DeviceAttribute, DeviceType, PCIDevice

logger = logging.getLogger(__name__)

# Fallback vendor names when pci.ids is not installed
KNOWN_VENDORS = {
    0x10DE: "NVIDIA Corporation",
    0x1002: "Advanced Micro Devices, Inc. [AMD/ATI]",
    0x8086: "Intel Corporation",
    0x1022: "Advanced Micro Devices, Inc. [AMD]",
}


@runtime_checkable
class DeviceCatalog(Protocol):
    """Anything that can enumerate devices for a DeviceType mask."""

    def get_devices(self, mask: DeviceType) -> List[PCIDevice]:
        ...


def filter_devices(devices: Iterable[PCIDevice], mask: DeviceType) -> List[PCIDevice]:
    """Keep the devices carrying every bit of mask, preserving order."""
    return [device for device in devices if device.has_type(mask)]


class StaticDeviceCatalog:
    """Catalog over a fixed, already discovered list of devices."""

    def __init__(self, devices: Optional[Iterable[PCIDevice]] = None):
        self._devices: List[PCIDevice] = list(devices or [])

    @classmethod
    def from_json(cls, path: Path) -> "StaticDeviceCatalog":
        """Load a device dump written by `driver-detect devices --json`."""
        try:
            with open(path, "r") as f:
                data = json.load(f)
            devices = [PCIDevice.from_dict(entry) for entry in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise CatalogError("json", f"cannot load {path}", cause=e)

        logger.debug(f"Loaded {len(devices)} devices from {path}")
        return cls(devices)

    def get_devices(self, mask: DeviceType) -> List[PCIDevice]:
        return filter_devices(self._devices, mask)


class SysfsDeviceCatalog:
    """Enumerates PCI devices straight from sysfs."""

    PCI_DEVICE_PATH = Path("/sys/bus/pci/devices")
    PCI_IDS_PATHS = (
        Path("/usr/share/hwdata/pci.ids"),
        Path("/usr/share/misc/pci.ids"),
    )

    def __init__(self, root: Optional[Path] = None, pci_ids: Optional[Path] = None):
        self.root = Path(root) if root else self.PCI_DEVICE_PATH
        self._devices: List[PCIDevice] = []
        self._vendors: Dict[int, str] = dict(KNOWN_VENDORS)
        self._models: Dict[tuple, str] = {}

        if pci_ids is None:
            pci_ids = next((p for p in self.PCI_IDS_PATHS if p.exists()), None)
        if pci_ids is not None and Path(pci_ids).exists():
            self._load_pci_ids(Path(pci_ids))

    @handle_errors(OSError, log_level=logging.WARNING, message="Cannot read pci.ids")
    def _load_pci_ids(self, path: Path) -> None:
        """Parse pci.ids file for vendor/device names."""
        current_vendor = None

        with open(path, "r", errors="ignore") as f:
            for line in f:
                if line.startswith("#") or not line.strip():
                    continue

                # Vendor line (no leading whitespace)
                if not line.startswith("\t") and not line.startswith(" "):
                    # Class section starts with "C xx"; no vendors after it
                    if line.startswith("C "):
                        break
                    parts = line.strip().split(None, 1)
                    if len(parts) < 2:
                        continue
                    try:
                        current_vendor = int(parts[0], 16)
                    except ValueError:
                        current_vendor = None
                        continue
                    self._vendors[current_vendor] = parts[1].strip()

                # Device line (single tab)
                elif line.startswith("\t") and not line.startswith("\t\t"):
                    if current_vendor is None:
                        continue
                    parts = line.strip().split(None, 1)
                    if len(parts) < 2:
                        continue
                    try:
                        device_id = int(parts[0], 16)
                    except ValueError:
                        continue
                    self._models[(current_vendor, device_id)] = parts[1].strip()

    def scan(self) -> List[PCIDevice]:
        """Scan all PCI devices, in PCI address order."""
        self._devices = []

        if not self.root.exists():
            logger.warning(f"PCI device path not found: {self.root}")
            return self._devices

        for device_path in sorted(self.root.iterdir(), key=lambda p: p.name):
            if not (device_path / "class").exists():
                continue

            device = self._parse_device(device_path)
            if device:
                self._devices.append(device)

        logger.debug(f"Discovered {len(self._devices)} PCI devices under {self.root}")
        return self._devices

    def get_devices(self, mask: DeviceType) -> List[PCIDevice]:
        return filter_devices(self.scan(), mask)

    @handle_errors(OSError, ValueError, log_level=logging.WARNING,
                   message="Failed to parse PCI device")
    def _parse_device(self, device_path: Path) -> Optional[PCIDevice]:
        """Parse a single PCI device."""
        device_class = int(self._read_sysfs(device_path / "class"), 16)
        vendor_id = int(self._read_sysfs(device_path / "vendor"), 16)
        device_id = int(self._read_sysfs(device_path / "device"), 16)

        attributes = DeviceAttribute.NONE
        boot_vga_path = device_path / "boot_vga"
        if boot_vga_path.exists() and self._read_sysfs(boot_vga_path) == "1":
            attributes |= DeviceAttribute.BOOT_VGA

        return PCIDevice(
            pci_address=device_path.name,
            vendor_id=vendor_id,
            device_id=device_id,
            vendor_name=self._lookup_vendor(vendor_id),
            device_name=self._lookup_device(vendor_id, device_id),
            device_class=device_class,
            modalias=self._read_sysfs(device_path / "modalias"),
            driver=self._get_driver(device_path),
            attributes=attributes,
        )

    def _read_sysfs(self, path: Path) -> str:
        """Read a sysfs file, empty string when it is missing."""
        try:
            return path.read_text().strip()
        except FileNotFoundError:
            return ""

    def _get_driver(self, device_path: Path) -> Optional[str]:
        """Get the current driver for a device."""
        driver_path = device_path / "driver"
        if driver_path.is_symlink():
            return os.path.basename(os.readlink(driver_path))
        return None

    def _lookup_vendor(self, vendor_id: int) -> str:
        return self._vendors.get(vendor_id, f"Unknown ({vendor_id:04x})")

    def _lookup_device(self, vendor_id: int, device_id: int) -> str:
        return self._models.get((vendor_id, device_id), f"Device {device_id:04x}")


class UdevDeviceCatalog:
    """Enumerates PCI devices through libudev."""

    def __init__(self, context: Optional[pyudev.Context] = None):
        if context is None:
            try:
                context = pyudev.Context()
            except (ImportError, OSError) as e:
                raise CatalogError("udev", "libudev is not usable", cause=e)
        self._context = context
        self._devices: List[PCIDevice] = []

    def scan(self) -> List[PCIDevice]:
        """Scan the udev database for PCI devices."""
        self._devices = []

        for udev_device in self._context.list_devices(subsystem="pci"):
            device = self._parse_udev_device(udev_device)
            if device:
                self._devices.append(device)

        logger.debug(f"udev reported {len(self._devices)} PCI devices")
        return self._devices

    def get_devices(self, mask: DeviceType) -> List[PCIDevice]:
        return filter_devices(self.scan(), mask)

    @handle_errors(ValueError, log_level=logging.WARNING,
                   message="Failed to parse udev device")
    def _parse_udev_device(self, udev_device) -> Optional[PCIDevice]:
        """Parse a pyudev device object."""
        properties = udev_device.properties
        pci_class = properties.get("PCI_CLASS")
        pci_id = properties.get("PCI_ID")
        if not pci_class or not pci_id:
            return None

        vendor_hex, device_hex = pci_id.split(":", 1)
        vendor_id = int(vendor_hex, 16)

        attributes = DeviceAttribute.NONE
        if self._read_attribute(udev_device, "boot_vga") == "1":
            attributes |= DeviceAttribute.BOOT_VGA

        return PCIDevice(
            pci_address=udev_device.sys_name,
            vendor_id=vendor_id,
            device_id=int(device_hex, 16),
            vendor_name=properties.get(
                "ID_VENDOR_FROM_DATABASE",
                KNOWN_VENDORS.get(vendor_id, f"Unknown ({vendor_id:04x})"),
            ),
            device_name=properties.get("ID_MODEL_FROM_DATABASE", f"Device {device_hex.lower()}"),
            device_class=int(pci_class, 16),
            modalias=properties.get("MODALIAS", ""),
            driver=properties.get("DRIVER"),
            attributes=attributes,
        )

    def _read_attribute(self, udev_device, name: str) -> Optional[str]:
        try:
            return udev_device.attributes.asstring(name).strip()
        except KeyError:
            return None
