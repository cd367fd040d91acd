"""
Pytest configuration and shared fixtures for driver-detect tests.

Provides fake devices, fake sysfs trees and udev mocks.
"""

import os
import pytest
from unittest.mock import MagicMock
from pathlib import Path
from typing import Dict, Optional
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from driver_detect.device import PCIDevice, DeviceAttribute


# ============ Device Fixtures ============

def make_gpu(
    vendor_id: int,
    boot_vga: bool = False,
    pci_address: str = "0000:01:00.0",
    device_id: int = 0x0001,
    device_class: int = 0x030000,
) -> PCIDevice:
    """Build a GPU device with a matching modalias."""
    return PCIDevice(
        pci_address=pci_address,
        vendor_id=vendor_id,
        device_id=device_id,
        vendor_name=f"Vendor {vendor_id:04x}",
        device_name=f"Device {device_id:04x}",
        device_class=device_class,
        modalias=(
            f"pci:v0000{vendor_id:04X}d0000{device_id:04X}"
            f"sv00000000sd00000000bc{device_class >> 16:02X}sc00i00"
        ),
        attributes=DeviceAttribute.BOOT_VGA if boot_vga else DeviceAttribute.NONE,
    )


@pytest.fixture
def intel_igpu() -> PCIDevice:
    """Intel iGPU, boot VGA."""
    return make_gpu(0x8086, boot_vga=True, pci_address="0000:00:02.0", device_id=0x3E92)


@pytest.fixture
def nvidia_dgpu() -> PCIDevice:
    """NVIDIA dGPU, not boot VGA."""
    return make_gpu(0x10DE, pci_address="0000:01:00.0", device_id=0x1C03)


@pytest.fixture
def amd_dgpu() -> PCIDevice:
    """AMD dGPU, not boot VGA."""
    return make_gpu(0x1002, pci_address="0000:03:00.0", device_id=0x73BF)


# ============ Sysfs Fixtures ============

def write_sysfs_device(
    root: Path,
    address: str,
    device_class: str,
    vendor: str,
    device: str,
    boot_vga: Optional[str] = None,
    driver: Optional[str] = None,
) -> Path:
    """Create a fake /sys/bus/pci/devices/<address> entry."""
    path = root / address
    path.mkdir(parents=True)
    (path / "class").write_text(f"{device_class}\n")
    (path / "vendor").write_text(f"{vendor}\n")
    (path / "device").write_text(f"{device}\n")
    (path / "modalias").write_text(
        f"pci:v0000{vendor[2:].upper()}d0000{device[2:].upper()}"
        f"sv00000000sd00000000bc{device_class[2:4].upper()}sc00i00\n"
    )
    if boot_vga is not None:
        (path / "boot_vga").write_text(f"{boot_vga}\n")
    if driver:
        driver_dir = root.parent / "drivers" / driver
        driver_dir.mkdir(parents=True, exist_ok=True)
        (path / "driver").symlink_to(driver_dir)
    return path


@pytest.fixture
def optimus_sysfs(tmp_path: Path) -> Path:
    """Fake sysfs tree of an Optimus laptop plus unrelated PCI devices."""
    root = tmp_path / "bus/pci/devices"
    root.mkdir(parents=True)

    write_sysfs_device(root, "0000:00:00.0", "0x060000", "0x8086", "0x3e30")
    write_sysfs_device(root, "0000:00:02.0", "0x030000", "0x8086", "0x3e9b",
                       boot_vga="1", driver="i915")
    write_sysfs_device(root, "0000:00:1f.3", "0x040300", "0x8086", "0xa348")
    write_sysfs_device(root, "0000:01:00.0", "0x030200", "0x10de", "0x1f91",
                       boot_vga="0", driver="nouveau")
    return root


# ============ Udev Fixtures ============

def make_udev_device(sys_name: str, properties: Dict[str, str],
                     attributes: Optional[Dict[str, str]] = None) -> MagicMock:
    """Mock a pyudev.Device with the given properties and sysfs attributes."""
    attributes = attributes or {}
    device = MagicMock()
    device.sys_name = sys_name
    device.properties = dict(properties)

    def asstring(name):
        return attributes[name]

    device.attributes.asstring.side_effect = asstring
    return device


@pytest.fixture
def mock_udev_context():
    """A pyudev.Context mock listing an Intel + AMD hybrid laptop."""
    context = MagicMock()
    context.list_devices.return_value = [
        make_udev_device("0000:00:00.0", {"PCI_CLASS": "60000", "PCI_ID": "1022:1630"}),
        make_udev_device(
            "0000:00:02.0",
            {
                "PCI_CLASS": "30000",
                "PCI_ID": "8086:9BC4",
                "MODALIAS": "pci:v00008086d00009BC4sv00001028sd000009BEbc03sc00i00",
                "DRIVER": "i915",
                "ID_VENDOR_FROM_DATABASE": "Intel Corporation",
                "ID_MODEL_FROM_DATABASE": "CometLake-H GT2 [UHD Graphics]",
            },
            {"boot_vga": "1"},
        ),
        make_udev_device(
            "0000:03:00.0",
            {
                "PCI_CLASS": "38000",
                "PCI_ID": "1002:7340",
                "MODALIAS": "pci:v00001002d00007340sv00001028sd000009BEbc03sc80i00",
                "DRIVER": "amdgpu",
            },
            {"boot_vga": "0"},
        ),
    ]
    return context


# ============ Marker Configuration ============

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "unit: fast unit tests with no external deps"
    )
    config.addinivalue_line(
        "markers", "hardware: tests reading the real /sys or udev"
    )


def pytest_collection_modifyitems(config, items):
    """Skip hardware tests in CI."""
    skip_hw = pytest.mark.skip(reason="Hardware tests disabled in CI")

    for item in items:
        if "hardware" in item.keywords and os.environ.get("CI"):
            item.add_marker(skip_hw)
