"""
driver-detect - PCI device model

Value types describing the devices handed out by a device catalog.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Any, Dict, Optional


class PCIVendor(IntEnum):
    """GPU vendors the topology heuristics care about."""
    OTHER = 0
    INTEL = 0x8086
    AMD = 0x1002
    NVIDIA = 0x10DE

    @classmethod
    def from_id(cls, vendor_id: int) -> "PCIVendor":
        """Map a raw PCI vendor id onto a known vendor."""
        if vendor_id == 0x1022:  # AMD (CPU/APU side)
            return cls.AMD
        try:
            return cls(vendor_id)
        except ValueError:
            return cls.OTHER


class DeviceType(IntFlag):
    """Kinds of device, combinable as a filter mask."""
    PCI = 1 << 0
    USB = 1 << 1
    GPU = 1 << 2
    AUDIO = 1 << 3


class DeviceAttribute(IntFlag):
    """Special attributes a device may carry."""
    NONE = 0
    BOOT_VGA = 1 << 0


# PCI base class 0x03 is "display controller" (VGA, XGA, 3D)
PCI_CLASS_DISPLAY = 0x03
PCI_CLASS_AUDIO = 0x04


def device_type_for_class(device_class: int) -> DeviceType:
    """Derive the DeviceType flags for a PCI device from its class code."""
    base_class = (device_class >> 16) & 0xFF
    if base_class == PCI_CLASS_DISPLAY:
        return DeviceType.PCI | DeviceType.GPU
    if base_class == PCI_CLASS_AUDIO:
        return DeviceType.PCI | DeviceType.AUDIO
    return DeviceType.PCI


@dataclass(frozen=True, eq=False)
class PCIDevice:
    """
    A PCI device as seen by a device catalog.

    Devices compare by identity: two catalog entries are never the
    same device even when every field matches.
    """

    pci_address: str           # e.g., "0000:01:00.0"
    vendor_id: int             # e.g., 0x10de
    device_id: int             # e.g., 0x1c03
    vendor_name: str = ""
    device_name: str = ""
    device_class: int = 0x030000
    modalias: str = ""
    driver: Optional[str] = None
    attributes: DeviceAttribute = DeviceAttribute.NONE
    device_type: Optional[DeviceType] = None

    def __post_init__(self):
        if self.device_type is None:
            object.__setattr__(self, "device_type", device_type_for_class(self.device_class))

    @property
    def vendor(self) -> PCIVendor:
        return PCIVendor.from_id(self.vendor_id)

    @property
    def is_boot_vga(self) -> bool:
        """True if firmware used this device to bring up the boot display."""
        return self.has_attribute(DeviceAttribute.BOOT_VGA)

    @property
    def pci_id(self) -> str:
        """Return the vendor:device ID string, e.g. "10de:1c03"."""
        return f"{self.vendor_id:04x}:{self.device_id:04x}"

    def has_attribute(self, attribute: DeviceAttribute) -> bool:
        return (self.attributes & attribute) == attribute

    def has_type(self, mask: DeviceType) -> bool:
        return (self.device_type & mask) == mask

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "pci_address": self.pci_address,
            "vendor_id": f"{self.vendor_id:04x}",
            "device_id": f"{self.device_id:04x}",
            "vendor_name": self.vendor_name,
            "device_name": self.device_name,
            "device_class": f"{self.device_class:06x}",
            "modalias": self.modalias,
            "driver": self.driver,
            "boot_vga": self.is_boot_vga,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PCIDevice":
        """Create from the dictionary produced by to_dict()."""
        return cls(
            pci_address=data["pci_address"],
            vendor_id=int(data["vendor_id"], 16),
            device_id=int(data["device_id"], 16),
            vendor_name=data.get("vendor_name", ""),
            device_name=data.get("device_name", ""),
            device_class=int(data.get("device_class", "030000"), 16),
            modalias=data.get("modalias", ""),
            driver=data.get("driver"),
            attributes=DeviceAttribute.BOOT_VGA if data.get("boot_vga") else DeviceAttribute.NONE,
        )
