"""driver-detect: GPU topology classification for driver selection.

This module provides:
- PCI device model and device catalogs (sysfs, udev, static)
- GPU topology classification (Optimus, AMD hybrid, SLI/Crossfire)
- Driver provider lookup for the detection device
"""

from .device import PCIDevice, PCIVendor, DeviceType, DeviceAttribute
from .catalog import DeviceCatalog, StaticDeviceCatalog, SysfsDeviceCatalog, UdevDeviceCatalog
from .gpu_config import (
    GPUType, GPUConfig, classify, new_gpu_config, describe_gpu_type,
    gpu_config_count, gpu_config_get_gpu_type, gpu_config_has_type,
    gpu_config_get_primary_device, gpu_config_get_secondary_device,
    gpu_config_get_detection_device, gpu_config_get_providers,
)
from .providers import Provider, ProviderResolver, ProviderTable
from .manager import Manager
from .settings import Settings, load_settings

__all__ = [
    # Devices
    "PCIDevice",
    "PCIVendor",
    "DeviceType",
    "DeviceAttribute",
    # Catalogs
    "DeviceCatalog",
    "StaticDeviceCatalog",
    "SysfsDeviceCatalog",
    "UdevDeviceCatalog",
    # GPU configuration
    "GPUType",
    "GPUConfig",
    "classify",
    "new_gpu_config",
    "describe_gpu_type",
    "gpu_config_count",
    "gpu_config_get_gpu_type",
    "gpu_config_has_type",
    "gpu_config_get_primary_device",
    "gpu_config_get_secondary_device",
    "gpu_config_get_detection_device",
    "gpu_config_get_providers",
    # Providers
    "Provider",
    "ProviderResolver",
    "ProviderTable",
    # Manager
    "Manager",
    "Settings",
    "load_settings",
]

__version__ = "0.1.0"
