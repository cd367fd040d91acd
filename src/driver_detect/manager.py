"""
driver-detect - Manager

Ties a device catalog and a provider resolver together, so that a single
object can be handed to new_gpu_config().
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .catalog import DeviceCatalog, SysfsDeviceCatalog, UdevDeviceCatalog
from .device import DeviceType, PCIDevice
from .gpu_config import GPUConfig, new_gpu_config
from .providers import Provider, ProviderResolver, ProviderTable
from .settings import Settings

logger = logging.getLogger(__name__)


class Manager:
    """Owns the device catalog and the provider resolver."""

    def __init__(self, catalog: DeviceCatalog, resolver: Optional[ProviderResolver] = None):
        self.catalog = catalog
        self.resolver = resolver if resolver is not None else ProviderTable()

    @classmethod
    def from_settings(cls, settings: Settings) -> "Manager":
        """Build the catalog backend and provider table named by settings."""
        if settings.backend == "udev":
            catalog = UdevDeviceCatalog()
        else:
            catalog = SysfsDeviceCatalog(settings.sysfs_root)

        logger.debug(f"Using {settings.backend} device catalog")
        return cls(catalog, ProviderTable.load(settings.providers_path))

    def get_devices(self, mask: DeviceType) -> List[PCIDevice]:
        return self.catalog.get_devices(mask)

    def get_providers(self, device: PCIDevice) -> List[Provider]:
        return self.resolver.get_providers(device)

    def get_gpu_config(self) -> GPUConfig:
        """Classify the GPUs this manager can see."""
        return new_gpu_config(self)
