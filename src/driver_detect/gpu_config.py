"""
driver-detect - GPU configuration

Works out the GPU topology of the system: which device is the primary
(boot display) GPU, which is the secondary (discrete) GPU in hybrid
setups, and what kind of configuration this is overall.

Example:
    manager = Manager.from_settings(load_settings())
    gpu = new_gpu_config(manager)
    logger.info(f"This system has {gpu.count} GPUs")
    if gpu.has_type(GPUType.OPTIMUS):
        logger.info("System is using an Optimus configuration")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Any, Dict, List, Optional, Sequence

from common.decorators import return_if_fail

from .catalog import DeviceCatalog
from .device import DeviceAttribute, DeviceType, PCIDevice, PCIVendor
from .providers import Provider, ProviderResolver

logger = logging.getLogger(__name__)


class GPUType(IntFlag):
    """Topology flags for a GPU configuration."""
    SIMPLE = 1 << 0     # Single GPU, or nothing more specific matched
    HYBRID = 1 << 1     # iGPU + dGPU, driver detection uses the dGPU
    COMPOSITE = 1 << 2  # Several GPUs of one vendor working together
    OPTIMUS = 1 << 3    # Intel boot GPU + NVIDIA dGPU
    SLI = 1 << 4        # NVIDIA composite
    CROSSFIRE = 1 << 5  # AMD composite


@dataclass(frozen=True)
class GPUConfig:
    """
    Immutable result of GPU topology classification.

    The primary and secondary devices are references into the catalog
    the configuration was built from; the configuration must not
    outlive that catalog.
    """

    count: int = 0
    primary: Optional[PCIDevice] = None
    secondary: Optional[PCIDevice] = None
    gpu_type: GPUType = GPUType.SIMPLE
    resolver: Optional[ProviderResolver] = field(default=None, compare=False, repr=False)

    def has_type(self, mask: GPUType) -> bool:
        """
        Test whether every flag in mask is set on this configuration.

        An empty mask is always satisfied.
        """
        return (self.gpu_type & mask) == mask

    def primary_device(self) -> Optional[PCIDevice]:
        """
        The GPU used to boot the system.

        This is the baseline for driver detection in all non hybrid cases.
        """
        return self.primary

    def secondary_device(self) -> Optional[PCIDevice]:
        """
        The discrete GPU in a hybrid configuration, None otherwise.

        For OPTIMUS this is always the NVIDIA dGPU.
        """
        return self.secondary

    def detection_device(self) -> Optional[PCIDevice]:
        """
        The device whose vendor and model decide which driver to install.

        Hybrid configurations use the secondary (discrete) GPU, everything
        else uses the primary GPU.
        """
        if self.has_type(GPUType.HYBRID):
            return self.secondary
        return self.primary

    def resolve_providers(self) -> List[Provider]:
        """
        Ask the resolver for the providers of the detection device.

        Ordering is entirely up to the resolver.
        """
        device = self.detection_device()
        if self.resolver is None or device is None:
            logger.warning("Cannot resolve providers: no resolver or no detection device")
            return []
        return self.resolver.get_providers(device)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        detection = self.detection_device()
        return {
            "count": self.count,
            "type": describe_gpu_type(self.gpu_type),
            "primary": self.primary.to_dict() if self.primary else None,
            "secondary": self.secondary.to_dict() if self.secondary else None,
            "detection_device": detection.pci_address if detection else None,
        }


def describe_gpu_type(gpu_type: GPUType) -> List[str]:
    """List the flag names set in gpu_type, lowest bit first."""
    return [flag.name for flag in GPUType if flag & gpu_type]


def _search_boot(devices: Sequence[PCIDevice], boot_vga: bool,
                 not_like: Optional[PCIDevice] = None) -> Optional[PCIDevice]:
    """Find the first device whose BOOT_VGA state is boot_vga, skipping not_like."""
    for device in devices:
        if device is not_like:
            continue
        if device.has_attribute(DeviceAttribute.BOOT_VGA) == boot_vga:
            return device
    return None


def _is_hybrid_pair(boot: PCIDevice, non_boot: Optional[PCIDevice]) -> bool:
    """Boot device has BOOT_VGA and the other one does not."""
    if non_boot is None:
        return False
    return boot.is_boot_vga and not non_boot.is_boot_vga


def _match_optimus(boot: PCIDevice, non_boot: Optional[PCIDevice]) -> bool:
    """Intel boot GPU with a non boot NVIDIA GPU."""
    if not _is_hybrid_pair(boot, non_boot):
        return False
    return boot.vendor == PCIVendor.INTEL and non_boot.vendor == PCIVendor.NVIDIA


def _match_amd_hybrid(boot: PCIDevice, non_boot: Optional[PCIDevice]) -> bool:
    """Intel iGPU or AMD APU at boot, with a non boot AMD GPU."""
    if not _is_hybrid_pair(boot, non_boot):
        return False
    if boot.vendor not in (PCIVendor.INTEL, PCIVendor.AMD):
        return False
    return non_boot.vendor == PCIVendor.AMD


def _match_composite(boot: PCIDevice, non_boot: Optional[PCIDevice]) -> Optional[GPUType]:
    """SLI or Crossfire when both devices share an NVIDIA or AMD vendor."""
    if non_boot is None or boot.vendor != non_boot.vendor:
        return None
    if boot.vendor == PCIVendor.AMD:
        return GPUType.COMPOSITE | GPUType.CROSSFIRE
    if boot.vendor == PCIVendor.NVIDIA:
        return GPUType.COMPOSITE | GPUType.SLI
    return None


def classify(devices: Sequence[PCIDevice],
             resolver: Optional[ProviderResolver] = None) -> GPUConfig:
    """
    Classify the GPU topology of an ordered list of GPU devices.

    Only the first boot VGA device and the first other non boot VGA
    device are examined; any further GPUs only add to the count.

    Args:
        devices: GPU devices in discovery order
        resolver: Provider resolver to attach to the result

    Returns:
        The GPU configuration. Never raises.
    """
    count = len(devices)

    if count < 1:
        logger.info("failed to discover any GPUs")
        return GPUConfig(count=0, resolver=resolver)

    if count == 1:
        return GPUConfig(count=1, primary=devices[0], resolver=resolver)

    # No boot_vga anywhere: the first device stands in for it
    boot = _search_boot(devices, True) or devices[0]
    non_boot = _search_boot(devices, False, not_like=boot)

    if _match_optimus(boot, non_boot):
        return GPUConfig(count, boot, non_boot, GPUType.HYBRID | GPUType.OPTIMUS, resolver)

    if _match_amd_hybrid(boot, non_boot):
        return GPUConfig(count, boot, non_boot, GPUType.HYBRID, resolver)

    # Composite configurations keep no secondary device
    composite = _match_composite(boot, non_boot)
    if composite is not None:
        return GPUConfig(count, boot, None, composite, resolver)

    return GPUConfig(count, boot, None, GPUType.SIMPLE, resolver)


def new_gpu_config(catalog: DeviceCatalog,
                   resolver: Optional[ProviderResolver] = None) -> GPUConfig:
    """
    Build the GPU configuration for everything the catalog knows about.

    Args:
        catalog: Source of PCI GPU devices
        resolver: Provider resolver; defaults to the catalog itself when
            it can resolve providers (e.g. a Manager)
    """
    if resolver is None and isinstance(catalog, ProviderResolver):
        resolver = catalog

    devices = catalog.get_devices(DeviceType.PCI | DeviceType.GPU)
    config = classify(devices, resolver)

    logger.debug(
        f"GPU config: count={config.count} "
        f"type={'|'.join(describe_gpu_type(config.gpu_type))} "
        f"primary={config.primary.pci_address if config.primary else None} "
        f"secondary={config.secondary.pci_address if config.secondary else None}"
    )
    return config


# Null-safe accessors for callers that may hold no configuration at all.

@return_if_fail(GPUConfig, default=0)
def gpu_config_count(config: GPUConfig) -> int:
    return config.count


@return_if_fail(GPUConfig, default=GPUType.SIMPLE)
def gpu_config_get_gpu_type(config: GPUConfig) -> GPUType:
    return config.gpu_type


@return_if_fail(GPUConfig, default=False)
def gpu_config_has_type(config: GPUConfig, mask: GPUType) -> bool:
    return config.has_type(mask)


@return_if_fail(GPUConfig, default=None)
def gpu_config_get_primary_device(config: GPUConfig) -> Optional[PCIDevice]:
    return config.primary_device()


@return_if_fail(GPUConfig, default=None)
def gpu_config_get_secondary_device(config: GPUConfig) -> Optional[PCIDevice]:
    return config.secondary_device()


@return_if_fail(GPUConfig, default=None)
def gpu_config_get_detection_device(config: GPUConfig) -> Optional[PCIDevice]:
    return config.detection_device()


@return_if_fail(GPUConfig, default=list)
def gpu_config_get_providers(config: GPUConfig) -> List[Provider]:
    return config.resolve_providers()
