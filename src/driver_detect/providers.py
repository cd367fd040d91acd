"""
Driver providers - which driver packages can serve a given device.

A provider table is a JSON document:

    {
      "version": "1.0",
      "providers": [
        {
          "package": "nvidia-glx-driver",
          "description": "NVIDIA proprietary driver",
          "vendor_id": "10de",
          "modaliases": ["pci:v000010DEd*sv*sd*bc03sc*i*"],
          "priority": 20
        }
      ]
    }
"""

from __future__ import annotations

import fnmatch
import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from common.exceptions import ProviderTableError

from .device import PCIDevice

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Provider:
    """A driver package able to drive a device."""
    package: str
    description: str = ""
    vendor_id: Optional[int] = None
    modaliases: Tuple[str, ...] = ()
    priority: int = 0
    device: Optional[PCIDevice] = field(default=None, compare=False, repr=False)

    def matches(self, device: PCIDevice) -> bool:
        """Check whether this provider applies to device."""
        if self.modaliases:
            modalias = device.modalias.lower()
            return any(fnmatch.fnmatchcase(modalias, pattern.lower())
                       for pattern in self.modaliases)
        if self.vendor_id is not None:
            return device.vendor_id == self.vendor_id
        return False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Provider":
        vendor_id = data.get("vendor_id")
        return cls(
            package=data["package"],
            description=data.get("description", ""),
            vendor_id=int(vendor_id, 16) if vendor_id else None,
            modaliases=tuple(data.get("modaliases", [])),
            priority=int(data.get("priority", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "package": self.package,
            "description": self.description,
            "vendor_id": f"{self.vendor_id:04x}" if self.vendor_id is not None else None,
            "modaliases": list(self.modaliases),
            "priority": self.priority,
            "device": self.device.pci_address if self.device else None,
        }


@runtime_checkable
class ProviderResolver(Protocol):
    """Anything that can list the providers for a device."""

    def get_providers(self, device: PCIDevice) -> List[Provider]:
        ...


class ProviderTable:
    """Provider database loaded from a JSON file."""

    SYSTEM_PATH = Path("/usr/share/driver-detect/providers.json")
    BUNDLED_PATH = Path(__file__).parent / "data" / "providers.json"

    def __init__(self, providers: Optional[List[Provider]] = None):
        self._providers: List[Provider] = list(providers or [])

    @classmethod
    def default_path(cls) -> Path:
        """Installed table if present, otherwise the one shipped with the package."""
        if cls.SYSTEM_PATH.exists():
            return cls.SYSTEM_PATH
        return cls.BUNDLED_PATH

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "ProviderTable":
        """
        Load a provider table from disk.

        Args:
            path: JSON file; defaults to default_path()

        Raises:
            ProviderTableError: if the file is not a valid provider table.
        """
        path = Path(path) if path else cls.default_path()

        if not path.exists():
            logger.warning(f"Provider table not found: {path}")
            return cls()

        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ProviderTableError(str(path), "unreadable JSON", cause=e)

        if not isinstance(data, dict) or not isinstance(data.get("providers"), list):
            raise ProviderTableError(str(path), "missing 'providers' list")

        providers = []
        for entry in data["providers"]:
            try:
                providers.append(Provider.from_dict(entry))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping bad provider entry in {path}: {e!r}")

        logger.info(f"Loaded {len(providers)} providers from {path}")
        return cls(providers)

    def __len__(self) -> int:
        return len(self._providers)

    def get_providers(self, device: PCIDevice) -> List[Provider]:
        """Providers matching device, best first."""
        matched = [replace(provider, device=device)
                   for provider in self._providers if provider.matches(device)]
        matched.sort(key=lambda p: (-p.priority, p.package))
        return matched
