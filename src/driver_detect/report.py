"""
Report rendering

Human readable summaries are Jinja2 templates, looked up in:
1. User templates (~/.config/driver-detect/templates)
2. System templates (/usr/share/driver-detect/templates)
3. Templates shipped with the package
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from jinja2 import ChoiceLoader, Environment, FileSystemLoader

from .device import PCIDevice
from .gpu_config import GPUConfig, describe_gpu_type
from .providers import Provider

logger = logging.getLogger(__name__)


class ReportRenderer:
    """Renders GPU configuration, device and provider reports."""

    TEMPLATE_PATHS = [
        Path.home() / ".config/driver-detect/templates",
        Path("/usr/share/driver-detect/templates"),
        Path(__file__).parent / "templates",
    ]

    def __init__(self, additional_paths: Optional[List[Path]] = None):
        self._paths = list(additional_paths or []) + list(self.TEMPLATE_PATHS)
        self._env = self._create_environment()

    def _create_environment(self) -> Environment:
        """Create Jinja2 environment with all existing template paths."""
        loaders = []
        for path in self._paths:
            if path.is_dir():
                loaders.append(FileSystemLoader(str(path)))
                logger.debug(f"Added template path: {path}")

        env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        env.filters["gpu_type"] = lambda t: " | ".join(describe_gpu_type(t))
        return env

    def render_gpu_config(self, config: GPUConfig) -> str:
        return self._env.get_template("gpu_config.txt.j2").render(
            config=config,
            detection=config.detection_device(),
        )

    def render_devices(self, devices: List[PCIDevice]) -> str:
        return self._env.get_template("devices.txt.j2").render(devices=devices)

    def render_providers(self, device: Optional[PCIDevice], providers: List[Provider]) -> str:
        return self._env.get_template("providers.txt.j2").render(
            device=device,
            providers=providers,
        )
