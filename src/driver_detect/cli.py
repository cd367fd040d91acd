#!/usr/bin/env python3
"""
driver-detect - Command Line Interface

Shows the GPU topology and the driver packages suited to it.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from common.exceptions import DriverDetectError
from common.logging_config import setup_logging

from .catalog import StaticDeviceCatalog
from .device import DeviceType
from .manager import Manager
from .providers import ProviderTable
from .report import ReportRenderer
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)


def load_cli_settings(args) -> Settings:
    """Load settings and apply command line overrides."""
    return load_settings(args.config).merged({
        "backend": args.backend,
        "sysfs_root": args.sysfs_root,
        "providers_path": args.providers,
        "log_file": args.log_file,
        "json_logs": args.json_logs or None,
    }).validate()


def build_manager(args, settings: Settings) -> Manager:
    """Create the Manager from settings."""
    if args.devices_file:
        return Manager(
            StaticDeviceCatalog.from_json(args.devices_file),
            ProviderTable.load(settings.providers_path),
        )
    return Manager.from_settings(settings)


def cmd_gpu(args, manager: Manager) -> int:
    """Classify and display the GPU configuration."""
    config = manager.get_gpu_config()

    if args.json:
        print(json.dumps(config.to_dict(), indent=2))
    else:
        print(ReportRenderer().render_gpu_config(config), end="")
    return 0


def cmd_devices(args, manager: Manager) -> int:
    """List GPU devices."""
    devices = manager.get_devices(DeviceType.PCI | DeviceType.GPU)

    if args.json:
        print(json.dumps([d.to_dict() for d in devices], indent=2))
    else:
        print(ReportRenderer().render_devices(devices), end="")
    return 0


def cmd_providers(args, manager: Manager) -> int:
    """List driver providers for the detection device."""
    config = manager.get_gpu_config()
    providers = config.resolve_providers()

    if args.quiet:
        for provider in providers:
            print(provider.package)
    elif args.json:
        print(json.dumps([p.to_dict() for p in providers], indent=2))
    else:
        print(ReportRenderer().render_providers(config.detection_device(), providers), end="")

    return 0 if providers else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="driver-detect",
        description="GPU topology and driver detection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  driver-detect                 # Show GPU configuration
  driver-detect devices -j      # Dump GPU devices as JSON
  driver-detect providers -q    # Print suitable driver packages
        """
    )
    parser.add_argument("--backend", choices=["udev", "sysfs"],
                        help="Device enumeration backend")
    parser.add_argument("--sysfs-root", type=Path,
                        help="PCI device directory for the sysfs backend")
    parser.add_argument("--providers", type=Path, help="Provider table JSON file")
    parser.add_argument("--devices-file", type=Path,
                        help="Read devices from a JSON dump instead of the system")
    parser.add_argument("--config", type=Path, help="Settings JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", type=Path, help="Also write logs to this file")
    parser.add_argument("--json-logs", action="store_true",
                        help="Write the log file as JSON lines")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    gpu_parser = subparsers.add_parser("gpu", help="Show GPU configuration")
    gpu_parser.add_argument("-j", "--json", action="store_true", help="Output as JSON")
    gpu_parser.set_defaults(func=cmd_gpu)

    devices_parser = subparsers.add_parser("devices", help="List GPU devices")
    devices_parser.add_argument("-j", "--json", action="store_true", help="Output as JSON")
    devices_parser.set_defaults(func=cmd_devices)

    providers_parser = subparsers.add_parser("providers", help="List driver providers")
    providers_parser.add_argument("-j", "--json", action="store_true", help="Output as JSON")
    providers_parser.add_argument("-q", "--quiet", action="store_true",
                                  help="Only print package names")
    providers_parser.set_defaults(func=cmd_providers)

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        # Default to gpu
        args.func = cmd_gpu
        args.json = False

    try:
        settings = load_cli_settings(args)
        level = "debug" if args.verbose else settings.log_level
        setup_logging(level, log_file=settings.log_file, json_logs=settings.json_logs)
        return args.func(args, build_manager(args, settings))
    except DriverDetectError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
