#!/usr/bin/env python3
"""driver-detect - Module entry point."""
import sys

from driver_detect.cli import main

if __name__ == "__main__":
    sys.exit(main())
