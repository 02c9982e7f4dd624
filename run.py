#!/usr/bin/env python3
"""
DiskMap - Main Launcher
Runs the CLI from a source checkout, elevating privileges when a raw
block device is analyzed.

Usage:
    python run.py analyze disk.img
    python run.py analyze /dev/sda     # relaunches with sudo if needed
"""

import sys
import os
import subprocess
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))


def is_root():
    """Check if the current process is running as root"""
    return hasattr(os, "geteuid") and os.geteuid() == 0


def needs_raw_access(argv):
    """True when an argument names a device node"""
    return any(arg.startswith("/dev/") for arg in argv)


def relaunch_with_sudo():
    """Relaunch the script with sudo"""
    print("\n🔒 Elevating privileges for raw disk access...\n")

    command = ["sudo", "-E", sys.executable, *sys.argv]

    try:
        result = subprocess.run(command)
        sys.exit(result.returncode)
    except KeyboardInterrupt:
        print("\n❌ Operation cancelled by user.")
        sys.exit(1)
    except OSError as e:
        print(f"\n❌ Failed to relaunch with sudo: {e}")
        sys.exit(1)


def main():
    """Main launcher entry point"""
    if needs_raw_access(sys.argv[1:]) and not is_root():
        relaunch_with_sudo()

    try:
        from ui.cli import main as cli_main
    except ImportError as e:
        print(f"❌ Error: Failed to launch CLI ({e})")
        print("💡 Install dependencies: pip install -r requirements.txt")
        sys.exit(1)

    cli_main()


if __name__ == "__main__":
    main()
