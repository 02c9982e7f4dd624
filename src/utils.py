"""
DiskMap Utility Functions
Includes block device detection and helper functions

Dependencies:
    pip install psutil
"""

import os
import sys
import logging
from pathlib import Path
from typing import List, Dict

import psutil

logger = logging.getLogger(__name__)


class DeviceDetector:
    """Detect block devices and disk images that can be decoded"""

    @staticmethod
    def get_partition_devices() -> List[Dict]:
        """
        Get all mounted disk partitions on the system

        Returns:
            List of partition info dictionaries
        """
        devices = []

        for partition in psutil.disk_partitions(all=False):
            devices.append({
                'device': partition.device,
                'mountpoint': partition.mountpoint,
                'fstype': partition.fstype,
            })

        return devices

    @staticmethod
    def get_whole_disks() -> List[str]:
        """
        Whole-disk device nodes, the devices that carry an MBR

        Returns:
            Device paths (Linux reads /sys/block; other platforms return [])
        """
        disks = []
        sys_block = Path('/sys/block')
        if sys.platform.startswith('linux') and sys_block.exists():
            for device in sorted(sys_block.iterdir()):
                # Skip RAM disks and loop devices with no backing file
                if device.name.startswith('ram'):
                    continue
                size_path = device / 'size'
                try:
                    if size_path.exists() and int(size_path.read_text().strip() or 0) == 0:
                        continue
                except (OSError, ValueError) as e:
                    logger.debug(f"Cannot read size of {device.name}: {e}")
                    continue
                disks.append(f'/dev/{device.name}')
        return disks

    @staticmethod
    def format_size(bytes_size: float) -> str:
        """
        Format byte size to human-readable format

        Args:
            bytes_size: Size in bytes

        Returns:
            Formatted string (e.g., "1.5 GB")
        """
        for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
            if bytes_size < 1024.0:
                return f"{bytes_size:.1f} {unit}"
            bytes_size /= 1024.0
        return f"{bytes_size:.1f} PB"


def check_root_permissions() -> bool:
    """
    Check if running with root/admin permissions

    Returns:
        True if has permissions, False otherwise
    """
    if sys.platform.startswith('linux') or sys.platform == 'darwin':
        return os.geteuid() == 0
    elif sys.platform == 'win32':
        try:
            import ctypes
            return ctypes.windll.shell32.IsUserAnAdmin() != 0
        except (ImportError, AttributeError, OSError):
            return False
    return False


# Convenience functions
def list_block_devices() -> List[Dict]:
    """Whole disks followed by mounted partitions"""
    detector = DeviceDetector()
    devices = [{'device': d, 'mountpoint': '', 'fstype': ''} for d in detector.get_whole_disks()]
    return devices + detector.get_partition_devices()


def format_size(size: float) -> str:
    """Format byte size to human-readable string"""
    return DeviceDetector.format_size(size)


def format_sectors(count: int, sector_size: int = 512) -> str:
    """Human-readable size of a run of sectors"""
    return format_size(count * sector_size)
