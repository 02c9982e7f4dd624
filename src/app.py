"""
DiskMap - Central Application Controller

This module provides the main application interface: configuration,
logging, decoding of disk images and export of the decoded partition map.

Author: DiskMap Development Team
Version: 1.0.0
"""

import logging
import json
from pathlib import Path
from typing import Optional, Dict, List, Any, Union
from datetime import datetime
import hashlib

from diskmap.disasm import disassemble_boot_code
from diskmap.layout import DiskLayout, DiskLayoutDecoder, EntryCountPolicy
from diskmap.mbr import (
    LegacyPartitionEntry,
    ModernWindowsBootCode,
    NewLdrBootCode,
)
from diskmap.partition_types import all_definitions
from diskmap.reader import FileSource


class DiskMapApp:
    """
    Main application class coordinating partition map decoding.

    This class provides a unified interface for:
    - Configuration loading
    - Logging setup
    - Decoding disk images and devices
    - Report export
    """

    def __init__(self, config_path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None):
        """
        Initialize the DiskMap application.

        Args:
            config_path: Optional path to configuration file
            overrides: Optional settings applied on top of the loaded configuration
        """
        self.config = self._load_config(config_path)
        if overrides:
            self.config.update({k: v for k, v in overrides.items() if v is not None})
        self.logger = self._setup_logging()

        self.logger.debug("DiskMap application initialized")

    def _load_config(self, config_path: Optional[Path]) -> Dict[str, Any]:
        """
        Load application configuration.

        Args:
            config_path: Path to JSON configuration file

        Returns:
            Configuration dictionary with defaults
        """
        default_config = {
            "version": "1.0.0",
            "log_level": "INFO",
            "log_dir": None,
            "sector_size": 512,
            "gpt_entry_count": "header",
            "verify_crc": True,
            "disassemble_boot_code": False,
            "output_formats": ["json"]
        }

        if config_path and Path(config_path).exists():
            try:
                with open(config_path, 'r') as f:
                    user_config = json.load(f)
                default_config.update(user_config)
            except (OSError, ValueError) as e:
                logging.warning(f"Failed to load config from {config_path}: {e}")

        return default_config

    def _setup_logging(self) -> logging.Logger:
        """
        Configure the package logger.

        Returns:
            Configured logger instance
        """
        log_level = getattr(logging, str(self.config.get("log_level", "INFO")).upper(), logging.INFO)

        logger = logging.getLogger("diskmap")
        logger.setLevel(log_level)

        # Repeated app instances must not stack handlers
        if logger.handlers:
            return logger

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        log_dir = self.config.get("log_dir")
        if log_dir:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = log_dir / f"diskmap_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        return logger

    def make_decoder(self) -> DiskLayoutDecoder:
        return DiskLayoutDecoder(
            sector_size=int(self.config["sector_size"]),
            count_policy=EntryCountPolicy(self.config["gpt_entry_count"]),
            verify_crc=bool(self.config["verify_crc"]),
        )

    def analyze(self, image_path: Union[str, Path]) -> DiskLayout:
        """
        Decode the partition map of a disk image or device.

        Args:
            image_path: Path to disk image file or block device

        Returns:
            Decoded layout

        Raises:
            FileNotFoundError: If the image doesn't exist
            OutOfRangeError: If the image is shorter than one sector
            ReadError: If sector 0 cannot be read from the device
        """
        image_path = Path(image_path)
        if not image_path.exists():
            raise FileNotFoundError(f"Disk image not found: {image_path}")

        self.logger.info(f"Analyzing {image_path}")
        with FileSource(image_path) as source:
            layout = self.make_decoder().decode(source)

        self.logger.info(
            f"Analysis complete: scheme={layout.scheme}, "
            f"{len(layout.diagnostics)} diagnostic(s)"
        )
        return layout

    def disassemble(self, layout: DiskLayout) -> List[Dict[str, Any]]:
        """Boot code listing, when capstone is installed"""
        return [
            {"address": f"0x{address:04X}", "mnemonic": mnemonic, "operands": op_str}
            for address, mnemonic, op_str in disassemble_boot_code(layout.mbr.boot.boot_code)
        ]

    def layout_to_dict(self, layout: DiskLayout) -> Dict[str, Any]:
        """
        Convert a decoded layout to a JSON-serialisable dictionary.

        Args:
            layout: Decoded layout

        Returns:
            Dictionary with MBR, GPT and diagnostics sections
        """
        mbr = layout.mbr
        result = {
            "generated_at": datetime.now().isoformat(),
            "sector_size": layout.sector_size,
            "scheme": layout.scheme,
            "mbr": {
                "layout": mbr.layout_kind.value,
                "boot_signature": f"0x{mbr.boot_signature:04X}",
                "boot_signature_valid": mbr.has_valid_signature,
                "boot_code_sha256": hashlib.sha256(mbr.boot.boot_code).hexdigest(),
                "boot_sector": _boot_sector_fields(mbr.boot),
                "partitions": [_legacy_entry_to_dict(p) for p in mbr.partitions],
            },
            "gpt": None,
            "diagnostics": [
                {"code": d.code.value, "severity": d.severity, "message": d.message}
                for d in layout.diagnostics
            ],
        }

        if layout.gpt is not None:
            header = layout.gpt.header
            result["gpt"] = {
                "header": {
                    "revision": header.revision_string,
                    "header_size": header.header_size,
                    "header_crc32": f"0x{header.header_crc32:08X}",
                    "current_lba": header.current_lba,
                    "backup_lba": header.backup_lba,
                    "first_usable_lba": header.first_usable_lba,
                    "last_usable_lba": header.last_usable_lba,
                    "disk_guid": str(header.disk_guid),
                    "first_entry_lba": header.first_entry_lba,
                    "num_entries": header.num_entries,
                    "entry_size": header.entry_size,
                    "entries_crc32": f"0x{header.entries_crc32:08X}",
                },
                "count_policy": layout.gpt.count_policy.value,
                "declared_entry_count": layout.gpt.declared_entry_count,
                "usable_range_count": layout.gpt.usable_range_count,
                "entries": [
                    {
                        "index": e.index,
                        "type_guid": str(e.type_guid),
                        "type_name": e.type_name,
                        "unique_guid": str(e.unique_guid),
                        "first_lba": e.first_lba,
                        "last_lba": e.last_lba,
                        "attributes": f"0x{e.flags.raw:016X}",
                        "flags": e.flags.names(),
                        "name": e.name,
                    }
                    for e in layout.gpt.used_entries()
                ],
            }

        if self.config.get("disassemble_boot_code"):
            result["boot_code_disassembly"] = self.disassemble(layout)

        return result

    def export_report(self, layout: DiskLayout, output_path: Union[str, Path], format: str = "json") -> Path:
        """
        Write the decoded layout to a report file.

        Args:
            layout: Decoded layout
            output_path: Destination file
            format: Report format

        Returns:
            Path to the written report

        Raises:
            ValueError: If format not supported
        """
        if format not in self.config.get("output_formats", ["json"]):
            raise ValueError(f"Unsupported format: {format}")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            json.dump(self.layout_to_dict(layout), f, indent=2)

        self.logger.info(f"Report written: {output_path}")
        return output_path


def _legacy_entry_to_dict(entry: LegacyPartitionEntry) -> Dict[str, Any]:
    return {
        "slot": entry.slot,
        "boot_indicator": f"0x{entry.boot_indicator:02X}",
        "bootable": entry.is_bootable,
        "type": f"0x{entry.partition_type:02X}",
        "type_name": entry.type_name,
        "type_aliases": all_definitions(entry.partition_type),
        "chs_start": str(entry.chs_start),
        "chs_end": str(entry.chs_end),
        "first_lba": entry.first_lba,
        "sector_count": entry.sector_count,
    }


def _boot_sector_fields(boot) -> Dict[str, Any]:
    if isinstance(boot, ModernWindowsBootCode):
        return {
            "original_drive": f"0x{boot.original_drive:02X}",
            "timestamp": boot.disk_timestamp,
            "disk_signature": f"0x{boot.disk_signature:08X}",
            "copy_protected": boot.is_copy_protected,
        }
    if isinstance(boot, NewLdrBootCode):
        fields = {
            "signature": boot.signature.decode('ascii', errors='replace'),
            "physical_drive": f"0x{boot.physical_drive:02X}",
            "loader_chs": str(boot.loader_chs),
            "loader_lba": boot.loader_lba,
            "dl_min": f"0x{boot.dl_min:02X}",
            "patch_offset": f"0x{boot.patch_offset:04X}",
            "checksum": f"0x{boot.checksum:04X}",
            "oem_signature": boot.oem_signature.hex(),
            "aap_signature": f"0x{boot.aap_signature:04X}",
            "aap_partition": None,
        }
        if boot.aap_partition is not None:
            fields["aap_partition"] = _legacy_entry_to_dict(boot.aap_partition)
        return fields
    return {}
