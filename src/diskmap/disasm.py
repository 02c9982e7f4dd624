"""
DiskMap - Optional boot code disassembly

Boot code is decoded as opaque bytes; this module only annotates it when the
capstone engine is installed (pip install capstone).
"""

import logging
from typing import List, Tuple

# Capstone is optional
try:
    from capstone import Cs, CS_ARCH_X86, CS_MODE_16
    HAS_CAPSTONE = True
except ImportError:
    HAS_CAPSTONE = False

logger = logging.getLogger(__name__)

# BIOS loads sector 0 at 0000:7C00
BOOT_LOAD_ADDRESS = 0x7C00

Instruction = Tuple[int, str, str]


def disassemble_boot_code(code: bytes, base: int = BOOT_LOAD_ADDRESS) -> List[Instruction]:
    """
    Disassemble boot code as 16-bit real mode x86.

    Args:
        code: Boot code bytes
        base: Address of the first byte

    Returns:
        List of (address, mnemonic, operands); empty if capstone is missing
    """
    if not HAS_CAPSTONE:
        logger.debug("capstone not installed, skipping boot code disassembly")
        return []

    md = Cs(CS_ARCH_X86, CS_MODE_16)
    return [(insn.address, insn.mnemonic, insn.op_str) for insn in md.disasm(code, base)]
