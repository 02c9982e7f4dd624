"""
DiskMap - Legacy MBR partition type registry

Labels follow the historical partition-ID list. Several codes were claimed by
more than one vendor; the table keeps every claim in its historical order and
the last one listed for a code is the label returned by lookup().
"""

from typing import Dict, List, Tuple

UNKNOWN = "unknown"

PROTECTIVE_MBR_TYPE = 0xEE

# Order matters: later entries replace earlier ones with the same code.
PARTITION_TYPE_DEFINITIONS: List[Tuple[int, str]] = [
    (0x00, "Empty partition-table entry"),
    (0x01, "DOS FAT12"),
    (0x02, "XENIX root"),
    (0x03, "XENIX /usr"),
    (0x04, "DOS 3.0+ FAT16 (up to 32M)"),
    (0x05, "DOS 3.3+ Extended Partition"),
    (0x06, "DOS 3.31+ FAT16 (over 32M)"),
    (0x07, "QNX2.x pre-1988"),
    (0x07, "Advanced Unix"),
    (0x07, "exFAT"),
    (0x07, "OS/2 IFS (e.g., HPFS)"),
    (0x07, "Windows NT NTFS"),
    (0x08, "OS/2 (v1.0-1.3 only)"),
    (0x08, "AIX boot partition"),
    (0x08, "SplitDrive"),
    (0x08, "Commodore DOS"),
    (0x08, "DELL partition spanning multiple drives"),
    (0x08, "QNX 1.x and 2.x (\"qny\")"),
    (0x09, "AIX data partition"),
    (0x09, "Coherent filesystem"),
    (0x09, "QNX 1.x and 2.x (\"qnz\")"),
    (0x0A, "OPUS"),
    (0x0A, "Coherent swap partition"),
    (0x0A, "OS/2 Boot Manager"),
    (0x0B, "WIN95 OSR2 FAT32"),
    (0x0C, "WIN95 OSR2 FAT32, LBA-mapped"),
    (0x0E, "WIN95: DOS 16-bit FAT, LBA-mapped"),
    (0x0F, "WIN95: Extended partition, LBA-mapped"),
    (0x10, "OPUS (?)"),
    (0x11, "Hidden DOS 12-bit FAT"),
    (0x12, "Configuration/diagnostics partition"),
    (0x14, "Hidden DOS 16-bit FAT <32M"),
    (0x16, "Hidden DOS 16-bit FAT >=32M"),
    (0x17, "Hidden IFS (e.g., HPFS)"),
    (0x18, "AST SmartSleep Partition"),
    (0x19, "Unused"),
    (0x1B, "Hidden WIN95 OSR2 FAT32"),
    (0x1C, "Hidden WIN95 OSR2 FAT32, LBA-mapped"),
    (0x1E, "Hidden WIN95 16-bit FAT, LBA-mapped"),
    (0x20, "Unused"),
    (0x21, "Reserved"),
    (0x21, "Unused"),
    (0x22, "Unused"),
    (0x23, "Reserved"),
    (0x24, "NEC DOS 3.x"),
    (0x26, "Reserved"),
    (0x27, "PQservice"),
    (0x27, "Windows RE hidden partition"),
    (0x2A, "AtheOS File System (AFS)"),
    (0x31, "Reserved"),
    (0x32, "NOS"),
    (0x33, "Reserved"),
    (0x34, "Reserved"),
    (0x35, "JFS on OS/2 or eCS"),
    (0x36, "Reserved"),
    (0x38, "THEOS ver 3.2 2gb partition"),
    (0x39, "Plan 9 partition"),
    (0x39, "THEOS ver 4 spanned partition"),
    (0x3A, "THEOS ver 4 4gb partition"),
    (0x3B, "THEOS ver 4 extended partition"),
    (0x3C, "PartitionMagic recovery partition"),
    (0x3D, "Hidden NetWare"),
    (0x40, "Venix 80286"),
    (0x41, "Linux/MINIX (sharing disk with DRDOS)"),
    (0x41, "Personal RISC Boot"),
    (0x41, "PPC PReP (Power PC Reference Platform) Boot"),
    (0x42, "Linux swap (sharing disk with DRDOS)"),
    (0x42, "SFS (Secure Filesystem)"),
    (0x42, "Windows 2000 dynamic extended partition marker"),
    (0x43, "Linux native (sharing disk with DRDOS)"),
    (0x44, "GoBack partition"),
    (0x45, "Boot-US boot manager"),
    (0x45, "Priam"),
    (0x45, "EUMEL/Elan"),
    (0x46, "EUMEL/Elan"),
    (0x47, "EUMEL/Elan"),
    (0x48, "EUMEL/Elan"),
    (0x4A, "AdaOS Aquila (Default)"),
    (0x4A, "ALFS/THIN lightweight filesystem for DOS"),
    (0x4C, "Oberon partition"),
    (0x4D, "QNX4.x"),
    (0x4E, "QNX4.x 2nd part"),
    (0x4F, "QNX4.x 3rd part"),
    (0x4F, "Oberon partition"),
    (0x50, "OnTrack Disk Manager (older versions) RO"),
    (0x50, "Lynx RTOS"),
    (0x50, "Native Oberon (alt)"),
    (0x51, "OnTrack Disk Manager RW (DM6 Aux1)"),
    (0x51, "Novell"),
    (0x52, "CP/M"),
    (0x52, "Microport SysV/AT"),
    (0x53, "Disk Manager 6.0 Aux3"),
    (0x54, "Disk Manager 6.0 Dynamic Drive Overlay (DDO)"),
    (0x55, "EZ-Drive"),
    (0x56, "Golden Bow VFeature Partitioned Volume."),
    (0x56, "DM converted to EZ-BIOS"),
    (0x57, "DrivePro"),
    (0x57, "VNDI Partition"),
    (0x5C, "Priam EDisk"),
    (0x61, "SpeedStor"),
    (0x63, "Unix System V (SCO, ISC Unix, UnixWare, ...), Mach, GNU Hurd"),
    (0x64, "PC-ARMOUR protected partition"),
    (0x64, "Novell Netware 286, 2.xx"),
    (0x65, "Novell Netware 386, 3.xx or 4.xx"),
    (0x66, "Novell Netware SMS Partition"),
    (0x67, "Novell"),
    (0x68, "Novell"),
    (0x69, "Novell Netware 5+, Novell Netware NSS Partition"),
    (0x70, "DiskSecure Multi-Boot"),
    (0x71, "Reserved"),
    (0x73, "Reserved"),
    (0x74, "Reserved"),
    (0x74, "Scramdisk partition"),
    (0x75, "IBM PC/IX"),
    (0x76, "Reserved"),
    (0x77, "M2FS/M2CS partition"),
    (0x77, "VNDI Partition"),
    (0x78, "XOSL FS"),
    (0x7E, "Unused"),
    (0x7F, "Unused"),
    (0x80, "MINIX until 1.4a"),
    (0x81, "Mitac disk manager"),
    (0x81, "MINIX since 1.4b, early Linux"),
    (0x82, "Prime"),
    (0x82, "Solaris x86"),
    (0x82, "Linux swap"),
    (0x83, "Linux native (usually ext2fs)"),
    (0x84, "OS/2 hidden C: drive"),
    (0x84, "Hibernation partition"),
    (0x85, "Linux extended partition"),
    (0x86, "Old Linux RAID partition superblock"),
    (0x86, "NTFS volume set"),
    (0x87, "NTFS volume set"),
    (0x8A, "Linux Kernel Partition (used by AiR-BOOT)"),
    (0x8B, "Legacy Fault Tolerant FAT32 volume"),
    (0x8C, "Legacy Fault Tolerant FAT32 volume using BIOS extd INT 13h"),
    (0x8D, "Free FDISK hidden Primary DOS FAT12 partitition"),
    (0x8E, "Linux Logical Volume Manager partition"),
    (0x90, "Free FDISK hidden Primary DOS FAT16 partitition"),
    (0x91, "Free FDISK hidden DOS extended partitition"),
    (0x92, "Free FDISK hidden Primary DOS large FAT16 partitition"),
    (0x93, "Hidden Linux native partition"),
    (0x93, "Amoeba"),
    (0x94, "Amoeba bad block table"),
    (0x95, "MIT EXOPC native partitions"),
    (0x97, "Free FDISK hidden Primary DOS FAT32 partitition"),
    (0x98, "Free FDISK hidden Primary DOS FAT32 partitition (LBA)"),
    (0x98, "Datalight ROM-DOS Super-Boot Partition"),
    (0x99, "DCE376 logical drive"),
    (0x9A, "Free FDISK hidden Primary DOS FAT16 partitition (LBA)"),
    (0x9B, "Free FDISK hidden DOS extended partitition (LBA)"),
    (0x9F, "BSD/OS"),
    (0xA0, "Laptop hibernation partition"),
    (0xA1, "Laptop hibernation partition"),
    (0xA1, "HP Volume Expansion (SpeedStor variant)"),
    (0xA3, "HP Volume Expansion (SpeedStor variant)"),
    (0xA4, "HP Volume Expansion (SpeedStor variant)"),
    (0xA5, "BSD/386, 386BSD, NetBSD, FreeBSD"),
    (0xA6, "OpenBSD"),
    (0xA6, "HP Volume Expansion (SpeedStor variant)"),
    (0xA7, "NeXTStep"),
    (0xA8, "Mac OS-X"),
    (0xA9, "NetBSD"),
    (0xAA, "Olivetti Fat 12 1.44MB Service Partition"),
    (0xAB, "Mac OS-X Boot partition"),
    (0xAB, "GO! partition"),
    (0xAE, "ShagOS filesystem"),
    (0xAF, "ShagOS swap partition"),
    (0xAF, "MacOS X HFS"),
    (0xB0, "BootStar Dummy"),
    (0xB1, "HP Volume Expansion (SpeedStor variant)"),
    (0xB3, "HP Volume Expansion (SpeedStor variant)"),
    (0xB4, "HP Volume Expansion (SpeedStor variant)"),
    (0xB6, "HP Volume Expansion (SpeedStor variant)"),
    (0xB6, "Corrupted Windows NT mirror set (master), FAT16 file system"),
    (0xB7, "Corrupted Windows NT mirror set (master), NTFS file system"),
    (0xB7, "BSDI BSD/386 filesystem"),
    (0xB8, "BSDI BSD/386 swap partition"),
    (0xBB, "Boot Wizard hidden"),
    (0xBC, "Acronis backup partition"),
    (0xBE, "Solaris 8 boot partition"),
    (0xBF, "New Solaris x86 partition"),
    (0xC0, "CTOS"),
    (0xC0, "REAL/32 secure small partition"),
    (0xC0, "NTFT Partition"),
    (0xC0, "DR-DOS/Novell DOS secured partition"),
    (0xC1, "DRDOS/secured (FAT-12)"),
    (0xC2, "Unused"),
    (0xC2, "Hidden Linux"),
    (0xC3, "Hidden Linux swap"),
    (0xC4, "DRDOS/secured (FAT-16, < 32M)"),
    (0xC5, "DRDOS/secured (extended)"),
    (0xC6, "DRDOS/secured (FAT-16, >= 32M)"),
    (0xC6, "Windows NT corrupted FAT16 volume/stripe set"),
    (0xC7, "Windows NT corrupted NTFS volume/stripe set"),
    (0xC7, "Syrinx boot"),
    (0xC8, "Reserved for DR-DOS 8.0+"),
    (0xC9, "Reserved for DR-DOS 8.0+"),
    (0xCA, "Reserved for DR-DOS 8.0+"),
    (0xCB, "DR-DOS 7.04+ secured FAT32 (CHS)"),
    (0xCC, "DR-DOS 7.04+ secured FAT32 (LBA)"),
    (0xCD, "CTOS Memdump?"),
    (0xCE, "DR-DOS 7.04+ FAT16X (LBA)"),
    (0xCF, "DR-DOS 7.04+ secured EXT DOS (LBA)"),
    (0xD0, "REAL/32 secure big partition"),
    (0xD0, "Multiuser DOS secured partition"),
    (0xD1, "Old Multiuser DOS secured FAT12"),
    (0xD4, "Old Multiuser DOS secured FAT16 <32M"),
    (0xD5, "Old Multiuser DOS secured extended partition"),
    (0xD6, "Old Multiuser DOS secured FAT16 >=32M"),
    (0xD8, "CP/M-86"),
    (0xDA, "Non-FS Data"),
    (0xDB, "Digital Research CP/M, Concurrent CP/M, Concurrent DOS"),
    (0xDB, "CTOS (Convergent Technologies OS -Unisys)"),
    (0xDB, "KDG Telemetry SCPU boot"),
    (0xDD, "Hidden CTOS Memdump?"),
    (0xDE, "Dell PowerEdge Server utilities (FAT fs)"),
    (0xDF, "DG/UX virtual disk manager partition"),
    (0xDF, "BootIt EMBRM"),
    (0xE0, "Reserved by STMicroelectronics for a filesystem called ST AVFS."),
    (0xE1, "DOS access or SpeedStor 12-bit FAT extended partition"),
    (0xE3, "DOS R/O or SpeedStor"),
    (0xE4, "SpeedStor 16-bit FAT extended partition < 1024 cyl."),
    (0xE5, "Tandy DOS with logical sectored FAT"),
    (0xE5, "Reserved"),
    (0xE6, "Reserved"),
    (0xEB, "BFS (aka BeFS)"),
    (0xEC, "SkyOS SkyFS"),
    (0xED, "Reserved for Matthias Paul's Sprytix"),
    (0xEE, "Indication that this legacy MBR is followed by an EFI header"),
    (0xEF, "Partition that contains an EFI file system"),
    (0xF0, "Linux/PA-RISC boot loader"),
    (0xF1, "SpeedStor"),
    (0xF2, "DOS 3.3+ secondary partition"),
    (0xF3, "Reserved"),
    (0xF4, "SpeedStor large partition"),
    (0xF4, "Prologue single-volume partition"),
    (0xF5, "Prologue multi-volume partition"),
    (0xF6, "Reserved"),
    (0xF7, "DDRdrive Solid State File System"),
    (0xF9, "pCache"),
    (0xFA, "Bochs"),
    (0xFB, "VMware File System partition"),
    (0xFC, "VMware Swap partition"),
    (0xFD, "Linux raid partition with autodetect using persistent superblock"),
    (0xFE, "SpeedStor > 1024 cyl."),
    (0xFE, "LANstep"),
    (0xFE, "IBM PS/2 IML (Initial Microcode Load) partition"),
    (0xFE, "Windows NT Disk Administrator hidden partition"),
    (0xFE, "Linux Logical Volume Manager partition (old)"),
    (0xFF, "Xenix Bad Block Table"),
]


def _build_table(definitions: List[Tuple[int, str]]) -> Dict[int, str]:
    table: Dict[int, str] = {}
    for code, label in definitions:
        table[code] = label
    return table


PARTITION_TYPES: Dict[int, str] = _build_table(PARTITION_TYPE_DEFINITIONS)


def lookup(code: int) -> str:
    """Label for a one-byte partition type code, or "unknown"."""
    return PARTITION_TYPES.get(code, UNKNOWN)


def all_definitions(code: int) -> List[str]:
    """Every historical label for a code, in table order"""
    return [label for c, label in PARTITION_TYPE_DEFINITIONS if c == code]
