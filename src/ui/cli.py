"""
DiskMap - Command-Line Interface
Partition map inspection with rich terminal output

Features:
- MBR layout, boot sector fields and legacy partition table
- GPT header and partition entries
- Decode diagnostics
- JSON report export

Dependencies:
    pip install click rich
"""

import click
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from app import DiskMapApp
from diskmap import __version__
from diskmap.errors import DecodeError
from diskmap.layout import DiskLayout
from diskmap.mbr import ModernWindowsBootCode, NewLdrBootCode
from diskmap.partition_types import all_definitions, lookup
from utils import check_root_permissions, format_sectors, list_block_devices

console = Console()


def _mbr_table(layout: DiskLayout) -> Table:
    mbr = layout.mbr
    table = Table(title=f"MBR partition table ({mbr.layout_kind.value})", box=box.ROUNDED)
    table.add_column("Slot", style="cyan bold")
    table.add_column("Boot", style="yellow")
    table.add_column("Type", style="white")
    table.add_column("Start CHS", style="dim")
    table.add_column("End CHS", style="dim")
    table.add_column("First LBA", justify="right")
    table.add_column("Sectors", justify="right")
    table.add_column("Size", justify="right", style="green")

    for p in mbr.partitions:
        table.add_row(
            str(p.slot),
            f"0x{p.boot_indicator:02X}" + (" *" if p.is_bootable else ""),
            f"0x{p.partition_type:02X} {p.type_name}",
            str(p.chs_start),
            str(p.chs_end),
            str(p.first_lba),
            str(p.sector_count),
            format_sectors(p.sector_count, layout.sector_size),
        )
    return table


def _boot_sector_panel(layout: DiskLayout) -> Panel:
    mbr = layout.mbr
    info = Table(show_header=False, box=box.SIMPLE)
    info.add_column(style="cyan bold")
    info.add_column(style="white")

    info.add_row("Layout", mbr.layout_kind.value)
    signature_style = "green" if mbr.has_valid_signature else "red"
    info.add_row("Boot signature", f"[{signature_style}]0x{mbr.boot_signature:04X}[/{signature_style}]")
    info.add_row("Boot code", f"{len(mbr.boot.boot_code)} bytes")

    boot = mbr.boot
    if isinstance(boot, ModernWindowsBootCode):
        info.add_row("Disk signature", f"0x{boot.disk_signature:08X}")
        info.add_row("Original drive", f"0x{boot.original_drive:02X}")
        info.add_row("Timestamp", boot.disk_timestamp)
        info.add_row("Copy protected", "yes" if boot.is_copy_protected else "no")
    elif isinstance(boot, NewLdrBootCode):
        info.add_row("Loader LBA", str(boot.loader_lba))
        info.add_row("Loader CHS", str(boot.loader_chs))
        info.add_row("Physical drive", f"0x{boot.physical_drive:02X}")
        info.add_row("Checksum", f"0x{boot.checksum:04X}")
        if boot.aap_partition is not None:
            aap = boot.aap_partition
            info.add_row("AAP partition", f"0x{aap.partition_type:02X} at LBA {aap.first_lba}")

    return Panel(info, title="[bold blue]Master Boot Record[/bold blue]", border_style="blue")


def _gpt_tables(layout: DiskLayout):
    gpt = layout.gpt
    header = gpt.header

    info = Table(show_header=False, box=box.SIMPLE)
    info.add_column(style="cyan bold")
    info.add_column(style="white")
    info.add_row("Disk GUID", str(header.disk_guid))
    info.add_row("Revision", header.revision_string)
    info.add_row("Header LBA / backup", f"{header.current_lba} / {header.backup_lba}")
    info.add_row("Usable LBAs", f"{header.first_usable_lba} - {header.last_usable_lba}")
    info.add_row("Entry array", f"LBA {header.first_entry_lba}, {header.num_entries} x {header.entry_size} bytes")
    info.add_row("Entries decoded",
                 f"{len(gpt.entries)} ({gpt.count_policy.value}; header declares {gpt.declared_entry_count})")

    entries = Table(title="GPT partition entries", box=box.ROUNDED)
    entries.add_column("#", style="cyan bold")
    entries.add_column("Name", style="white")
    entries.add_column("Type", style="yellow")
    entries.add_column("First LBA", justify="right")
    entries.add_column("Last LBA", justify="right")
    entries.add_column("Size", justify="right", style="green")
    entries.add_column("Flags", style="dim")

    for e in gpt.used_entries():
        entries.add_row(
            str(e.index),
            e.name,
            e.type_name if e.type_name != "unknown" else str(e.type_guid),
            str(e.first_lba),
            str(e.last_lba),
            format_sectors(e.sector_count, layout.sector_size),
            ", ".join(e.flags.names()),
        )

    return Panel(info, title="[bold blue]GPT Header[/bold blue]", border_style="blue"), entries


@click.group()
@click.version_option(__version__, prog_name="diskmap")
def cli():
    """DiskMap - MBR and GPT partition map decoder"""


@cli.command()
def version():
    """Show version information"""
    from diskmap.disasm import HAS_CAPSTONE

    version_info = Table(show_header=False, box=box.ROUNDED)
    version_info.add_column(style="cyan bold")
    version_info.add_column(style="white")

    version_info.add_row("Application", "DiskMap")
    version_info.add_row("Version", __version__)
    version_info.add_row("Python", f"{sys.version.split()[0]}")
    version_info.add_row("Disassembler", "capstone" if HAS_CAPSTONE else "Not Available")

    console.print(Panel(version_info, title="[bold blue]Version Information[/bold blue]", border_style="blue"))


@cli.command()
@click.argument('image_path', type=click.Path(exists=True))
@click.option('--config', 'config_path', type=click.Path(exists=True), help='JSON configuration file')
@click.option('--sector-size', type=int, help='Logical sector size in bytes')
@click.option('--entry-count', type=click.Choice(['header', 'usable-range']),
              help='Source of the GPT entry count (default: header)')
@click.option('--no-crc', is_flag=True, help='Skip GPT CRC-32 verification')
@click.option('--disasm', is_flag=True, help='Include boot code disassembly (needs capstone)')
@click.option('--json', 'as_json', is_flag=True, help='Print the layout as JSON')
@click.option('--output', '-o', type=click.Path(), help='Write a JSON report to this file')
def analyze(image_path, config_path, sector_size, entry_count, no_crc, disasm, as_json, output):
    """Decode the partition map of a disk image or device"""
    overrides = {
        "sector_size": sector_size,
        "gpt_entry_count": entry_count.replace('-', '_') if entry_count else None,
        "verify_crc": False if no_crc else None,
        "disassemble_boot_code": True if disasm else None,
        "log_level": "ERROR" if as_json else None,
    }
    app = DiskMapApp(Path(config_path) if config_path else None, overrides)

    if not as_json and str(image_path).startswith('/dev/') and not check_root_permissions():
        console.print("[yellow]⚠ Raw device access usually needs root permissions[/yellow]")

    try:
        layout = app.analyze(image_path)
    except (DecodeError, OSError) as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        sys.exit(1)

    if output:
        report_path = app.export_report(layout, output)
        if not as_json:
            console.print(f"[green]Report written:[/green] {report_path}")

    if as_json:
        click.echo(json.dumps(app.layout_to_dict(layout), indent=2))
        return

    console.print(_boot_sector_panel(layout))
    console.print(_mbr_table(layout))

    if layout.gpt is not None:
        header_panel, entries = _gpt_tables(layout)
        console.print(header_panel)
        console.print(entries)
    else:
        console.print("[dim]No GPT present[/dim]")

    if app.config.get("disassemble_boot_code"):
        listing = app.disassemble(layout)
        if listing:
            code = Table(title="Boot code", box=box.SIMPLE)
            code.add_column("Address", style="cyan")
            code.add_column("Instruction", style="white")
            for insn in listing:
                code.add_row(insn["address"], f"{insn['mnemonic']} {insn['operands']}")
            console.print(code)
        else:
            console.print("[yellow]Disassembly unavailable (pip install capstone)[/yellow]")

    if layout.diagnostics:
        console.print("\n[bold yellow]Diagnostics:[/bold yellow]")
        for d in layout.diagnostics:
            console.print(f"  • [yellow]{d.code.value}[/yellow] {d.message}")


@cli.command('lookup')
@click.argument('code')
def lookup_type(code):
    """Show the label of an MBR partition type code (e.g. 0x83)"""
    try:
        value = int(code, 0)
    except ValueError:
        raise click.BadParameter(f"Not an integer: {code}", param_hint='CODE')
    if not 0 <= value <= 0xFF:
        raise click.BadParameter(f"Type codes are one byte: {code}", param_hint='CODE')

    console.print(f"[bold cyan]0x{value:02X}[/bold cyan] {lookup(value)}")
    aliases = all_definitions(value)
    if len(aliases) > 1:
        console.print("[dim]Historical definitions:[/dim]")
        for label in aliases:
            console.print(f"  • {label}")


@cli.command()
def devices():
    """List block devices that can be analyzed"""
    device_list = list_block_devices()
    if not device_list:
        console.print("[yellow]No devices found[/yellow]\n")
        return

    table = Table(title=f"Found {len(device_list)} device(s)", box=box.ROUNDED)
    table.add_column("Device", style="cyan")
    table.add_column("Mount", style="white")
    table.add_column("Filesystem", style="yellow")
    for d in device_list:
        table.add_row(d['device'], d['mountpoint'], d['fstype'])
    console.print(table)


def main():
    """Main CLI entry point"""
    cli()


if __name__ == "__main__":
    main()
