"""
MCLF Console Output
===================

Rich-powered terminal display for MCLF loads: the decoded header, the
memory map, created symbols, header overlays and any diagnostics.

Uses the LoaderConsole abstraction for consistent styling.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from typing import Any

from rich.panel import Panel
from rich.table import Table

from shared.console import LoaderConsole

from mclf.core.image import MemoryImage
from mclf.core.models import Header, LoadResult, Overlay, Segment, Symbol
from mclf.parsers.mclf_parser import (
    flags_string,
    mem_type_string,
    service_type_string,
)


_PERMISSION_COLOURS: dict[str, str] = {
    "r-x": "bright_green",
    "rw-": "bright_yellow",
    "r--": "bright_cyan",
}

# Longest overlay value rendered before truncation
_MAX_VALUE_WIDTH: int = 48


def _format_value(value: Any) -> str:
    if isinstance(value, int):
        return f"0x{value:08x}"
    if isinstance(value, bytes):
        text = value.hex()
    elif isinstance(value, list):
        text = ", ".join(f"0x{v:x}" for v in value)
    else:
        text = repr(value)
    if len(text) > _MAX_VALUE_WIDTH:
        text = text[:_MAX_VALUE_WIDTH - 3] + "..."
    return text


# ---------------------------------------------------------------------------
# MclfConsoleOutput
# ---------------------------------------------------------------------------

class MclfConsoleOutput:
    """Rich terminal display for an MCLF load.

    Usage::

        output = MclfConsoleOutput()
        output.display(load_result, image)
    """

    def __init__(self, console: LoaderConsole | None = None) -> None:
        self._console: LoaderConsole = console or LoaderConsole()

    def display(self, result: LoadResult, image: MemoryImage | None = None) -> None:
        """Display the complete load result.

        Overlay field values are shown only when *image* is given.
        """
        self._console.section("MCLF -- MobiCore Loadable Format")

        if result.header is not None:
            self.display_header(result.header)

        if result.segments:
            self.display_segments(result.segments)

        if result.symbols:
            self.display_symbols(result.symbols)

        if result.overlays:
            self.display_overlays(result.overlays, image)

        if result.diagnostics:
            self._console.diagnostics_table(result.diagnostics)
            self._console.blank()

        self._console.divider()

    def display_header(self, header: Header) -> None:
        """Display the decoded header panel."""
        lines: list[str] = [
            f"[bold]Version:[/bold]        {header.version_string}",
            f"[bold]Service Type:[/bold]   {service_type_string(header.service_type)}",
            f"[bold]Memory Type:[/bold]    {mem_type_string(header.mem_type)}",
            f"[bold]Flags:[/bold]          {flags_string(header.flags)}",
            f"[bold]UUID:[/bold]           {header.uuid_string}",
            f"[bold]Instances:[/bold]      {header.num_instances}",
            f"[bold]Threads:[/bold]        {header.num_threads}",
            f"[bold]Entry Point:[/bold]    0x{header.entry:08x}"
            + (" (Thumb)" if header.is_thumb_entry else ""),
        ]
        if header.driver_id:
            lines.append(f"[bold]Driver ID:[/bold]      0x{header.driver_id:x}")
        if header.service_version is not None:
            lines.append(f"[bold]Service Ver:[/bold]    0x{header.service_version:x}")
        if header.gp_level is not None:
            lines.append(f"[bold]GP Level:[/bold]       {header.gp_level}")

        panel = Panel(
            "\n".join(lines),
            title="[bold bright_cyan]MCLF Header[/bold bright_cyan]",
            border_style="bright_cyan",
            padding=(1, 2),
        )
        self._console.rich.print(panel)
        self._console.blank()

    def display_segments(self, segments: list[Segment]) -> None:
        """Display the memory map."""
        self._console.section("Memory Map")

        tbl = Table(
            title="",
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=True,
            padding=(0, 1),
        )
        tbl.add_column("Name", style="bold", min_width=8)
        tbl.add_column("Start", justify="right")
        tbl.add_column("End", justify="right")
        tbl.add_column("Size", justify="right")
        tbl.add_column("Perms")
        tbl.add_column("Source")

        for seg in segments:
            perms = str(seg.permissions)
            colour = _PERMISSION_COLOURS.get(perms, "white")
            source = (
                "[dim]zero-fill[/dim]" if seg.zero_filled
                else f"file @ 0x{seg.file_offset:x}"
            )
            tbl.add_row(
                seg.name,
                f"0x{seg.start:08x}",
                f"0x{seg.end:08x}",
                f"{seg.length:,}",
                f"[{colour}]{perms}[/{colour}]",
                source,
            )

        self._console.rich.print(tbl)
        self._console.blank()

    def display_symbols(self, symbols: list[Symbol]) -> None:
        self._console.table(
            "Symbols",
            ["Name", "Address", "Kind"],
            [(s.name, f"0x{s.address:08x}", s.kind.value) for s in symbols],
            styles=["bold bright_green", "", "dim"],
        )
        self._console.blank()

    def display_overlays(
        self,
        overlays: list[Overlay],
        image: MemoryImage | None = None,
    ) -> None:
        """Display each overlay, with decoded field values if *image* is given."""
        self._console.section("Header Overlays")

        for overlay in overlays:
            values = image.overlay_values(overlay) if image is not None else {}
            tbl = Table(
                title=(
                    f"{overlay.struct_type.name} @ 0x{overlay.address:08x} "
                    f"({overlay.struct_type.size} bytes)"
                ),
                border_style="bright_cyan",
                header_style="bold bright_magenta",
                padding=(0, 1),
            )
            tbl.add_column("Offset", style="dim", justify="right")
            tbl.add_column("Field", style="bold")
            tbl.add_column("Type")
            if values:
                tbl.add_column("Value", justify="right")

            for fld in overlay.struct_type.fields:
                ctype = fld.kind.value + (f"[{fld.count}]" if fld.count > 1 else "")
                row = [f"0x{fld.offset:02x}", fld.name, ctype]
                if values:
                    row.append(_format_value(values.get(fld.name)))
                tbl.add_row(*row)

            self._console.rich.print(tbl)
            self._console.blank()
