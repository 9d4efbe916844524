"""
Loader Console Interface
========================

Rich-powered console abstraction providing one presentation layer for the
loader command-line tools.

The class wraps :class:`rich.console.Console` and adds convenience methods
for section headers, severity-coloured messages, tables and a diagnostics
table, all with consistent styling.

References:
    - Rich library: https://github.com/Textualize/rich
"""

from __future__ import annotations

from typing import Any, Sequence

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

# ---------------------------------------------------------------------------
# Theme -- consistent palette across all loader output
# ---------------------------------------------------------------------------
_LOADER_THEME = Theme(
    {
        "loader.section": "bold bright_magenta",
        "loader.success": "bold green",
        "loader.warning": "bold yellow",
        "loader.error": "bold red",
        "loader.info": "bold bright_blue",
        "loader.dim": "dim white",
        "loader.highlight": "bold bright_white",
    }
)

_SEVERITY_STYLES: dict[str, str] = {
    "ERROR": "loader.error",
    "WARNING": "loader.warning",
    "INFO": "loader.info",
}


class LoaderConsole:
    """Unified console interface for the loader tools.

    Usage::

        con = LoaderConsole()
        con.section("Memory Map")
        con.success("Image loaded")
    """

    def __init__(self, *, quiet: bool = False, record: bool = False) -> None:
        """Initialise the console.

        Args:
            quiet:  Suppress all output (useful in library / test mode).
            record: Enable Rich recording for HTML / text export.
        """
        self._console = Console(
            theme=_LOADER_THEME,
            quiet=quiet,
            record=record,
            highlight=False,
        )

    @property
    def rich(self) -> Console:
        """Direct access to the underlying Rich Console instance."""
        return self._console

    # ------------------------------------------------------------------ #
    #  Section header
    # ------------------------------------------------------------------ #

    def section(self, title: str) -> None:
        """Print a prominent section header."""
        self._console.rule(
            f"  {title}  ",
            style="loader.section",
            characters="─",
        )
        self._console.print()

    # ------------------------------------------------------------------ #
    #  Message helpers (severity-coloured)
    # ------------------------------------------------------------------ #

    def success(self, message: str) -> None:
        """Print a success message."""
        self._console.print(
            f"[loader.success][✔] SUCCESS:[/loader.success] {message}"
        )

    def warning(self, message: str) -> None:
        """Print a warning message."""
        self._console.print(
            f"[loader.warning][⚠] WARNING:[/loader.warning] {message}"
        )

    def error(self, message: str) -> None:
        """Print an error message."""
        self._console.print(
            f"[loader.error][✘] ERROR:[/loader.error] {message}"
        )

    def info(self, message: str) -> None:
        """Print an informational message."""
        self._console.print(
            f"[loader.info][ℹ] INFO:[/loader.info] {message}"
        )

    # ------------------------------------------------------------------ #
    #  Table display
    # ------------------------------------------------------------------ #

    def table(
        self,
        title: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        caption: str | None = None,
        styles: Sequence[str] | None = None,
    ) -> None:
        """Render a styled Rich table.

        Args:
            title:    Table title.
            columns:  Column header labels.
            rows:     Iterable of row tuples; each element is stringified.
            caption:  Optional footer caption.
            styles:   Optional per-column Rich style strings.
        """
        tbl = Table(
            title=title,
            caption=caption,
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=False,
            padding=(0, 1),
        )
        for idx, col_name in enumerate(columns):
            style = styles[idx] if styles and idx < len(styles) else ""
            tbl.add_column(col_name, style=style)

        for row in rows:
            tbl.add_row(*(str(cell) for cell in row))

        self._console.print(tbl)

    def diagnostics_table(self, diagnostics: Sequence[Any]) -> None:
        """Render a diagnostics table with severity colouring.

        Expects objects with ``severity``, ``kind``, ``stage``, ``address``
        and ``message`` attributes (e.g. :class:`shared.models.Diagnostic`).
        """
        tbl = Table(
            title="Diagnostics",
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=True,
            padding=(0, 1),
        )
        tbl.add_column("#", style="dim", width=4, justify="right")
        tbl.add_column("Severity", width=9)
        tbl.add_column("Stage")
        tbl.add_column("Kind")
        tbl.add_column("Address", justify="right")
        tbl.add_column("Message", ratio=2)

        for idx, diag in enumerate(diagnostics, start=1):
            sev_name = diag.severity.value
            sev_style = _SEVERITY_STYLES.get(sev_name, "")
            address = getattr(diag, "address", None)
            tbl.add_row(
                str(idx),
                f"[{sev_style}]{sev_name}[/{sev_style}]" if sev_style else sev_name,
                diag.stage,
                diag.kind.value,
                f"0x{address:08x}" if address is not None else "-",
                diag.message,
            )

        self._console.print(tbl)

    # ------------------------------------------------------------------ #
    #  Utility
    # ------------------------------------------------------------------ #

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Proxy to :meth:`rich.console.Console.print`."""
        self._console.print(*args, **kwargs)

    def blank(self, count: int = 1) -> None:
        """Print *count* blank lines."""
        for _ in range(count):
            self._console.print()

    def divider(self, style: str = "dim") -> None:
        """Print a thin horizontal rule."""
        self._console.rule(style=style)

    def export_text(self) -> str:
        """Export recorded console output as plain text (requires ``record=True``)."""
        return self._console.export_text()
