"""
Mutable Image Capability Interface
==================================

:class:`MutableImage` is the small set of capabilities the loader needs
from a host's program database.  It is injected into every load call; the
loader never keeps a reference to it between calls.

Implementations signal failures by raising
:class:`~mclf.core.errors.ImageError` subclasses.  The pipeline stages
catch exactly those and report them as diagnostics.

:class:`MemoryImage` is a self-contained, in-memory implementation used
by the command-line tool and by the test-suite.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from mclf.core.errors import OverlayConflict, RegionConflict, SymbolConflict
from mclf.core.models import (
    FieldKind,
    Overlay,
    Permissions,
    StructType,
    Symbol,
    SymbolKind,
)
from shared.models import Severity


DiagnosticSink = Callable[[Severity, str], None]


class CancellationSignal(Protocol):
    """Anything exposing ``is_set()``, e.g. :class:`threading.Event`."""

    def is_set(self) -> bool: ...


@runtime_checkable
class MutableImage(Protocol):
    """Capabilities required from the host image."""

    def create_region(
        self,
        name: str,
        address: int,
        length: int,
        content: Optional[bytes],
        permissions: Permissions,
    ) -> None:
        """Create a region; ``content=None`` requests zero-fill."""
        ...

    def add_entry_point(self, address: int) -> None:
        ...

    def create_function(self, address: int, name: str) -> None:
        ...

    def create_label(self, address: int, name: str) -> None:
        ...

    def create_structured_overlay(self, address: int, struct_type: StructType) -> None:
        ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

@dataclass
class MemoryRegion:
    """A region created in a :class:`MemoryImage`."""
    name: str
    start: int
    length: int
    permissions: Permissions
    content: Optional[bytes] = None

    @property
    def end(self) -> int:
        return self.start + self.length

    @property
    def zero_filled(self) -> bool:
        return self.content is None

    def contains(self, address: int) -> bool:
        return self.start <= address < self.end


@dataclass
class MemoryImage:
    """Dictionary-backed :class:`MutableImage`.

    Rules enforced, each raising the matching ``ImageError``:

    - regions are non-empty and never overlap;
    - functions live in executable memory, labels in mapped memory;
    - a symbol name is bound to one address only;
    - overlays lie in backed memory and never overlap each other.
    """
    regions: list[MemoryRegion] = field(default_factory=list)
    entry_points: list[int] = field(default_factory=list)
    symbols: dict[str, Symbol] = field(default_factory=dict)
    overlays: list[Overlay] = field(default_factory=list)

    # ------------------------------------------------------------------ #
    #  MutableImage capabilities
    # ------------------------------------------------------------------ #

    def create_region(
        self,
        name: str,
        address: int,
        length: int,
        content: Optional[bytes],
        permissions: Permissions,
    ) -> None:
        if length <= 0:
            raise RegionConflict(f"{name}: region length must be positive")
        if content is not None and len(content) != length:
            raise RegionConflict(
                f"{name}: 0x{len(content):x} content byte(s) for a "
                f"0x{length:x} byte region"
            )
        end = address + length
        for region in self.regions:
            if region.name == name:
                raise RegionConflict(f"region {name} already exists")
            if address < region.end and region.start < end:
                raise RegionConflict(
                    f"{name} [0x{address:08x}, 0x{end:08x}) overlaps "
                    f"{region.name} [0x{region.start:08x}, 0x{region.end:08x})"
                )
        self.regions.append(
            MemoryRegion(name, address, length, permissions, content)
        )
        self.regions.sort(key=lambda r: r.start)

    def add_entry_point(self, address: int) -> None:
        if self.region_at(address) is None:
            raise SymbolConflict(f"entry point 0x{address:08x} is not mapped")
        if address not in self.entry_points:
            self.entry_points.append(address)

    def create_function(self, address: int, name: str) -> None:
        region = self.region_at(address)
        if region is None or not region.permissions.execute:
            raise SymbolConflict(
                f"function {name} at 0x{address:08x} is not in executable memory"
            )
        self._bind(Symbol(name=name, address=address, kind=SymbolKind.FUNCTION))

    def create_label(self, address: int, name: str) -> None:
        if self.region_at(address) is None:
            raise SymbolConflict(f"label {name} at 0x{address:08x} is not mapped")
        self._bind(Symbol(name=name, address=address, kind=SymbolKind.LABEL))

    def create_structured_overlay(self, address: int, struct_type: StructType) -> None:
        overlay = Overlay(address=address, struct_type=struct_type)
        for existing in self.overlays:
            if overlay.address < existing.end and existing.address < overlay.end:
                raise OverlayConflict(
                    f"{struct_type.name} at 0x{address:08x} overlaps "
                    f"{existing.struct_type.name} at 0x{existing.address:08x}"
                )
        region = self.region_at(address)
        if region is None or region.zero_filled or overlay.end > region.end:
            raise OverlayConflict(
                f"{struct_type.name} at 0x{address:08x} "
                f"(0x{struct_type.size:x} bytes) is not in backed memory"
            )
        self.overlays.append(overlay)

    # ------------------------------------------------------------------ #
    #  Inspection
    # ------------------------------------------------------------------ #

    def region_at(self, address: int) -> MemoryRegion | None:
        for region in self.regions:
            if region.contains(address):
                return region
        return None

    def region(self, name: str) -> MemoryRegion | None:
        for region in self.regions:
            if region.name == name:
                return region
        return None

    def read(self, address: int, length: int) -> bytes:
        """Read *length* bytes from a single region (zero-fill reads as 0)."""
        region = self.region_at(address)
        if region is None or address + length > region.end:
            raise RegionConflict(
                f"0x{length:x} byte(s) at 0x{address:08x} are not mapped"
            )
        offset = address - region.start
        if region.content is None:
            return bytes(length)
        return region.content[offset:offset + length]

    def symbol(self, name: str) -> Symbol | None:
        return self.symbols.get(name)

    def symbols_at(self, address: int) -> list[Symbol]:
        return [s for s in self.symbols.values() if s.address == address]

    def overlay_values(self, overlay: Overlay) -> dict[str, Any]:
        """Decode *overlay*'s fields from the mapped bytes."""
        raw = self.read(overlay.address, overlay.struct_type.size)
        values: dict[str, Any] = {}
        for fld in overlay.struct_type.fields:
            chunk = raw[fld.offset:fld.offset + fld.size]
            if fld.kind == FieldKind.CHAR:
                values[fld.name] = chunk.decode("ascii", errors="replace")
            elif fld.kind == FieldKind.UINT8:
                values[fld.name] = chunk if fld.count > 1 else chunk[0]
            else:
                items = struct.unpack(f"<{fld.count}I", chunk)
                values[fld.name] = items[0] if fld.count == 1 else list(items)
        return values

    def _bind(self, symbol: Symbol) -> None:
        existing = self.symbols.get(symbol.name)
        if existing is not None and existing.address != symbol.address:
            raise SymbolConflict(
                f"{symbol.name} already bound to 0x{existing.address:08x}"
            )
        self.symbols[symbol.name] = symbol
