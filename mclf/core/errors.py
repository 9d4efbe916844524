"""
MCLF Loader Exceptions
======================

Two independent hierarchies:

``LoadError``
    Fatal conditions.  They abort the load before any region is created
    (or, for :class:`LoadCancelled`, between stages) and propagate to the
    caller.

``ImageError``
    Failures raised by a host image while it is being populated.  The
    pipeline stages catch these and turn them into
    :class:`shared.models.Diagnostic` records; they never abort a load.
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Fatal loader conditions
# ---------------------------------------------------------------------------

class LoadError(Exception):
    """Base class for conditions that prevent producing a usable image."""


class FormatMismatch(LoadError):
    """The byte source does not start with the ``MCLF`` magic."""


class TruncatedHeader(LoadError):
    """Fewer bytes are available than the fixed header length."""

    def __init__(self, available: int, required: int) -> None:
        super().__init__(
            f"MCLF header truncated: {available} byte(s) available, "
            f"{required} required"
        )
        self.available = available
        self.required = required


class InvalidHeader(LoadError):
    """A decoded header field violates a header invariant."""


class TruncatedImage(LoadError):
    """Raw segment bytes could not be read from the byte source."""

    def __init__(self, offset: int, length: int, available: int) -> None:
        super().__init__(
            f"Cannot read 0x{length:x} byte(s) at offset 0x{offset:x}: "
            f"source holds 0x{available:x} byte(s)"
        )
        self.offset = offset
        self.length = length
        self.available = available


class LoadCancelled(LoadError):
    """The caller's cancellation signal was observed between stages."""


# ---------------------------------------------------------------------------
# Host image failures (non-fatal)
# ---------------------------------------------------------------------------

class ImageError(Exception):
    """Base class for failures reported by a mutable image."""


class RegionConflict(ImageError):
    """A region could not be created (e.g. overlaps an existing region)."""


class SymbolConflict(ImageError):
    """An entry point, function or label could not be created."""


class OverlayConflict(ImageError):
    """A structured overlay could not be placed."""
