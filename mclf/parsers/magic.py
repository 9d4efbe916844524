"""
MCLF Format Sniffer
===================

Confirms that a byte source begins with the MCLF magic marker and reports
the fixed target the format implies.

Identification follows a signature-table approach: each candidate
signature is a magic byte pattern at an offset, and the first match in the
table wins.  MCLF images carry the four ASCII bytes ``"MCLF"`` at offset 0
and always target 32-bit little-endian ARM with the default calling
convention.

A mismatch is not an error: :meth:`FormatSniffer.find_supported_load_specs`
returns an empty list so that a host can probe several formats in turn.
"""

from __future__ import annotations

from dataclasses import dataclass

from mclf.core.errors import TruncatedImage
from mclf.core.models import LoadSpec
from mclf.parsers.byte_provider import ByteProvider


MCLF_MAGIC: bytes = b"MCLF"

LOADER_NAME: str = "MobiCore Loadable Format (MCLF)"
LANGUAGE_ID: str = "ARM:LE:32:v7"
COMPILER_SPEC: str = "default"


@dataclass(frozen=True, slots=True)
class _Signature:
    """A single magic signature entry.

    Attributes:
        magic: Byte pattern to match.
        offset: Byte offset within the file where *magic* is expected.
        description: Human-readable type description.
    """
    magic: bytes
    offset: int
    description: str


_SIGNATURES: list[_Signature] = [
    _Signature(MCLF_MAGIC, 0, "MobiCore Loadable Format image"),
]


class FormatSniffer:
    """Identify MCLF images from their leading bytes.

    Usage::

        sniffer = FormatSniffer()
        specs = sniffer.find_supported_load_specs(provider)
        if specs:
            loader.load(provider, specs[0], options, image)
    """

    def __init__(self) -> None:
        self._signatures = list(_SIGNATURES)

    def identify(self, data: bytes) -> str:
        """Return a descriptive type string for *data*."""
        if not data:
            return "Empty file"
        match = self._match(data)
        return match.description if match else "Unknown binary"

    def find_supported_load_specs(self, provider: ByteProvider) -> list[LoadSpec]:
        """Return the load specs *provider* supports (empty when none).

        Reads exactly ``len(MCLF_MAGIC)`` bytes at offset 0 and compares
        them case-sensitively against the magic.
        """
        try:
            magic = provider.read(0, len(MCLF_MAGIC))
        except TruncatedImage:
            return []
        if magic != MCLF_MAGIC:
            return []
        return [
            LoadSpec(
                loader=LOADER_NAME,
                language_id=LANGUAGE_ID,
                compiler_spec=COMPILER_SPEC,
                preferred=True,
            )
        ]

    def _match(self, data: bytes) -> _Signature | None:
        for sig in self._signatures:
            end = sig.offset + len(sig.magic)
            if end <= len(data) and data[sig.offset:end] == sig.magic:
                return sig
        return None
