"""
MCLF Data Models
================

Pydantic-based data models for the MCLF loader: the decoded header, the
memory regions and symbols derived from it, the structure descriptors used
for overlays, and the per-stage and per-load results.

Every model derived from a header is frozen: the header is the single
source of truth and nothing derived from it is mutated after creation.

References:
    - Trustonic. mcLoadFormat.h -- MobiCore Load Format declarations.
      https://github.com/Trustonic/trustonic-tee-user-space
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from shared.config import MclfConfig
from shared.models import Diagnostic


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class LoadStage(str, enum.Enum):
    """Pipeline states, in the order a load walks through them."""
    START = "start"
    SNIFFED = "sniffed"
    DECODED = "decoded"
    MATERIALIZED = "materialized"
    LOADED = "loaded"


class SymbolKind(str, enum.Enum):
    """Kinds of symbols the annotator creates."""
    FUNCTION = "function"
    LABEL = "label"


class FieldKind(str, enum.Enum):
    """Primitive element types usable in a :class:`StructType`."""
    CHAR = "char"
    UINT8 = "uint8_t"
    UINT32 = "uint32_t"


_FIELD_KIND_SIZES: dict[FieldKind, int] = {
    FieldKind.CHAR: 1,
    FieldKind.UINT8: 1,
    FieldKind.UINT32: 4,
}


# ---------------------------------------------------------------------------
# Load specification / options
# ---------------------------------------------------------------------------

class LoadSpec(BaseModel):
    """A supported-format descriptor returned by the sniffer.

    Attributes:
        loader: Display name of the loader that matched.
        language_id: Processor/endianness/size/variant identifier.
        compiler_spec: Calling-convention identifier.
        preferred: Whether the match is exact (highest confidence).
    """
    model_config = ConfigDict(frozen=True)

    loader: str
    language_id: str
    compiler_spec: str = "default"
    preferred: bool = True


class LoadOptions(BaseModel):
    """Caller-tunable loader behaviour.

    Attributes:
        header_overlay: Project the MCLF header structure at ``text_va``.
        text_header_overlay: Also project the text header at ``text_va + 0x80``.
    """
    model_config = ConfigDict(frozen=True)

    header_overlay: bool = True
    text_header_overlay: bool = True

    @classmethod
    def from_config(cls, config: MclfConfig) -> LoadOptions:
        """Build options from the ``[mclf]`` configuration section."""
        return cls(
            header_overlay=config.header_overlay,
            text_header_overlay=config.text_header_overlay,
        )


# ---------------------------------------------------------------------------
# Decoded header
# ---------------------------------------------------------------------------

class Header(BaseModel):
    """Decoded ``mclfHeader`` record.

    Only ``text_va``, ``text_len``, ``data_va``, ``data_len``, ``bss_len``
    and ``entry`` drive load decisions; every other field is pass-through
    data kept for the header overlay and for display.

    Version-dependent fields are ``None`` when the image's header version
    does not carry them.
    """
    model_config = ConfigDict(frozen=True)

    magic: str
    version: int = Field(ge=0)
    flags: int = Field(default=0, ge=0)
    mem_type: int = Field(default=0, ge=0)
    service_type: int = Field(default=0, ge=0)
    num_instances: int = Field(default=0, ge=0)
    uuid: bytes = b"\x00" * 16
    driver_id: int = Field(default=0, ge=0)
    num_threads: int = Field(default=0, ge=0)
    text_va: int = Field(ge=0)
    text_len: int = Field(ge=0)
    data_va: int = Field(ge=0)
    data_len: int = Field(ge=0)
    bss_len: int = Field(ge=0)
    entry: int = Field(ge=0)
    service_version: Optional[int] = None
    permitted_suid: Optional[bytes] = None
    permitted_hw_cfg: Optional[int] = None
    gp_level: Optional[int] = None
    attestation_offset: Optional[int] = None

    @field_validator("uuid", "permitted_suid", mode="before")
    @classmethod
    def _from_hex(cls, value: Any) -> Any:
        if isinstance(value, str):
            return bytes.fromhex(value)
        return value

    @field_serializer("uuid", "permitted_suid")
    def _hex_bytes(self, value: bytes | None) -> str | None:
        return value.hex() if value is not None else None

    @property
    def version_major(self) -> int:
        return self.version >> 16

    @property
    def version_minor(self) -> int:
        return self.version & 0xFFFF

    @property
    def version_string(self) -> str:
        return f"{self.version_major}.{self.version_minor}"

    @property
    def text_end(self) -> int:
        """First address past the text segment."""
        return self.text_va + self.text_len

    @property
    def bss_va(self) -> int:
        """The bss segment starts immediately after data."""
        return self.data_va + self.data_len

    @property
    def is_thumb_entry(self) -> bool:
        """Entry addresses with the low bit set on a word boundary + 1 are Thumb."""
        return self.entry % 4 == 1

    @property
    def uuid_string(self) -> str:
        return self.uuid.hex()


class TextHeader(BaseModel):
    """Decoded ``mclfTextHeader`` found at ``text_va + 0x80``.

    Pass-through data only; ``mclib_entry`` is the word that the
    ``tlApiLibEntry`` label names.
    """
    model_config = ConfigDict(frozen=True)

    version: int = 0
    text_header_len: int = 0
    required_features: int = 0
    mclib_entry: int = 0
    mclib_data_start: int = 0
    mclib_data_len: int = 0
    mclib_base: int = 0
    tlapi_version: int = 0
    drapi_version: int = 0
    ta_properties: int = 0


# ---------------------------------------------------------------------------
# Derived image entities
# ---------------------------------------------------------------------------

class Permissions(BaseModel):
    """Access permissions of a memory region."""
    model_config = ConfigDict(frozen=True)

    read: bool = True
    write: bool = False
    execute: bool = False

    def __str__(self) -> str:
        return (
            ("r" if self.read else "-")
            + ("w" if self.write else "-")
            + ("x" if self.execute else "-")
        )


class Segment(BaseModel):
    """A named contiguous memory region derived from the header.

    Attributes:
        name: Region name (``.text``, ``.data``, ``.bss``).
        start: Virtual start address.
        length: Length in bytes.
        permissions: Read/write/execute flags.
        file_offset: Offset of the backing bytes, or ``None`` for zero-fill.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    start: int = Field(ge=0)
    length: int = Field(ge=0)
    permissions: Permissions
    file_offset: Optional[int] = None

    @property
    def end(self) -> int:
        """First address past the region."""
        return self.start + self.length

    @property
    def zero_filled(self) -> bool:
        return self.file_offset is None

    def contains(self, address: int) -> bool:
        return self.start <= address < self.end


class Symbol(BaseModel):
    """A named address created in the image."""
    model_config = ConfigDict(frozen=True)

    name: str
    address: int = Field(ge=0)
    kind: SymbolKind


class StructField(BaseModel):
    """One member of a :class:`StructType`."""
    model_config = ConfigDict(frozen=True)

    name: str
    offset: int = Field(ge=0)
    kind: FieldKind
    count: int = Field(default=1, ge=1)

    @property
    def size(self) -> int:
        return _FIELD_KIND_SIZES[self.kind] * self.count


class StructType(BaseModel):
    """A typed structure descriptor handed to the host for overlays."""
    model_config = ConfigDict(frozen=True)

    name: str
    fields: tuple[StructField, ...]

    @property
    def size(self) -> int:
        return max((f.offset + f.size for f in self.fields), default=0)


class Overlay(BaseModel):
    """A structure descriptor placed at an address."""
    model_config = ConfigDict(frozen=True)

    address: int = Field(ge=0)
    struct_type: StructType

    @property
    def end(self) -> int:
        return self.address + self.struct_type.size


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class StageResult(BaseModel):
    """Outcome of one image-building stage.

    Attributes:
        stage: Stage name (``materialize``, ``annotate``, ``overlay``).
        created: Names of the entities the stage created in the image.
        skipped: Names of the entities the stage chose not to create.
        diagnostics: Non-fatal conditions the stage observed.
    """
    stage: str
    created: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics


class LoadResult(BaseModel):
    """Everything one load produced.

    ``stage`` is :attr:`LoadStage.LOADED` for every load that returns;
    fatal conditions raise instead of producing a result.
    """
    stage: LoadStage = LoadStage.START
    load_spec: Optional[LoadSpec] = None
    header: Optional[Header] = None
    text_header: Optional[TextHeader] = None
    segments: list[Segment] = Field(default_factory=list)
    symbols: list[Symbol] = Field(default_factory=list)
    overlays: list[Overlay] = Field(default_factory=list)
    stages: list[StageResult] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @property
    def loaded(self) -> bool:
        return self.stage == LoadStage.LOADED

    def summary(self) -> dict[str, Any]:
        return {
            "stage": self.stage.value,
            "segments": len(self.segments),
            "symbols": len(self.symbols),
            "overlays": len(self.overlays),
            "diagnostics": len(self.diagnostics),
        }
