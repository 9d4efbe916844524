"""
MCLF Header Decoder
===================

Struct-based decoder for the MobiCore Loadable Format header.  All fields
are little-endian and live at fixed offsets dictated by the secure-world
runtime; they are not a design choice and must match exactly.

Layout (``mclfHeaderV2`` and its extensions)::

    0x00  char[4]   magic              "MCLF"
    0x04  uint32    version            major << 16 | minor
    0x08  uint32    flags
    0x0C  uint32    memType
    0x10  uint32    serviceType
    0x14  uint32    numInstances
    0x18  uint8[16] uuid
    0x28  uint32    driverId
    0x2C  uint32    numThreads
    0x30  uint32    textVa
    0x34  uint32    textLen
    0x38  uint32    dataVa
    0x3C  uint32    dataLen
    0x40  uint32    bssLen
    0x44  uint32    entry
    -------------------------------- fixed header ends (72 bytes)
    0x48  uint32    serviceVersion     major >= 2
    0x4C  uint8[16] permittedSuid      >= 2.3
    0x5C  uint32    permittedHwCfg     >= 2.3
    0x60  uint32    gp_level           >= 2.4
    0x64  uint32    attestationOffset  >= 2.4

The text segment additionally starts with the MCLF header itself and
carries a ``mclfTextHeader`` at offset ``0x80``; its ``mcLibEntry`` word
(offset ``0x8C``) is the runtime-library entry vector.

References:
    - Trustonic. mcLoadFormat.h.
      https://github.com/Trustonic/trustonic-tee-user-space
"""

from __future__ import annotations

import struct

from mclf.core.errors import InvalidHeader, TruncatedHeader
from mclf.core.models import (
    FieldKind,
    Header,
    StructField,
    StructType,
    TextHeader,
)
from mclf.parsers.byte_provider import ByteProvider
from mclf.parsers.magic import MCLF_MAGIC


# ---------------------------------------------------------------------------
# Layout constants
# ---------------------------------------------------------------------------

ADDRESS_SPACE: int = 1 << 32

_HEADER_FIXED = struct.Struct("<4sIIIII16sIIIIIIII")
_HEADER_V2 = struct.Struct("<I")
_HEADER_V23 = struct.Struct("<16sI")
_HEADER_V24 = struct.Struct("<II")
_TEXT_HEADER = struct.Struct("<10I")

MCLF_HEADER_SIZE: int = _HEADER_FIXED.size                      # 72
MCLF_HEADER_SIZE_V2: int = MCLF_HEADER_SIZE + _HEADER_V2.size   # 76
MCLF_HEADER_SIZE_V23: int = MCLF_HEADER_SIZE_V2 + _HEADER_V23.size  # 96
MCLF_HEADER_SIZE_V24: int = MCLF_HEADER_SIZE_V23 + _HEADER_V24.size  # 104

MCLF_TEXT_HEADER_OFFSET: int = 0x80
MCLF_TEXT_HEADER_SIZE: int = _TEXT_HEADER.size                  # 40
MCLF_TEXT_HEADER_MCLIB_ENTRY_OFFSET: int = 0x0C

# Service header flags
MC_SERVICE_HEADER_FLAGS_PERMANENT: int = 1 << 0
MC_SERVICE_HEADER_FLAGS_NO_CONTROL_INTERFACE: int = 1 << 1
MC_SERVICE_HEADER_FLAGS_DEBUGGABLE: int = 1 << 2
MC_SERVICE_HEADER_FLAGS_EXTENDED_LAYOUT: int = 1 << 3

_FLAG_NAMES: dict[int, str] = {
    MC_SERVICE_HEADER_FLAGS_PERMANENT: "PERMANENT",
    MC_SERVICE_HEADER_FLAGS_NO_CONTROL_INTERFACE: "NO_CONTROL_INTERFACE",
    MC_SERVICE_HEADER_FLAGS_DEBUGGABLE: "DEBUGGABLE",
    MC_SERVICE_HEADER_FLAGS_EXTENDED_LAYOUT: "EXTENDED_LAYOUT",
}

_SERVICE_TYPE_NAMES: dict[int, str] = {
    0: "ILLEGAL",
    1: "DRIVER",
    2: "SP_TRUSTLET",
    3: "SYSTEM_TRUSTLET",
    4: "MIDDLEWARE",
}

_MEM_TYPE_NAMES: dict[int, str] = {
    0: "INTERNAL_PREFERRED",
    1: "INTERNAL",
    2: "EXTERNAL",
}


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def decode_header(provider: ByteProvider) -> Header:
    """Decode and validate the MCLF header at offset 0 of *provider*.

    Raises:
        TruncatedHeader: Fewer than :data:`MCLF_HEADER_SIZE` bytes available.
        InvalidHeader: A header invariant does not hold.
    """
    stream = provider.stream()
    stream.seek(0)
    raw = stream.read(MCLF_HEADER_SIZE_V24)
    if len(raw) < MCLF_HEADER_SIZE:
        raise TruncatedHeader(len(raw), MCLF_HEADER_SIZE)

    (
        magic, version, flags, mem_type, service_type, num_instances,
        uuid, driver_id, num_threads,
        text_va, text_len, data_va, data_len, bss_len, entry,
    ) = _HEADER_FIXED.unpack_from(raw, 0)

    if magic != MCLF_MAGIC:
        raise InvalidHeader(f"bad magic {magic!r}, expected {MCLF_MAGIC!r}")

    fields = dict(
        magic=magic.decode("ascii"),
        version=version,
        flags=flags,
        mem_type=mem_type,
        service_type=service_type,
        num_instances=num_instances,
        uuid=uuid,
        driver_id=driver_id,
        num_threads=num_threads,
        text_va=text_va,
        text_len=text_len,
        data_va=data_va,
        data_len=data_len,
        bss_len=bss_len,
        entry=entry,
    )

    major, minor = version >> 16, version & 0xFFFF
    if major >= 2 and len(raw) >= MCLF_HEADER_SIZE_V2:
        (fields["service_version"],) = _HEADER_V2.unpack_from(raw, MCLF_HEADER_SIZE)
    if (major, minor) >= (2, 3) and len(raw) >= MCLF_HEADER_SIZE_V23:
        fields["permitted_suid"], fields["permitted_hw_cfg"] = (
            _HEADER_V23.unpack_from(raw, MCLF_HEADER_SIZE_V2)
        )
    if (major, minor) >= (2, 4) and len(raw) >= MCLF_HEADER_SIZE_V24:
        fields["gp_level"], fields["attestation_offset"] = (
            _HEADER_V24.unpack_from(raw, MCLF_HEADER_SIZE_V23)
        )

    header = Header(**fields)
    validate_header(header)
    return header


def validate_header(header: Header) -> None:
    """Check the invariants load decisions rely on.

    Raises:
        InvalidHeader: Naming the first invariant that does not hold.
    """
    if header.magic != MCLF_MAGIC.decode("ascii"):
        raise InvalidHeader(f"bad magic {header.magic!r}")
    if header.text_len == 0:
        raise InvalidHeader("text segment is empty (textLen == 0)")
    if header.text_end > ADDRESS_SPACE:
        raise InvalidHeader(
            f"text segment 0x{header.text_va:08x}+0x{header.text_len:x} "
            "overflows the address space"
        )
    if not header.text_va <= header.entry < header.text_end:
        raise InvalidHeader(
            f"entry 0x{header.entry:08x} outside text segment "
            f"[0x{header.text_va:08x}, 0x{header.text_end:08x})"
        )
    if header.bss_va >= ADDRESS_SPACE:
        raise InvalidHeader(
            f"data segment 0x{header.data_va:08x}+0x{header.data_len:x} "
            "overflows the address space"
        )
    if header.bss_va + header.bss_len > ADDRESS_SPACE:
        raise InvalidHeader(
            f"bss segment 0x{header.bss_va:08x}+0x{header.bss_len:x} "
            "overflows the address space"
        )


def decode_text_header(provider: ByteProvider, header: Header) -> TextHeader | None:
    """Decode the text header, or ``None`` if it is not inside the text segment."""
    end = MCLF_TEXT_HEADER_OFFSET + MCLF_TEXT_HEADER_SIZE
    if end > header.text_len:
        return None
    raw = provider.read_available(MCLF_TEXT_HEADER_OFFSET, MCLF_TEXT_HEADER_SIZE)
    if len(raw) < MCLF_TEXT_HEADER_SIZE:
        return None
    (
        version, text_header_len, required_features, mclib_entry,
        mclib_data_start, mclib_data_len, mclib_base,
        tlapi_version, drapi_version, ta_properties,
    ) = _TEXT_HEADER.unpack(raw)
    return TextHeader(
        version=version,
        text_header_len=text_header_len,
        required_features=required_features,
        mclib_entry=mclib_entry,
        mclib_data_start=mclib_data_start,
        mclib_data_len=mclib_data_len,
        mclib_base=mclib_base,
        tlapi_version=tlapi_version,
        drapi_version=drapi_version,
        ta_properties=ta_properties,
    )


# ---------------------------------------------------------------------------
# Structure descriptors for overlays
# ---------------------------------------------------------------------------

_HEADER_FIELDS: tuple[StructField, ...] = (
    StructField(name="magic", offset=0x00, kind=FieldKind.CHAR, count=4),
    StructField(name="version", offset=0x04, kind=FieldKind.UINT32),
    StructField(name="flags", offset=0x08, kind=FieldKind.UINT32),
    StructField(name="memType", offset=0x0C, kind=FieldKind.UINT32),
    StructField(name="serviceType", offset=0x10, kind=FieldKind.UINT32),
    StructField(name="numInstances", offset=0x14, kind=FieldKind.UINT32),
    StructField(name="uuid", offset=0x18, kind=FieldKind.UINT8, count=16),
    StructField(name="driverId", offset=0x28, kind=FieldKind.UINT32),
    StructField(name="numThreads", offset=0x2C, kind=FieldKind.UINT32),
    StructField(name="textVa", offset=0x30, kind=FieldKind.UINT32),
    StructField(name="textLen", offset=0x34, kind=FieldKind.UINT32),
    StructField(name="dataVa", offset=0x38, kind=FieldKind.UINT32),
    StructField(name="dataLen", offset=0x3C, kind=FieldKind.UINT32),
    StructField(name="bssLen", offset=0x40, kind=FieldKind.UINT32),
    StructField(name="entry", offset=0x44, kind=FieldKind.UINT32),
)

_HEADER_V2_FIELDS: tuple[StructField, ...] = (
    StructField(name="serviceVersion", offset=0x48, kind=FieldKind.UINT32),
)

_HEADER_V23_FIELDS: tuple[StructField, ...] = (
    StructField(name="permittedSuid", offset=0x4C, kind=FieldKind.UINT8, count=16),
    StructField(name="permittedHwCfg", offset=0x5C, kind=FieldKind.UINT32),
)

_HEADER_V24_FIELDS: tuple[StructField, ...] = (
    StructField(name="gp_level", offset=0x60, kind=FieldKind.UINT32),
    StructField(name="attestationOffset", offset=0x64, kind=FieldKind.UINT32),
)

_TEXT_HEADER_FIELDS: tuple[StructField, ...] = tuple(
    StructField(name=name, offset=i * 4, kind=FieldKind.UINT32)
    for i, name in enumerate((
        "version", "textHeaderLen", "requiredFeat", "mcLibEntry",
        "mcLibDataStart", "mcLibDataLen", "mcLibBase",
        "tlApiVers", "drApiVers", "ta_properties",
    ))
)


def header_struct_type(header: Header) -> StructType:
    """Return the ``mclf_header`` descriptor matching *header*'s version."""
    fields = _HEADER_FIELDS
    if header.service_version is not None:
        fields += _HEADER_V2_FIELDS
    if header.permitted_suid is not None:
        fields += _HEADER_V23_FIELDS
    if header.gp_level is not None:
        fields += _HEADER_V24_FIELDS
    return StructType(name="mclf_header", fields=fields)


def text_header_struct_type() -> StructType:
    """Return the ``mclf_text_header`` descriptor."""
    return StructType(name="mclf_text_header", fields=_TEXT_HEADER_FIELDS)


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------

def flags_string(flags: int) -> str:
    names = [name for bit, name in _FLAG_NAMES.items() if flags & bit]
    return " | ".join(names) if names else "NONE"


def service_type_string(service_type: int) -> str:
    return _SERVICE_TYPE_NAMES.get(service_type, f"UNKNOWN({service_type})")


def mem_type_string(mem_type: int) -> str:
    return _MEM_TYPE_NAMES.get(mem_type, f"UNKNOWN({mem_type})")
