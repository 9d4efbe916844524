"""Tests for MCLF header decoding and validation."""

import pytest

from conftest import (
    BSS_LEN,
    DATA_LEN,
    DATA_VA,
    ENTRY,
    MCLIB_ENTRY,
    TEXT_LEN,
    TEXT_VA,
    UUID,
    VERSION_1_0,
    make_mclf,
)
from mclf.core.errors import InvalidHeader, TruncatedHeader
from mclf.parsers.byte_provider import ByteProvider
from mclf.parsers.mclf_parser import (
    MCLF_HEADER_SIZE,
    decode_header,
    decode_text_header,
    flags_string,
    header_struct_type,
    mem_type_string,
    service_type_string,
    text_header_struct_type,
)


def decode(**kwargs):
    return decode_header(ByteProvider(make_mclf(**kwargs)))


class TestDecodeHeader:
    """Decoding of the reference header"""

    def test_layout_fields(self, header):
        assert header.magic == 'MCLF'
        assert header.text_va == TEXT_VA
        assert header.text_len == TEXT_LEN
        assert header.data_va == DATA_VA
        assert header.data_len == DATA_LEN
        assert header.bss_len == BSS_LEN
        assert header.entry == ENTRY

    def test_derived_addresses(self, header):
        assert header.text_end == 0x00100200
        assert header.bss_va == 0x00100300

    def test_pass_through_fields(self, header):
        assert header.version_string == '2.4'
        assert header.flags == 0x4
        assert header.service_type == 2
        assert header.num_instances == 1
        assert header.num_threads == 1
        assert header.uuid == UUID
        assert header.uuid_string == UUID.hex()

    def test_v24_extensions_present(self, header):
        assert header.service_version == 0x00010002
        assert header.permitted_suid == bytes(16)
        assert header.permitted_hw_cfg == 0
        assert header.gp_level == 3
        assert header.attestation_offset == 0

    def test_v1_has_no_extensions(self):
        header = decode(version=VERSION_1_0)
        assert header.version_major == 1
        assert header.service_version is None
        assert header.permitted_suid is None
        assert header.gp_level is None

    def test_decoding_is_deterministic(self, mclf_bytes):
        first = decode_header(ByteProvider(mclf_bytes))
        second = decode_header(ByteProvider(mclf_bytes))
        assert first == second

    def test_thumb_entry_is_reported_not_adjusted(self):
        header = decode(entry=ENTRY + 1)
        assert header.is_thumb_entry
        assert header.entry == ENTRY + 1


class TestHeaderErrors:
    """Fatal header conditions"""

    @pytest.mark.parametrize('length', [0, 4, 40, MCLF_HEADER_SIZE - 1])
    def test_truncated_header(self, length):
        data = make_mclf()[:length]
        with pytest.raises(TruncatedHeader) as exc_info:
            decode_header(ByteProvider(data))
        assert exc_info.value.available == length
        assert exc_info.value.required == MCLF_HEADER_SIZE == 72

    def test_fixed_header_alone_decodes(self):
        data = make_mclf(version=VERSION_1_0)[:MCLF_HEADER_SIZE]
        header = decode_header(ByteProvider(data))
        assert header.text_va == TEXT_VA

    def test_bad_magic(self):
        with pytest.raises(InvalidHeader, match='magic'):
            decode(magic=b'MCLX')

    def test_empty_text(self):
        with pytest.raises(InvalidHeader, match='textLen'):
            decode(text_len=0, entry=TEXT_VA, text_bytes=TEXT_LEN)

    def test_entry_before_text(self):
        with pytest.raises(InvalidHeader, match='entry'):
            decode(entry=TEXT_VA - 4)

    def test_entry_at_text_end(self):
        with pytest.raises(InvalidHeader, match='entry'):
            decode(entry=TEXT_VA + TEXT_LEN)

    def test_text_overflows_address_space(self):
        with pytest.raises(InvalidHeader, match='overflows'):
            decode(text_va=0xFFFFFF00, entry=0xFFFFFF10)

    def test_data_overflows_address_space(self):
        with pytest.raises(InvalidHeader, match='data segment'):
            decode(data_va=0xFFFFFF00, data_len=0x100)

    def test_bss_overflows_address_space(self):
        with pytest.raises(InvalidHeader, match='bss segment'):
            decode(data_va=0xFFFFFE00, data_len=0x100, bss_len=0x200)

    def test_bss_ending_at_top_of_address_space(self):
        header = decode(data_va=0xFFFFFE00, data_len=0x100, bss_len=0x100)
        assert header.bss_va + header.bss_len == 1 << 32


class TestTextHeader:
    """Decoding of the text header at text offset 0x80"""

    def test_decoded(self, provider, header):
        text_header = decode_text_header(provider, header)
        assert text_header is not None
        assert text_header.mclib_entry == MCLIB_ENTRY
        assert text_header.text_header_len == 40
        assert text_header.tlapi_version == 0x00010006

    def test_absent_when_text_is_too_short(self):
        data = make_mclf(text_len=0x90)
        provider = ByteProvider(data)
        header = decode_header(provider)
        assert decode_text_header(provider, header) is None


class TestStructTypes:
    """Overlay descriptors"""

    def test_v1_header_struct(self):
        struct_type = header_struct_type(decode(version=VERSION_1_0))
        assert struct_type.name == 'mclf_header'
        assert struct_type.size == MCLF_HEADER_SIZE
        names = [f.name for f in struct_type.fields]
        assert names[0] == 'magic'
        assert names[-1] == 'entry'

    def test_v24_header_struct(self, header):
        struct_type = header_struct_type(header)
        assert struct_type.size == 104
        offsets = {f.name: f.offset for f in struct_type.fields}
        assert offsets['textVa'] == 0x30
        assert offsets['entry'] == 0x44
        assert offsets['serviceVersion'] == 0x48
        assert offsets['attestationOffset'] == 0x64

    def test_text_header_struct(self):
        struct_type = text_header_struct_type()
        assert struct_type.name == 'mclf_text_header'
        assert struct_type.size == 40
        offsets = {f.name: f.offset for f in struct_type.fields}
        assert offsets['mcLibEntry'] == 0x0C


class TestDisplayHelpers:

    def test_flags(self):
        assert flags_string(0) == 'NONE'
        assert 'DEBUGGABLE' in flags_string(0x4)

    def test_service_and_mem_type(self):
        assert service_type_string(0x7777) == 'UNKNOWN(30583)'
        assert mem_type_string(2) == 'EXTERNAL'
