"""Shared pytest fixtures for the MCLF loader tests."""

import struct

import pytest

from mclf.core.engine import MclfLoader
from mclf.core.image import MemoryImage
from mclf.parsers.byte_provider import ByteProvider
from mclf.parsers.mclf_parser import decode_header
from shared.logger import LoaderLogger


# Reference trustlet layout used throughout the suite
TEXT_VA = 0x00100000
TEXT_LEN = 0x200
DATA_VA = 0x00100200
DATA_LEN = 0x100
BSS_LEN = 0x80
ENTRY = 0x00100010

VERSION_1_0 = 0x00010000
VERSION_2_4 = 0x00020004

UUID = bytes(range(0x07, 0x17))
MCLIB_ENTRY = 0x07D01000


def make_mclf(**kwargs):
    """
    Build a synthetic MCLF image.

    The header sits at offset 0 of the text segment, the text header at
    offset 0x80, and the data segment follows the text segment in the file.

    Keyword Args:
        magic: Leading four bytes (default: b'MCLF')
        version: Header version word, major << 16 | minor (default: 2.4)
        text_va, text_len, data_va, data_len, bss_len, entry: Layout fields
        flags, mem_type, service_type, num_instances, driver_id, num_threads
        uuid: 16-byte UUID
        text_header: Whether to write a text header at 0x80 (default: True)
        mclib_entry: Value of the text header's mcLibEntry word
        text_bytes: Size of the text segment in the file (default: text_len)
        truncate: If set, cut the file to this many bytes

    Returns:
        The image bytes
    """
    magic = kwargs.get('magic', b'MCLF')
    version = kwargs.get('version', VERSION_2_4)
    text_va = kwargs.get('text_va', TEXT_VA)
    text_len = kwargs.get('text_len', TEXT_LEN)
    data_va = kwargs.get('data_va', DATA_VA)
    data_len = kwargs.get('data_len', DATA_LEN)
    bss_len = kwargs.get('bss_len', BSS_LEN)
    entry = kwargs.get('entry', ENTRY)

    header = struct.pack(
        '<4sIIIII16sIIIIIIII',
        magic,
        version,
        kwargs.get('flags', 0x4),
        kwargs.get('mem_type', 0),
        kwargs.get('service_type', 2),
        kwargs.get('num_instances', 1),
        kwargs.get('uuid', UUID),
        kwargs.get('driver_id', 0),
        kwargs.get('num_threads', 1),
        text_va, text_len, data_va, data_len, bss_len, entry,
    )
    major, minor = version >> 16, version & 0xFFFF
    if major >= 2:
        header += struct.pack('<I', 0x00010002)
    if (major, minor) >= (2, 3):
        header += struct.pack('<16sI', bytes(16), 0)
    if (major, minor) >= (2, 4):
        header += struct.pack('<II', 3, 0)

    text = bytearray(b'\xAA' * kwargs.get('text_bytes', text_len))
    text[:len(header)] = header[:len(text)]
    if kwargs.get('text_header', True) and text_len >= 0x80 + 40:
        text[0x80:0x80 + 40] = struct.pack(
            '<10I',
            0x00010000, 40, 0,
            kwargs.get('mclib_entry', MCLIB_ENTRY),
            0x00200000, 0x1000, 0x07D00000,
            0x00010006, 0, 0,
        )
    data = bytes((i & 0xFF) for i in range(data_len))

    image = bytes(text) + data
    if 'truncate' in kwargs:
        image = image[:kwargs['truncate']]
    return image


@pytest.fixture
def mclf_bytes():
    """Reference MCLF v2.4 image bytes."""
    return make_mclf()


@pytest.fixture
def provider(mclf_bytes):
    """In-memory provider over the reference image."""
    return ByteProvider(mclf_bytes, name='reference.tlbin')


@pytest.fixture
def header(provider):
    """Decoded reference header."""
    return decode_header(provider)


@pytest.fixture
def image():
    """Fresh in-memory host image."""
    return MemoryImage()


@pytest.fixture
def logger():
    """Quiet logger for stages and engines."""
    return LoaderLogger('mclf.tests', log_level='WARNING', console_output=False)


@pytest.fixture
def loader(logger):
    """Loader bound to the quiet logger."""
    return MclfLoader(logger)


@pytest.fixture
def mclf_file(tmp_path, mclf_bytes):
    """Reference image written to disk."""
    path = tmp_path / 'reference.tlbin'
    path.write_bytes(mclf_bytes)
    return path
