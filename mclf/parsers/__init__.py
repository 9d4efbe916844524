"""
MCLF Parsers
============

Byte access, format sniffing and header decoding for MCLF images.
"""

from mclf.parsers.byte_provider import ByteProvider
from mclf.parsers.magic import FormatSniffer
from mclf.parsers.mclf_parser import decode_header, decode_text_header

__all__ = [
    "ByteProvider",
    "FormatSniffer",
    "decode_header",
    "decode_text_header",
]
