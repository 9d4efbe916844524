"""
Byte Provider
=============

Random-access, read-only view over the raw bytes of one image.

A provider is built from in-memory bytes, from a path, or from a seekable
binary file object.  File-backed providers read lazily; every read is
bounded and either returns exactly the requested number of bytes or
raises :class:`~mclf.core.errors.TruncatedImage`.
"""

from __future__ import annotations

import io
import os
from pathlib import Path
from typing import BinaryIO, Union

from mclf.core.errors import TruncatedImage

ByteSource = Union[bytes, bytearray, memoryview, BinaryIO]


class ByteProvider:
    """Read-only random access to image bytes.

    Usage::

        provider = ByteProvider(data)
        magic = provider.read(0, 4)

        with ByteProvider.open("trustlet.tlbin") as provider:
            ...
    """

    def __init__(self, source: ByteSource, name: str = "<memory>") -> None:
        self._name = name
        self._owned: BinaryIO | None = None
        if isinstance(source, (bytes, bytearray, memoryview)):
            self._data: bytes | None = bytes(source)
            self._file: BinaryIO | None = None
            self._length = len(self._data)
        else:
            self._data = None
            self._file = source
            self._length = source.seek(0, os.SEEK_END)

    @classmethod
    def open(cls, path: str | Path) -> ByteProvider:
        """Open *path* as a file-backed provider (closed by :meth:`close`)."""
        fh = open(path, "rb")
        provider = cls(fh, name=str(path))
        provider._owned = fh
        return provider

    # ------------------------------------------------------------------ #
    #  Accessors
    # ------------------------------------------------------------------ #

    @property
    def name(self) -> str:
        return self._name

    @property
    def length(self) -> int:
        return self._length

    def __len__(self) -> int:
        return self._length

    def read(self, offset: int, length: int) -> bytes:
        """Return exactly *length* bytes starting at *offset*.

        Raises:
            TruncatedImage: If the range extends past the end of the source.
        """
        if offset < 0 or length < 0 or offset + length > self._length:
            raise TruncatedImage(offset, length, self._length)
        if self._data is not None:
            return self._data[offset:offset + length]

        assert self._file is not None
        self._file.seek(offset)
        chunk = self._file.read(length)
        if len(chunk) != length:
            raise TruncatedImage(offset, length, offset + len(chunk))
        return chunk

    def read_available(self, offset: int, length: int) -> bytes:
        """Return up to *length* bytes at *offset*, fewer near the end."""
        end = min(offset + length, self._length)
        if offset >= end:
            return b""
        return self.read(offset, end - offset)

    def stream(self) -> BinaryIO:
        """Return a sequential stream over the whole source, at offset 0.

        File-backed providers hand out their own file object, so the
        stream shares its position with :meth:`read`.
        """
        if self._data is not None:
            return io.BytesIO(self._data)
        assert self._file is not None
        self._file.seek(0)
        return self._file

    # ------------------------------------------------------------------ #
    #  Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        if self._owned is not None:
            self._owned.close()
            self._owned = None

    def __enter__(self) -> ByteProvider:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ByteProvider(name={self._name!r}, length={self._length})"
