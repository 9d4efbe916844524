"""
Segment Materializer
====================

Derives the three MCLF memory regions from a decoded header and creates
them in the host image:

=========  ==========================  =================================  =====
Region     Address                     Content                            Perms
=========  ==========================  =================================  =====
``.text``  ``text_va``                 file ``[0, text_len)``             r-x
``.data``  ``data_va``                 file ``[text_len, +data_len)``     rw-
``.bss``   ``data_va + data_len``      zero-fill, ``bss_len`` bytes       rw-
=========  ==========================  =================================  =====

Zero-length regions are skipped.  Backing bytes are extracted for every
region before the first region is created, so a short source aborts the
load with nothing created.  Each creation is attempted independently.
"""

from __future__ import annotations

from typing import Optional

from mclf.core.errors import ImageError
from mclf.core.image import MutableImage
from mclf.core.models import Header, Permissions, Segment, StageResult
from mclf.parsers.byte_provider import ByteProvider
from shared.logger import LoaderLogger
from shared.models import Diagnostic, DiagnosticKind, Severity


STAGE_NAME: str = "materialize"

TEXT_PERMISSIONS = Permissions(read=True, write=False, execute=True)
DATA_PERMISSIONS = Permissions(read=True, write=True, execute=False)


def plan_segments(header: Header) -> list[Segment]:
    """Return the ``.text``, ``.data`` and ``.bss`` segments for *header*."""
    return [
        Segment(
            name=".text",
            start=header.text_va,
            length=header.text_len,
            permissions=TEXT_PERMISSIONS,
            file_offset=0,
        ),
        Segment(
            name=".data",
            start=header.data_va,
            length=header.data_len,
            permissions=DATA_PERMISSIONS,
            file_offset=header.text_len,
        ),
        Segment(
            name=".bss",
            start=header.bss_va,
            length=header.bss_len,
            permissions=DATA_PERMISSIONS,
            file_offset=None,
        ),
    ]


class SegmentMaterializer:
    """Create planned segments in a :class:`MutableImage`.

    Usage::

        materializer = SegmentMaterializer()
        segments = plan_segments(header)
        contents = materializer.extract(provider, segments)
        result = materializer.run(segments, contents, image)
    """

    def __init__(self, logger: LoaderLogger | None = None) -> None:
        self._logger = logger or LoaderLogger("mclf.materializer")

    def extract(
        self,
        provider: ByteProvider,
        segments: list[Segment],
    ) -> dict[str, Optional[bytes]]:
        """Read the backing bytes of every non-empty segment.

        Zero-filled segments map to ``None``.

        Raises:
            TruncatedImage: If any backed segment extends past the source.
        """
        contents: dict[str, Optional[bytes]] = {}
        for seg in segments:
            if seg.length == 0:
                continue
            if seg.zero_filled:
                contents[seg.name] = None
            else:
                contents[seg.name] = provider.read(seg.file_offset, seg.length)
        return contents

    def run(
        self,
        segments: list[Segment],
        contents: dict[str, Optional[bytes]],
        image: MutableImage,
    ) -> StageResult:
        result = StageResult(stage=STAGE_NAME)

        for seg in segments:
            if seg.length == 0:
                self._logger.debug(f"Skipping empty segment {seg.name}")
                result.skipped.append(seg.name)
                continue
            try:
                image.create_region(
                    seg.name,
                    seg.start,
                    seg.length,
                    contents.get(seg.name),
                    seg.permissions,
                )
            except ImageError as exc:
                result.diagnostics.append(Diagnostic(
                    severity=Severity.ERROR,
                    kind=DiagnosticKind.REGION_CONFLICT,
                    stage=STAGE_NAME,
                    message=f"Cannot create {seg.name}: {exc}",
                    address=seg.start,
                ))
                continue

            result.created.append(seg.name)
            self._logger.debug(
                f"Created {seg.name} [0x{seg.start:08x}, 0x{seg.end:08x}) "
                f"{seg.permissions}{' zero-filled' if seg.zero_filled else ''}"
            )

        return result
