"""
Header Overlay Projector
========================

Projects the decoded header as a typed structure over the start of the
text segment, and optionally the text header at ``text_va + 0x80``.

Overlays are placed in a fixed priority order: the MCLF header first,
then the text header.  The host rejects an overlay that intersects one
already placed, so when two overlays compete for the same bytes the
higher-priority one is kept and the other is reported and skipped.
"""

from __future__ import annotations

from mclf.core.errors import ImageError
from mclf.core.image import MutableImage
from mclf.core.models import (
    Header,
    LoadOptions,
    Overlay,
    StageResult,
    TextHeader,
)
from mclf.parsers.mclf_parser import (
    MCLF_TEXT_HEADER_OFFSET,
    header_struct_type,
    text_header_struct_type,
)
from shared.logger import LoaderLogger
from shared.models import Diagnostic, DiagnosticKind, Severity


STAGE_NAME: str = "overlay"


def plan_overlays(
    header: Header,
    text_header: TextHeader | None,
    options: LoadOptions,
) -> list[Overlay]:
    """Return the overlays to place, highest priority first."""
    overlays: list[Overlay] = []
    if options.header_overlay:
        overlays.append(Overlay(
            address=header.text_va,
            struct_type=header_struct_type(header),
        ))
    if options.text_header_overlay and text_header is not None:
        overlays.append(Overlay(
            address=header.text_va + MCLF_TEXT_HEADER_OFFSET,
            struct_type=text_header_struct_type(),
        ))
    return overlays


class OverlayProjector:
    """Place structure overlays in a :class:`MutableImage`."""

    def __init__(self, logger: LoaderLogger | None = None) -> None:
        self._logger = logger or LoaderLogger("mclf.overlay")

    def run(self, overlays: list[Overlay], image: MutableImage) -> StageResult:
        result = StageResult(stage=STAGE_NAME)

        for overlay in overlays:
            name = overlay.struct_type.name
            try:
                image.create_structured_overlay(overlay.address, overlay.struct_type)
            except ImageError as exc:
                result.skipped.append(name)
                result.diagnostics.append(Diagnostic(
                    severity=Severity.WARNING,
                    kind=DiagnosticKind.OVERLAY_CONFLICT,
                    stage=STAGE_NAME,
                    message=f"Cannot place {name}: {exc}",
                    address=overlay.address,
                ))
                continue
            result.created.append(name)
            self._logger.debug(
                f"Placed {name} (0x{overlay.struct_type.size:x} bytes) "
                f"at 0x{overlay.address:08x}"
            )

        return result
