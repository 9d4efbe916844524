"""
Entry & Symbol Annotator
========================

Marks the header's entry address as an entry point with a ``_entry``
function, and places the ``tlApiLibEntry`` label on the runtime-library
entry vector, which the secure-world runtime keeps at a fixed offset of
``0x8C`` into the text segment (the ``mcLibEntry`` word of the text
header).

Every host call is isolated: a failure becomes a diagnostic and the
remaining annotations are still attempted.
"""

from __future__ import annotations

from typing import Callable

from mclf.core.errors import ImageError
from mclf.core.image import MutableImage
from mclf.core.models import Header, StageResult, Symbol, SymbolKind
from mclf.stages.materializer import plan_segments
from shared.logger import LoaderLogger
from shared.models import Diagnostic, DiagnosticKind, Severity


STAGE_NAME: str = "annotate"

ENTRY_FUNCTION_NAME: str = "_entry"
LIB_ENTRY_LABEL_NAME: str = "tlApiLibEntry"
LIB_ENTRY_OFFSET: int = 0x8C


def plan_symbols(header: Header) -> list[Symbol]:
    """Return the entry function and the library-entry label for *header*."""
    return [
        Symbol(name=ENTRY_FUNCTION_NAME, address=header.entry, kind=SymbolKind.FUNCTION),
        Symbol(
            name=LIB_ENTRY_LABEL_NAME,
            address=header.text_va + LIB_ENTRY_OFFSET,
            kind=SymbolKind.LABEL,
        ),
    ]


class SymbolAnnotator:
    """Create the entry point and the fixed-offset label in an image."""

    def __init__(self, logger: LoaderLogger | None = None) -> None:
        self._logger = logger or LoaderLogger("mclf.annotator")

    def run(self, header: Header, image: MutableImage) -> StageResult:
        result = StageResult(stage=STAGE_NAME)

        for symbol in plan_symbols(header):
            if symbol.kind == SymbolKind.FUNCTION:
                self._annotate_entry(symbol, image, result)
            else:
                self._annotate_label(symbol, header, image, result)

        return result

    # ------------------------------------------------------------------ #
    #  Annotations
    # ------------------------------------------------------------------ #

    def _annotate_entry(
        self,
        symbol: Symbol,
        image: MutableImage,
        result: StageResult,
    ) -> None:
        self._attempt(
            lambda: image.add_entry_point(symbol.address),
            f"entry point 0x{symbol.address:08x}",
            symbol.address,
            result,
        )
        if self._attempt(
            lambda: image.create_function(symbol.address, symbol.name),
            f"function {symbol.name}",
            symbol.address,
            result,
        ):
            result.created.append(symbol.name)
            self._logger.debug(f"Entry function {symbol.name} at 0x{symbol.address:08x}")

    def _annotate_label(
        self,
        symbol: Symbol,
        header: Header,
        image: MutableImage,
        result: StageResult,
    ) -> None:
        text = plan_segments(header)[0]
        if not text.contains(symbol.address):
            result.skipped.append(symbol.name)
            result.diagnostics.append(Diagnostic(
                severity=Severity.WARNING,
                kind=DiagnosticKind.SYMBOL_CONFLICT,
                stage=STAGE_NAME,
                message=(
                    f"Label {symbol.name} at 0x{symbol.address:08x} lies outside "
                    f"the text segment [0x{text.start:08x}, 0x{text.end:08x})"
                ),
                address=symbol.address,
            ))
            return

        if self._attempt(
            lambda: image.create_label(symbol.address, symbol.name),
            f"label {symbol.name}",
            symbol.address,
            result,
        ):
            result.created.append(symbol.name)
            self._logger.debug(f"Label {symbol.name} at 0x{symbol.address:08x}")

    @staticmethod
    def _attempt(
        action: Callable[[], None],
        what: str,
        address: int,
        result: StageResult,
    ) -> bool:
        try:
            action()
        except ImageError as exc:
            result.diagnostics.append(Diagnostic(
                severity=Severity.ERROR,
                kind=DiagnosticKind.SYMBOL_CONFLICT,
                stage=STAGE_NAME,
                message=f"Cannot create {what}: {exc}",
                address=address,
            ))
            return False
        return True
