"""
MCLF Load Engine
================

Drives a single MCLF load from raw bytes to a populated image.

The pipeline is linear and single-pass::

    START -> SNIFFED -> DECODED -> MATERIALIZED -> LOADED

Load Pipeline:
    1. Confirm the ``MCLF`` magic (otherwise :class:`FormatMismatch`)
    2. Decode and validate the header, then the optional text header
    3. Extract the backing bytes of every segment
    4. Create ``.text``, ``.data`` and ``.bss`` in the image
    5. Create the entry point, ``_entry`` and ``tlApiLibEntry``
    6. Project the header structures over the text segment

Steps 1-3 are fatal on failure.  Steps 4-6 never abort: each host
failure becomes a :class:`~shared.models.Diagnostic` that is collected in
the :class:`LoadResult` and forwarded to the caller's diagnostic sink.
The caller's cancellation signal is checked between stages.

:class:`MclfLoader` is the host-facing loader; :class:`MclfEngine` wraps
it for files and in-memory data, using a :class:`MemoryImage` host and a
shared :class:`~shared.models.RunResult`.

References:
    - Trustonic. mcLoadFormat.h -- MobiCore Load Format declarations.
    - NSA. Ghidra Loader API (``AbstractProgramWrapperLoader``).
"""

from __future__ import annotations

from pathlib import Path

from shared.config import LoaderConfig
from shared.logger import LoaderLogger
from shared.models import RunResult, Severity

from mclf.core.errors import FormatMismatch, LoadCancelled, LoadError
from mclf.core.image import (
    CancellationSignal,
    DiagnosticSink,
    MemoryImage,
    MutableImage,
)
from mclf.core.models import (
    LoadOptions,
    LoadResult,
    LoadSpec,
    LoadStage,
    StageResult,
)
from mclf.parsers.byte_provider import ByteProvider
from mclf.parsers.magic import LOADER_NAME, MCLF_MAGIC, FormatSniffer
from mclf.parsers.mclf_parser import decode_header, decode_text_header
from mclf.stages.annotator import SymbolAnnotator, plan_symbols
from mclf.stages.materializer import SegmentMaterializer, plan_segments
from mclf.stages.overlay import OverlayProjector, plan_overlays


# ---------------------------------------------------------------------------
# MclfLoader
# ---------------------------------------------------------------------------

class MclfLoader:
    """Loads MCLF images into a host-provided :class:`MutableImage`.

    The loader is stateless between calls; the image, options,
    cancellation signal and diagnostic sink are all supplied per call.

    Usage::

        loader = MclfLoader()
        specs = loader.find_supported_load_specs(provider)
        if specs:
            result = loader.load(provider, specs[0], LoadOptions(), image)
    """

    name: str = LOADER_NAME

    def __init__(self, logger: LoaderLogger | None = None) -> None:
        self._logger: LoaderLogger = logger or LoaderLogger("mclf.loader")
        self._sniffer = FormatSniffer()
        self._materializer = SegmentMaterializer(self._logger)
        self._annotator = SymbolAnnotator(self._logger)
        self._projector = OverlayProjector(self._logger)

    def find_supported_load_specs(self, provider: ByteProvider) -> list[LoadSpec]:
        """Return the load specs *provider* supports; empty when not MCLF."""
        return self._sniffer.find_supported_load_specs(provider)

    def load(
        self,
        provider: ByteProvider,
        load_spec: LoadSpec,
        options: LoadOptions | None,
        image: MutableImage,
        cancel: CancellationSignal | None = None,
        sink: DiagnosticSink | None = None,
    ) -> LoadResult:
        """Load *provider* into *image*.

        Args:
            provider: Source of the raw image bytes.
            load_spec: Spec previously returned by
                :meth:`find_supported_load_specs`.
            options: Loader options; defaults when ``None``.
            image: Host image to populate.
            cancel: Optional signal polled between stages.
            sink: Receives ``(severity, message)`` for every diagnostic.
                Defaults to the loader's logger.

        Returns:
            A :class:`LoadResult` at :attr:`LoadStage.LOADED`.

        Raises:
            FormatMismatch: *provider* does not start with ``MCLF``.
            TruncatedHeader: The header is shorter than its fixed length.
            InvalidHeader: A header invariant does not hold.
            TruncatedImage: Segment bytes lie past the end of *provider*.
            LoadCancelled: *cancel* was set between two stages.
        """
        options = options or LoadOptions()
        sink = sink or self._log_diagnostic
        result = LoadResult(load_spec=load_spec)

        with self._logger.operation("sniff"):
            if not self._sniffer.find_supported_load_specs(provider):
                raise FormatMismatch(f"{provider.name} is not an MCLF image")
            result.stage = LoadStage.SNIFFED
        self._check_cancelled(cancel, result.stage)

        with self._logger.operation("decode"):
            header = decode_header(provider)
            result.header = header
            result.text_header = decode_text_header(provider, header)
            segments = plan_segments(header)
            contents = self._materializer.extract(provider, segments)
            result.stage = LoadStage.DECODED
            self._logger.debug(
                f"MCLF v{header.version_string}: text 0x{header.text_va:08x}"
                f"+0x{header.text_len:x}, data 0x{header.data_va:08x}"
                f"+0x{header.data_len:x}, bss 0x{header.bss_len:x}, "
                f"entry 0x{header.entry:08x}"
            )
        self._check_cancelled(cancel, result.stage)

        with self._logger.operation("materialize"):
            stage = self._materializer.run(segments, contents, image)
            self._record(result, stage, sink)
            result.segments = [s for s in segments if s.name in stage.created]
            result.stage = LoadStage.MATERIALIZED
        self._check_cancelled(cancel, result.stage)

        with self._logger.operation("annotate"):
            stage = self._annotator.run(header, image)
            self._record(result, stage, sink)
            result.symbols = [
                s for s in plan_symbols(header) if s.name in stage.created
            ]
        self._check_cancelled(cancel, result.stage)

        with self._logger.operation("overlay"):
            overlays = plan_overlays(header, result.text_header, options)
            stage = self._projector.run(overlays, image)
            self._record(result, stage, sink)
            result.overlays = [
                o for o in overlays if o.struct_type.name in stage.created
            ]

        result.stage = LoadStage.LOADED
        self._logger.debug(f"Load finished: {result.summary()}")
        return result

    # ------------------------------------------------------------------ #
    #  Helpers
    # ------------------------------------------------------------------ #

    def _record(
        self,
        result: LoadResult,
        stage: StageResult,
        sink: DiagnosticSink,
    ) -> None:
        result.stages.append(stage)
        for diag in stage.diagnostics:
            result.diagnostics.append(diag)
            sink(diag.severity, str(diag))

    def _log_diagnostic(self, severity: Severity, message: str) -> None:
        self._logger.log(severity.log_level, message)

    @staticmethod
    def _check_cancelled(cancel: CancellationSignal | None, stage: LoadStage) -> None:
        if cancel is not None and cancel.is_set():
            raise LoadCancelled(f"Load cancelled after stage {stage.value}")


# ---------------------------------------------------------------------------
# MclfEngine
# ---------------------------------------------------------------------------

class MclfEngine:
    """Loads MCLF files or bytes into a :class:`MemoryImage`.

    Usage::

        engine = MclfEngine()
        image = MemoryImage()
        run = engine.load_file("/path/to/trustlet.tlbin", image=image)
        print(run.summary)
    """

    def __init__(
        self,
        config: LoaderConfig | None = None,
        logger: LoaderLogger | None = None,
    ) -> None:
        self._config: LoaderConfig = config or LoaderConfig()
        self._logger: LoaderLogger = logger or LoaderLogger("mclf.engine")
        self._loader = MclfLoader(self._logger)
        self._sniffer = FormatSniffer()

    @property
    def config(self) -> LoaderConfig:
        return self._config

    def load_file(
        self,
        file_path: str | Path,
        image: MutableImage | None = None,
        options: LoadOptions | None = None,
        cancel: CancellationSignal | None = None,
    ) -> RunResult:
        """Load the file at *file_path*.

        Missing and oversized files produce an unsuccessful
        :class:`RunResult` rather than an exception.
        """
        path = Path(file_path)
        run = RunResult(tool_name="mclf", target=str(file_path))

        if not path.is_file():
            return self._fail(run, f"File not found: {file_path}")

        file_size = path.stat().st_size
        max_size = self._config.mclf.max_file_size
        if file_size > max_size:
            return self._fail(
                run,
                f"File too large: {file_size:,} bytes (max: {max_size:,} bytes)",
            )

        with ByteProvider.open(path) as provider:
            return self._run(run, provider, image, options, cancel)

    def load_data(
        self,
        data: bytes,
        target: str = "<memory>",
        image: MutableImage | None = None,
        options: LoadOptions | None = None,
        cancel: CancellationSignal | None = None,
    ) -> RunResult:
        """Load raw bytes already in memory."""
        run = RunResult(tool_name="mclf", target=target)
        return self._run(run, ByteProvider(data, name=target), image, options, cancel)

    # ------------------------------------------------------------------ #
    #  Implementation
    # ------------------------------------------------------------------ #

    def _run(
        self,
        run: RunResult,
        provider: ByteProvider,
        image: MutableImage | None,
        options: LoadOptions | None,
        cancel: CancellationSignal | None,
    ) -> RunResult:
        image = image if image is not None else MemoryImage()
        options = options or LoadOptions.from_config(self._config.mclf)
        self._logger.info(f"Loading {provider.name} ({provider.length:,} bytes)")

        specs = self._loader.find_supported_load_specs(provider)
        if not specs:
            kind = self._sniffer.identify(provider.read_available(0, len(MCLF_MAGIC)))
            return self._fail(run, f"Not an MCLF image: {provider.name} ({kind})")

        try:
            with self._logger.timed("mclf load"):
                result = self._loader.load(provider, specs[0], options, image, cancel)
        except LoadError as exc:
            run.metadata["error"] = {"type": type(exc).__name__, "message": str(exc)}
            return self._fail(run, f"Load failed: {exc}")

        for diag in result.diagnostics:
            run.add_diagnostic(diag)
        run.success = result.loaded
        run.metadata["load"] = result.model_dump(mode="json")

        header = result.header
        summary_parts = [
            f"Loaded MCLF v{header.version_string}" if header else "Loaded",
            f"Regions: {len(result.segments)}",
            f"Symbols: {len(result.symbols)}",
            f"Overlays: {len(result.overlays)}",
            f"Diagnostics: {len(result.diagnostics)}",
        ]
        run.finalize(" | ".join(summary_parts))
        self._logger.info(run.summary)
        return run

    def _fail(self, run: RunResult, message: str) -> RunResult:
        run.success = False
        run.finalize(message)
        self._logger.error(message)
        return run
