"""
Shared Data Models
==================

Pydantic v2 models shared across the loader packages.  These models carry
the diagnostics a load produces and the run-level result that wraps a
single load for reporting.

A diagnostic holds a severity, a kind drawn from the loader's error
taxonomy, the pipeline stage that raised it and a message.  Fatal
conditions are raised as exceptions instead, so every diagnostic describes
a degraded but usable image.

References:
    - Pydantic v2 documentation. https://docs.pydantic.dev/latest/
"""

from __future__ import annotations

import datetime as _dt
import logging
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# ========================== Enumerations ===================================


class Severity(str, Enum):
    """Diagnostic severity level.

    Attributes:
        ERROR:   An annotation or region could not be created.
        WARNING: The image is usable but something was skipped.
        INFO:    Informational observation.
    """

    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def log_level(self) -> int:
        """Return the stdlib :mod:`logging` level matching this severity."""
        _map = {
            "ERROR": logging.ERROR,
            "WARNING": logging.WARNING,
            "INFO": logging.INFO,
        }
        return _map[self.value]


class DiagnosticKind(str, Enum):
    """Non-fatal condition categories reported by the pipeline stages."""

    REGION_CONFLICT = "REGION_CONFLICT"
    SYMBOL_CONFLICT = "SYMBOL_CONFLICT"
    OVERLAY_CONFLICT = "OVERLAY_CONFLICT"


# ========================== Core Models ====================================


class Diagnostic(BaseModel):
    """A single non-fatal condition observed while building an image.

    Attributes:
        severity: Severity of the condition.
        kind:     Category of the condition.
        stage:    Name of the pipeline stage that reported it.
        message:  Human-readable description.
        address:  Address the condition concerns, if any.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    severity: Severity = Field(
        ...,
        description="Severity level of this diagnostic",
    )
    kind: DiagnosticKind = Field(
        ...,
        description="Diagnostic category",
    )
    stage: str = Field(
        ...,
        min_length=1,
        description="Pipeline stage that produced the diagnostic",
    )
    message: str = Field(
        ...,
        min_length=1,
        description="Detailed explanation",
    )
    address: Optional[int] = Field(
        default=None,
        ge=0,
        description="Address concerned by the diagnostic",
    )

    def __str__(self) -> str:
        where = f" @ 0x{self.address:08x}" if self.address is not None else ""
        return f"[{self.stage}] {self.kind.value}{where}: {self.message}"


class RunResult(BaseModel):
    """Aggregated result of a single tool run.

    Bundles target, timing, diagnostics and a summary into one serialisable
    object suitable for console display and report generation.  The
    loader-specific result is kept in *metadata*.

    Attributes:
        tool_name:   Name of the tool that produced the run.
        target:      File path or label of the loaded image.
        start_time:  UTC timestamp when the run started.
        end_time:    UTC timestamp when the run ended.
        success:     Whether the load reached a usable image.
        diagnostics: Diagnostics collected during the run.
        summary:     Human-readable summary text.
        metadata:    Arbitrary extra metadata dict.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        use_enum_values=False,
        extra="ignore",
    )

    tool_name: str = Field(
        ...,
        min_length=1,
        description="Tool name",
    )
    target: str = Field(
        ...,
        min_length=1,
        description="Loaded image path or label",
    )
    start_time: _dt.datetime = Field(
        default_factory=lambda: _dt.datetime.now(_dt.timezone.utc),
        description="Run start timestamp (UTC)",
    )
    end_time: Optional[_dt.datetime] = Field(
        default=None,
        description="Run end timestamp (UTC)",
    )
    success: bool = Field(
        default=False,
        description="Whether a usable image was produced",
    )
    diagnostics: list[Diagnostic] = Field(
        default_factory=list,
        description="Non-fatal diagnostics",
    )
    summary: str = Field(
        default="",
        description="Human-readable result summary",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional metadata",
    )

    # ------------------------------------------------------------------ #
    #  Derived properties
    # ------------------------------------------------------------------ #

    @property
    def duration_seconds(self) -> float | None:
        """Elapsed run time in seconds, or ``None`` if *end_time* is unset."""
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    @property
    def severity_counts(self) -> dict[str, int]:
        """Count of diagnostics grouped by severity, e.g. ``{"ERROR": 1, ...}``."""
        counts: dict[str, int] = {s.value: 0 for s in Severity}
        for diag in self.diagnostics:
            counts[diag.severity.value] += 1
        return counts

    @property
    def diagnostic_count(self) -> int:
        """Total number of diagnostics."""
        return len(self.diagnostics)

    @property
    def error_count(self) -> int:
        """Number of ERROR severity diagnostics."""
        return sum(1 for d in self.diagnostics if d.severity == Severity.ERROR)

    # ------------------------------------------------------------------ #
    #  Mutating helpers
    # ------------------------------------------------------------------ #

    def add_diagnostic(self, diagnostic: Diagnostic) -> None:
        """Append a diagnostic to the run result."""
        self.diagnostics.append(diagnostic)

    def finalize(self, summary: str | None = None) -> RunResult:
        """Mark the run as complete by setting *end_time* and *summary*.

        If *summary* is ``None`` a default is generated from severity counts.

        Returns:
            ``self`` for fluent chaining.
        """
        self.end_time = _dt.datetime.now(_dt.timezone.utc)
        if summary is not None:
            self.summary = summary
        else:
            counts = self.severity_counts
            parts = [f"{sev}: {cnt}" for sev, cnt in counts.items() if cnt > 0]
            self.summary = (
                f"Load {'complete' if self.success else 'failed'}. "
                f"Diagnostics: {len(self.diagnostics)} "
                f"({', '.join(parts) if parts else 'none'})"
            )
        return self
