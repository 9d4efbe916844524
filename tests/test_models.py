"""Tests for shared diagnostics and run results."""

import logging

from mclf.core.models import Header, Permissions, Segment
from shared.models import Diagnostic, DiagnosticKind, RunResult, Severity


def make_diag(severity, kind=DiagnosticKind.REGION_CONFLICT, address=None):
    return Diagnostic(
        severity=severity,
        kind=kind,
        stage='materialize',
        message='cannot create .text',
        address=address,
    )


class TestDiagnostic:

    def test_str_with_address(self):
        diag = make_diag(Severity.ERROR, address=0x00100000)
        assert str(diag) == '[materialize] REGION_CONFLICT @ 0x00100000: cannot create .text'

    def test_str_without_address(self):
        assert '@' not in str(make_diag(Severity.WARNING))

    def test_severity_log_levels(self):
        assert Severity.ERROR.log_level == logging.ERROR
        assert Severity.WARNING.log_level == logging.WARNING
        assert Severity.INFO.log_level == logging.INFO


class TestRunResult:

    def test_counts(self):
        run = RunResult(tool_name='mclf', target='x.tlbin')
        run.add_diagnostic(make_diag(Severity.ERROR))
        run.add_diagnostic(make_diag(Severity.WARNING, DiagnosticKind.OVERLAY_CONFLICT))
        run.add_diagnostic(make_diag(Severity.ERROR, DiagnosticKind.SYMBOL_CONFLICT))

        assert run.diagnostic_count == 3
        assert run.error_count == 2
        assert run.severity_counts == {'ERROR': 2, 'WARNING': 1, 'INFO': 0}

    def test_finalize_default_summary(self):
        run = RunResult(tool_name='mclf', target='x.tlbin', success=True)
        run.add_diagnostic(make_diag(Severity.WARNING))

        run.finalize()

        assert run.end_time is not None
        assert run.duration_seconds >= 0
        assert run.summary == 'Load complete. Diagnostics: 1 (WARNING: 1)'

    def test_duration_unset_before_finalize(self):
        assert RunResult(tool_name='mclf', target='x').duration_seconds is None


class TestLoaderModels:

    def test_permissions_string(self):
        assert str(Permissions(read=True, write=False, execute=True)) == 'r-x'
        assert str(Permissions(read=False)) == '---'

    def test_header_bytes_serialise_as_hex(self):
        header = Header(
            magic='MCLF', version=0x00010000, uuid=bytes(range(16)),
            text_va=0x1000, text_len=0x100, data_va=0x2000, data_len=0,
            bss_len=0, entry=0x1000,
        )
        dumped = header.model_dump(mode='json')
        assert dumped['uuid'] == bytes(range(16)).hex()
        assert Header.model_validate(dumped) == header

    def test_segment_bounds(self):
        segment = Segment(
            name='.text', start=0x1000, length=0x100,
            permissions=Permissions(read=True, execute=True), file_offset=0,
        )
        assert segment.end == 0x1100
        assert segment.contains(0x1000)
        assert segment.contains(0x10FF)
        assert not segment.contains(0x1100)
        assert not segment.contains(0x0FFF)
