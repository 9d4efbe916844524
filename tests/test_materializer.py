"""Tests for segment planning and region creation."""

import pytest

from conftest import DATA_LEN, DATA_VA, TEXT_LEN, TEXT_VA, make_mclf
from mclf.core.errors import TruncatedImage
from mclf.core.image import MemoryImage
from mclf.parsers.byte_provider import ByteProvider
from mclf.parsers.mclf_parser import decode_header
from mclf.stages.materializer import (
    DATA_PERMISSIONS,
    TEXT_PERMISSIONS,
    SegmentMaterializer,
    plan_segments,
)
from shared.models import DiagnosticKind, Severity


@pytest.fixture
def materializer(logger):
    return SegmentMaterializer(logger)


def materialize(materializer, data, image):
    provider = ByteProvider(data)
    segments = plan_segments(decode_header(provider))
    contents = materializer.extract(provider, segments)
    return materializer.run(segments, contents, image)


class TestPlanSegments:
    """Region layout derived from the header"""

    def test_reference_layout(self, header):
        text, data, bss = plan_segments(header)

        assert (text.name, text.start, text.length) == ('.text', 0x00100000, 0x200)
        assert str(text.permissions) == 'r-x'
        assert text.file_offset == 0

        assert (data.name, data.start, data.length) == ('.data', 0x00100200, 0x100)
        assert str(data.permissions) == 'rw-'
        assert data.file_offset == TEXT_LEN

        assert (bss.name, bss.start, bss.length) == ('.bss', 0x00100300, 0x80)
        assert str(bss.permissions) == 'rw-'
        assert bss.zero_filled

    def test_planning_is_deterministic(self, header):
        assert plan_segments(header) == plan_segments(header)


class TestMaterialize:
    """Region creation in a MemoryImage"""

    def test_reference_regions(self, materializer, mclf_bytes, image):
        result = materialize(materializer, mclf_bytes, image)

        assert result.ok
        assert result.created == ['.text', '.data', '.bss']
        assert image.read(TEXT_VA, TEXT_LEN) == mclf_bytes[:TEXT_LEN]
        assert image.read(DATA_VA, DATA_LEN) == mclf_bytes[TEXT_LEN:TEXT_LEN + DATA_LEN]
        assert image.region('.bss').zero_filled
        assert image.region('.text').permissions == TEXT_PERMISSIONS
        assert image.region('.data').permissions == DATA_PERMISSIONS

    def test_empty_data_is_skipped(self, materializer, image):
        data = make_mclf(data_len=0)
        result = materialize(materializer, data, image)

        assert result.created == ['.text', '.bss']
        assert result.skipped == ['.data']
        assert result.ok
        assert image.region('.bss').start == DATA_VA

    def test_empty_bss_is_skipped(self, materializer, image):
        result = materialize(materializer, make_mclf(bss_len=0), image)
        assert result.created == ['.text', '.data']
        assert result.skipped == ['.bss']

    def test_text_failure_does_not_stop_remaining_regions(self, materializer, mclf_bytes, image):
        image.create_region('blocker', TEXT_VA, 0x10, None, DATA_PERMISSIONS)

        result = materialize(materializer, mclf_bytes, image)

        assert result.created == ['.data', '.bss']
        assert len(result.diagnostics) == 1
        diag = result.diagnostics[0]
        assert diag.kind == DiagnosticKind.REGION_CONFLICT
        assert diag.severity == Severity.ERROR
        assert diag.stage == 'materialize'
        assert diag.address == TEXT_VA
        assert '.text' in diag.message

    def test_overlapping_data_and_text(self, materializer, image):
        data = make_mclf(data_va=TEXT_VA + 0x100)
        result = materialize(materializer, data, image)

        assert '.text' in result.created
        assert '.data' not in result.created
        assert [d.kind for d in result.diagnostics] == [DiagnosticKind.REGION_CONFLICT]


class TestExtract:
    """Backing byte extraction"""

    def test_short_data_raises_before_any_region(self, materializer, header):
        provider = ByteProvider(make_mclf(truncate=TEXT_LEN + 0x10))
        image = MemoryImage()

        with pytest.raises(TruncatedImage) as exc_info:
            materializer.extract(provider, plan_segments(header))

        assert exc_info.value.offset == TEXT_LEN
        assert exc_info.value.length == DATA_LEN
        assert image.regions == []

    def test_zero_filled_segment_has_no_content(self, materializer, provider, header):
        contents = materializer.extract(provider, plan_segments(header))
        assert contents['.bss'] is None
        assert len(contents['.text']) == TEXT_LEN
