"""Tests for the in-memory MutableImage implementation."""

import pytest

from mclf.core.errors import OverlayConflict, RegionConflict, SymbolConflict
from mclf.core.image import MemoryImage, MutableImage
from mclf.core.models import (
    FieldKind,
    Permissions,
    StructField,
    StructType,
    SymbolKind,
)

RX = Permissions(read=True, write=False, execute=True)
RW = Permissions(read=True, write=True, execute=False)

PAIR = StructType(
    name='pair',
    fields=(
        StructField(name='tag', offset=0, kind=FieldKind.CHAR, count=4),
        StructField(name='value', offset=4, kind=FieldKind.UINT32),
    ),
)


@pytest.fixture
def populated():
    img = MemoryImage()
    img.create_region('.text', 0x1000, 0x100, b'TAG!' + (0x1234).to_bytes(4, 'little') + bytes(0xF8), RX)
    img.create_region('.bss', 0x2000, 0x40, None, RW)
    return img


def test_satisfies_protocol():
    assert isinstance(MemoryImage(), MutableImage)


class TestRegions:
    """Region creation rules"""

    def test_read_backed_and_zero_filled(self, populated):
        assert populated.read(0x1000, 4) == b'TAG!'
        assert populated.read(0x2000, 8) == bytes(8)
        assert populated.region('.bss').zero_filled

    def test_region_at(self, populated):
        assert populated.region_at(0x10FF).name == '.text'
        assert populated.region_at(0x1100) is None

    def test_overlap_rejected(self, populated):
        with pytest.raises(RegionConflict, match='overlaps'):
            populated.create_region('.data', 0x10F0, 0x20, None, RW)

    def test_adjacent_allowed(self, populated):
        populated.create_region('.data', 0x1100, 0x20, None, RW)
        assert [r.name for r in populated.regions] == ['.text', '.data', '.bss']

    def test_duplicate_name_rejected(self, populated):
        with pytest.raises(RegionConflict, match='already exists'):
            populated.create_region('.text', 0x5000, 0x10, None, RX)

    def test_empty_region_rejected(self):
        with pytest.raises(RegionConflict):
            MemoryImage().create_region('.data', 0x1000, 0, None, RW)

    def test_content_length_mismatch_rejected(self):
        with pytest.raises(RegionConflict):
            MemoryImage().create_region('.text', 0x1000, 0x10, b'short', RX)

    def test_read_unmapped(self, populated):
        with pytest.raises(RegionConflict):
            populated.read(0x10FE, 4)


class TestSymbols:
    """Entry points, functions and labels"""

    def test_function_in_executable_memory(self, populated):
        populated.add_entry_point(0x1010)
        populated.create_function(0x1010, '_entry')
        assert populated.entry_points == [0x1010]
        assert populated.symbol('_entry').kind == SymbolKind.FUNCTION

    def test_function_in_data_memory_rejected(self, populated):
        with pytest.raises(SymbolConflict, match='executable'):
            populated.create_function(0x2000, 'f')

    def test_label_outside_mapped_memory_rejected(self, populated):
        with pytest.raises(SymbolConflict, match='not mapped'):
            populated.create_label(0x3000, 'nowhere')

    def test_entry_point_outside_mapped_memory_rejected(self, populated):
        with pytest.raises(SymbolConflict):
            populated.add_entry_point(0x3000)

    def test_name_bound_once(self, populated):
        populated.create_label(0x1020, 'lbl')
        populated.create_label(0x1020, 'lbl')
        with pytest.raises(SymbolConflict, match='already bound'):
            populated.create_label(0x1024, 'lbl')

    def test_symbols_at(self, populated):
        populated.create_label(0x1020, 'a')
        populated.create_label(0x1020, 'b')
        assert sorted(s.name for s in populated.symbols_at(0x1020)) == ['a', 'b']


class TestOverlays:
    """Structured overlays"""

    def test_overlay_values(self, populated):
        populated.create_structured_overlay(0x1000, PAIR)
        values = populated.overlay_values(populated.overlays[0])
        assert values == {'tag': 'TAG!', 'value': 0x1234}

    def test_overlapping_overlay_rejected(self, populated):
        populated.create_structured_overlay(0x1000, PAIR)
        with pytest.raises(OverlayConflict, match='overlaps'):
            populated.create_structured_overlay(0x1004, PAIR)

    def test_zero_filled_memory_rejected(self, populated):
        with pytest.raises(OverlayConflict, match='backed'):
            populated.create_structured_overlay(0x2000, PAIR)

    def test_overlay_past_region_end_rejected(self, populated):
        with pytest.raises(OverlayConflict):
            populated.create_structured_overlay(0x10FC, PAIR)
