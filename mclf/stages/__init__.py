"""
MCLF Load Stages
================

The image-building stages run by the loader after decoding: segment
materialization, symbol annotation and header overlay projection.
"""

from mclf.stages.annotator import SymbolAnnotator
from mclf.stages.materializer import SegmentMaterializer
from mclf.stages.overlay import OverlayProjector

__all__ = [
    "OverlayProjector",
    "SegmentMaterializer",
    "SymbolAnnotator",
]
