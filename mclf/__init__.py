"""
MCLF -- MobiCore Loadable Format Loader
=======================================

Loads MCLF trustlet and driver images (the secure-world executable format
of the Trustonic Kinibi / MobiCore TEE) into a mutable program image.

Capabilities:
    - Magic-based format sniffing with a fixed ARM little-endian target
    - Version-aware header decoding (v1 through v2.4 extensions)
    - Text, data and zero-filled bss region creation
    - Entry point, ``_entry`` function and ``tlApiLibEntry`` label
    - Typed header and text-header overlays over the text segment
    - Non-fatal diagnostics for every host-side failure
    - Rich console display and JSON reports

References:
    - Trustonic. mcLoadFormat.h -- MobiCore Load Format declarations.
    - Beniamini, G. (2017). Trust Issues: Exploiting TrustZone TEEs.
"""

from mclf.core.engine import MclfEngine, MclfLoader
from mclf.core.image import MemoryImage
from mclf.output.console import MclfConsoleOutput
from mclf.output.report import MclfReportGenerator

__version__ = "1.0.0"
__all__ = [
    "MclfLoader",
    "MclfEngine",
    "MemoryImage",
    "MclfConsoleOutput",
    "MclfReportGenerator",
]
