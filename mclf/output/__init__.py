"""
MCLF Output Module
==================

Console display and report generation for MCLF loads.
"""

from mclf.output.console import MclfConsoleOutput
from mclf.output.report import MclfReportGenerator

__all__ = [
    "MclfConsoleOutput",
    "MclfReportGenerator",
]
