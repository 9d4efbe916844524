"""
Loader Shared Module
====================

Common utilities, models, and configuration management shared by the
loader packages.
"""

from shared.config import LoaderConfig

__all__ = ["LoaderConfig"]
