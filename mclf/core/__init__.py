"""
MCLF Core Module
================

Data models, error taxonomy, the mutable-image capability interface and
the load engine.  Import from the submodules directly, e.g.
``from mclf.core.engine import MclfLoader``.
"""
