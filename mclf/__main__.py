"""
MCLF Module Entry Point
=======================

Allows running the MCLF CLI via: python -m mclf
"""

from mclf.cli import main

if __name__ == "__main__":
    main()
