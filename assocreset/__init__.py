# assocreset/__init__.py
"""
assocreset: reset per-file "Open With" overrides.

Scans a directory tree for files of the requested categories, estimates
how many carry an override by sampling, then clears the override attribute
with a bounded worker pool and reports per-category throughput.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
