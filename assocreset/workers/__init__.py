# assocreset/workers/__init__.py
"""Bounded worker pool for the full check-and-clear pass."""
