"""imgrel: versioned, provenance-stamped container image releases."""

__version__ = "0.1.0"
