"""pixelcount - tracking-pixel web analytics."""

__version__ = "0.1.0"
