"""Editorial pipeline: research topics and draft articles, driven by content status."""

__version__ = "0.1.0"
