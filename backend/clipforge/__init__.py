"""ClipForge - short clip generation with tiered storage."""

__version__ = "1.0.0"
