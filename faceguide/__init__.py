"""Face Framing Guide: live face presence, centering and lighting checks."""

__version__ = "0.1.0"
