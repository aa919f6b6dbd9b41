"""MediaDesk — media library and folder management service."""

__version__ = "0.1.0"
