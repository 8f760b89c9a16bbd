"""Backblaze B2 storage backend with resumable listing."""

__version__ = "0.1.0"
