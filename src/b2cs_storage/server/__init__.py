"""HTTP server exposing a storage backend."""

from .app import create_app

__all__ = ["create_app"]
