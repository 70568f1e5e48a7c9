"""HTTP API for the document storage service."""

from procstore.api.main import create_app

__all__ = ["create_app"]
