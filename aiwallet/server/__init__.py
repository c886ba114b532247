"""HTTP API for the Durable Backend."""

from aiwallet.server.api import create_app

__all__ = ["create_app"]
