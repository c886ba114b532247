"""Durable Backend client package."""

from aiwallet.services.remote.client import RemoteAccountClient

__all__ = ["RemoteAccountClient"]
