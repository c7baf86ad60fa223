"""Clients for talking to the studio backend."""

from .studio_client import StudioClient, get_studio_url

__all__ = ["StudioClient", "get_studio_url"]
