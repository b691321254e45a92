"""Clients for the external services the daemon talks to."""

from .gphotos import AuthenticationError, GooglePhotosClient, MediaItem
from .postcards import PostcardSender

__all__ = ["AuthenticationError", "GooglePhotosClient", "MediaItem", "PostcardSender"]
