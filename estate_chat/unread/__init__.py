"""Unread tracking module."""

from .unread import IUnreadTracker, UnreadTracker

__all__ = ["IUnreadTracker", "UnreadTracker"]
