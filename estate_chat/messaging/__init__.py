"""Messaging module."""

from .store import IMessageStore, MessageStore

__all__ = ["IMessageStore", "MessageStore"]
