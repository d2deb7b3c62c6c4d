"""Blob storage module."""

from .blob_storage import HttpBlobStorage, IBlobStorage, LocalBlobStorage

__all__ = ["HttpBlobStorage", "IBlobStorage", "LocalBlobStorage"]
