"""Blob storage backends for uploaded files."""

import asyncio
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import quote

import httpx

from ..errors import AttachmentServiceError
from ..logging_config import get_logger

logger = get_logger(__name__)


class IBlobStorage(Protocol):
    """Opaque byte storage addressed by path."""

    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Store bytes at path."""
        ...

    def public_url(self, path: str) -> str:
        """URL under which the stored bytes can be fetched."""
        ...

    async def download(self, path: str) -> bytes:
        """Fetch previously stored bytes."""
        ...


def _safe_relative(path: str) -> PurePosixPath:
    relative = PurePosixPath(path)
    if relative.is_absolute() or ".." in relative.parts or not relative.parts:
        raise AttachmentServiceError(f"Invalid storage path: {path!r}")
    return relative


class LocalBlobStorage:
    """Stores blobs as files below a root directory."""

    def __init__(self, root: str | Path, public_base_url: str):
        self._root = Path(root)
        self._public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        return self._root.joinpath(*_safe_relative(path).parts)

    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Store bytes at path."""
        target = self._resolve(path)

        def write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "xb") as f:
                f.write(data)

        try:
            await asyncio.to_thread(write)
        except OSError as e:
            raise AttachmentServiceError(f"Could not store {path}: {e}") from e

    def public_url(self, path: str) -> str:
        """URL under which the stored bytes can be fetched."""
        return f"{self._public_base_url}?path={quote(path, safe='')}"

    async def download(self, path: str) -> bytes:
        """Fetch previously stored bytes."""
        target = self._resolve(path)

        def read() -> bytes:
            with open(target, "rb") as f:
                return f.read()

        try:
            return await asyncio.to_thread(read)
        except OSError as e:
            raise AttachmentServiceError(f"Could not read {path}: {e}") from e


class HttpBlobStorage:
    """Object storage reached over its REST API.

    Follows the ``/storage/v1/object/<bucket>/<path>`` layout of hosted
    object stores; public objects are served from
    ``/storage/v1/object/public/<bucket>/<path>``.
    """

    def __init__(
        self,
        base_url: str,
        bucket: str,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._bucket = bucket
        headers = {}
        if api_key:
            headers = {"Authorization": f"Bearer {api_key}", "apikey": api_key}
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = headers

    def _object_url(self, path: str) -> str:
        relative = str(_safe_relative(path))
        return f"{self._base_url}/storage/v1/object/{self._bucket}/{quote(relative)}"

    async def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Store bytes at path."""
        try:
            response = await self._client.post(
                self._object_url(path),
                content=data,
                headers={**self._headers, "Content-Type": content_type},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Blob upload to %s failed: %s", path, e)
            raise AttachmentServiceError(f"Upload failed: {e}") from e

    def public_url(self, path: str) -> str:
        """URL under which the stored bytes can be fetched."""
        relative = str(_safe_relative(path))
        return (
            f"{self._base_url}/storage/v1/object/public/"
            f"{self._bucket}/{quote(relative)}"
        )

    async def download(self, path: str) -> bytes:
        """Fetch previously stored bytes."""
        try:
            response = await self._client.get(
                self._object_url(path), headers=self._headers
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Blob download of %s failed: %s", path, e)
            raise AttachmentServiceError(f"Download failed: {e}") from e
        return response.content

    async def close(self) -> None:
        await self._client.aclose()
