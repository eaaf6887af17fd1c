"""
Storage backends for generated media.

The backend is chosen once from configuration; callers only see the
StorageBackend interface.
"""
import re
from abc import ABC, abstractmethod
from functools import lru_cache
from pathlib import Path
from typing import Callable, Optional

import httpx

from refashion.core.config import settings
from refashion.utils.logging import get_logger
from refashion.utils.retry import with_http_retry

logger = get_logger(__name__)

_SAFE_SEGMENT = re.compile(r"[^A-Za-z0-9._-]")


def _safe_segment(value: str) -> str:
    cleaned = _SAFE_SEGMENT.sub("_", value).strip("._")
    if not cleaned:
        raise ValueError(f"Invalid storage path segment: {value!r}")
    return cleaned


class StorageBackend(ABC):
    """Stores provider output and returns the URL clients should use."""

    name: str = "abstract"

    @abstractmethod
    async def store_remote_file(self, url: str, category: str, filename: str) -> str:
        """
        Persist a remote file.

        Args:
            url: Provider URL of the file
            category: Logical folder, e.g. "videos"
            filename: Target file name

        Returns:
            URL under which the stored file is served
        """


class LocalStorageBackend(StorageBackend):
    """Downloads files into a local directory served under a public prefix."""

    name = "local"

    def __init__(
        self,
        root: str,
        public_prefix: str = "/uploads",
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        self.root = Path(root)
        self.public_prefix = public_prefix.rstrip("/")
        self._client_factory = client_factory or (lambda: httpx.AsyncClient(timeout=60.0, follow_redirects=True))

    async def store_remote_file(self, url: str, category: str, filename: str) -> str:
        category = _safe_segment(category)
        filename = _safe_segment(filename)

        async def download() -> bytes:
            async with self._client_factory() as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content

        content = await with_http_retry(download, context=f"Download {category}/{filename}")

        target_dir = self.root / category
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / filename
        target.write_bytes(content)

        logger.info("Stored remote file", category=category, filename=filename, size_bytes=len(content))
        return f"{self.public_prefix}/{category}/{filename}"


class RemoteStorageBackend(StorageBackend):
    """Keeps provider-hosted files where they are."""

    name = "remote"

    async def store_remote_file(self, url: str, category: str, filename: str) -> str:
        return url


def create_storage_backend(backend: str) -> StorageBackend:
    """Build the storage backend named in configuration."""
    if backend == "local":
        return LocalStorageBackend(settings.STORAGE_LOCAL_ROOT, settings.STORAGE_PUBLIC_PREFIX)
    if backend == "remote":
        return RemoteStorageBackend()
    raise ValueError(f"Unsupported storage backend: {backend}")


@lru_cache(maxsize=1)
def get_storage_backend() -> StorageBackend:
    """Return the process-wide storage backend selected at startup."""
    backend = create_storage_backend(settings.STORAGE_BACKEND)
    logger.info("Storage backend selected", backend=backend.name)
    return backend
