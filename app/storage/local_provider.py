"""
Local filesystem storage for uploaded files.
Files live in a single directory that is also mounted as the /uploads static path.
"""
from pathlib import Path
from typing import BinaryIO, Iterable, Optional

import structlog

from ..config import settings
from .provider import FileTooLarge, InvalidKey, StorageProvider, is_valid_key


log = structlog.get_logger(__name__)

PUBLIC_PREFIX = "/uploads/"
CHUNK_SIZE = 64 * 1024


class LocalStorageProvider(StorageProvider):
    """Local filesystem storage provider."""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.upload_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_path(self, key: str) -> Path:
        """Path for an issued key; anything that would land outside base_dir is refused."""
        if not is_valid_key(key):
            raise InvalidKey(f"Invalid storage key: {key!r}")
        root = self.base_dir.resolve()
        path = (root / key).resolve()
        if path.parent != root:
            raise InvalidKey(f"Invalid storage key: {key!r}")
        return path

    def save(self, stream: BinaryIO, key: str, max_bytes: Optional[int] = None) -> int:
        path = self._get_path(key)
        written = 0
        with open(path, "wb") as f:
            while True:
                chunk = stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if max_bytes is not None and written > max_bytes:
                    break
                f.write(chunk)
        if max_bytes is not None and written > max_bytes:
            path.unlink(missing_ok=True)
            raise FileTooLarge(max_bytes)
        return written

    def exists(self, key: str) -> bool:
        return self._get_path(key).exists()

    def delete(self, key: str) -> None:
        path = self._get_path(key)
        if path.exists():
            path.unlink()


def get_storage() -> StorageProvider:
    return LocalStorageProvider()


def key_from_path(path: str) -> str:
    """Turn a public /uploads/<key> path back into a storage key."""
    if path.startswith(PUBLIC_PREFIX):
        return path[len(PUBLIC_PREFIX):]
    return path.lstrip("/")


def remove_files(storage: StorageProvider, attachments: Iterable[Optional[dict]], owner: str) -> int:
    """
    Best-effort removal of stored files referenced by attachment descriptors.

    Only keys issued by the upload endpoint are touched. Failures are logged
    and never raised so that deleting the owning record always succeeds.

    Returns:
        Number of files removed
    """
    removed = 0
    for att in attachments or []:
        if not att:
            continue
        key = att.get("filename") or key_from_path(att.get("path") or "")
        if not is_valid_key(key):
            log.warning("file_delete_skipped", owner=owner, key=key, reason="not an uploaded file")
            continue
        try:
            storage.delete(key)
            removed += 1
        except (OSError, InvalidKey) as e:
            log.warning("file_delete_failed", owner=owner, key=key, error=str(e))
    return removed
