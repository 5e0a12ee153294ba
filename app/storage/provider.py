import re
from typing import BinaryIO, Optional

# Keys handed out by the upload endpoint: <slug>-<12 hex>[.<ext>], one flat directory
KEY_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*-[0-9a-f]{12}(\.[a-z0-9-]+)?$")


class InvalidKey(ValueError):
    pass


class FileTooLarge(Exception):
    def __init__(self, limit: int):
        super().__init__(f"File exceeds {limit} bytes")
        self.limit = limit


def is_valid_key(key: Optional[str]) -> bool:
    return bool(key) and KEY_PATTERN.match(key) is not None


class StorageProvider:
    def save(self, stream: BinaryIO, key: str, max_bytes: Optional[int] = None) -> int:
        """
        Write the stream under key and return the number of bytes stored.

        Raises FileTooLarge (leaving nothing behind) once more than
        max_bytes have been read.
        """
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError
