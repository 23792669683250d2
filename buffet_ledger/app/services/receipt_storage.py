"""
Receipt blob storage.

Stores uploaded receipt files by relative path and issues time-limited
download links. The local backend keeps files under
settings.receipt_storage_dir and signs links as JWTs redeemed by
GET /v1/receipts/download.
"""

import asyncio
import logging
from pathlib import Path, PurePosixPath
from urllib.parse import urlencode

from jose import JWTError

from buffet_ledger.app.core.clock import Clock, utcnow
from buffet_ledger.app.core.config import settings
from buffet_ledger.app.core.jwt import create_receipt_link_token

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the storage backend cannot complete an operation."""


class ReceiptStorage:
    """Interface every receipt storage backend implements."""

    async def upload(self, path: str, content: bytes, content_type: str) -> None:
        raise NotImplementedError

    async def delete(self, path: str) -> None:
        raise NotImplementedError

    async def create_signed_url(self, path: str, expires_in: int) -> str:
        raise NotImplementedError

    def resolve(self, path: str) -> Path:
        raise NotImplementedError


class LocalReceiptStorage(ReceiptStorage):
    """
    Filesystem-backed receipt storage.

    Args:
        base_dir: Root directory for stored files
        public_base_url: Scheme/host used to build download links
        clock: Returns the current UTC time (for link expiry)
    """

    def __init__(self, base_dir: str | Path, public_base_url: str, clock: Clock = utcnow):
        self.base_dir = Path(base_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.clock = clock

    def resolve(self, path: str) -> Path:
        """
        Map a storage path to a file under base_dir.

        Raises:
            StorageError: for absolute paths or paths escaping base_dir
        """
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise StorageError(f"Invalid storage path: {path!r}")
        return self.base_dir.joinpath(*relative.parts)

    async def upload(self, path: str, content: bytes, content_type: str) -> None:
        target = self.resolve(path)

        def _write():
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise StorageError(f"Could not store {path}") from exc

        logger.info("Stored receipt %s (%s, %d bytes)", path, content_type, len(content))

    async def delete(self, path: str) -> None:
        target = self.resolve(path)
        try:
            await asyncio.to_thread(target.unlink, True)
        except OSError as exc:
            raise StorageError(f"Could not delete {path}") from exc

    async def create_signed_url(self, path: str, expires_in: int) -> str:
        if not self.resolve(path).is_file():
            raise StorageError(f"No stored object at {path}")

        try:
            token = create_receipt_link_token(path, expires_in, self.clock())
        except JWTError as exc:
            raise StorageError("Could not sign receipt link") from exc

        query = urlencode({"token": token})
        return f"{self.public_base_url}/{settings.api_version}/receipts/download?{query}"


def get_receipt_storage() -> ReceiptStorage:
    """FastAPI dependency returning the configured receipt storage."""
    return LocalReceiptStorage(settings.receipt_storage_dir, settings.public_base_url)
