# backend/utils/storage.py
import logging
import os
import uuid
from pathlib import Path

from config import settings
from utils.errors import StorageError

logger = logging.getLogger(__name__)


class LocalStorage:
    """Blob area on the local filesystem, served statically under ``url_prefix``."""

    def __init__(self, root, url_prefix: str = "/storage"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def path(self, key: str) -> Path:
        return self.root / key

    def url(self, key: str) -> str:
        return f"{self.url_prefix}/{key.lstrip('/')}"

    def exists(self, key: str) -> bool:
        return self.path(key).is_file()

    def put(self, key: str, data: bytes) -> None:
        target = self.path(key)
        # Write to a sibling temp file first so a failed write never leaves a partial blob
        tmp = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "wb") as buffer:
                buffer.write(data)
            os.replace(tmp, target)
        except OSError as e:
            if tmp.exists():
                tmp.unlink()
            raise StorageError(f"File save error: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self.path(key).unlink()
        except FileNotFoundError:
            logger.warning("Blob %s already missing, treating as deleted", key)
        except OSError as e:
            raise StorageError(f"File delete error: {e}") from e


def new_photo_key(extension: str) -> str:
    return f"{settings.PHOTO_PREFIX}/{uuid.uuid4().hex}.{extension}"


_storage = None


def get_storage() -> LocalStorage:
    global _storage
    if _storage is None:
        _storage = LocalStorage(settings.STORAGE_DIR, settings.STORAGE_URL)
    return _storage
