"""Object storage for uploaded shop exports."""

import logging
from pathlib import Path
from typing import Protocol

from shop_boost.core.config import SHOP_IMPORT_BUCKET, SHOP_IMPORT_ROOT
from shop_boost.core.domain_exceptions import StorageFetchError, ValidationError

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
    def download(self, path: str) -> bytes: ...

    def upload(self, path: str, data: bytes) -> None: ...


class LocalObjectStorage:
    """Bucket-style storage backed by a directory on local disk."""

    def __init__(self, root: Path | str = SHOP_IMPORT_ROOT, bucket: str = SHOP_IMPORT_BUCKET):
        self.base = (Path(root) / bucket).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self.base / path.lstrip("/")).resolve()
        if target != self.base and self.base not in target.parents:
            raise ValidationError(f"Storage path escapes bucket: {path}")
        return target

    def download(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            raise StorageFetchError(path, "no data") from None
        except OSError as exc:
            raise StorageFetchError(path, str(exc)) from exc

    def upload(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info("Stored %d bytes at %s", len(data), path)


_default_storage: LocalObjectStorage | None = None


def get_storage() -> ObjectStorage:
    """FastAPI dependency returning the process-wide storage backend."""
    global _default_storage
    if _default_storage is None:
        _default_storage = LocalObjectStorage()
    return _default_storage
