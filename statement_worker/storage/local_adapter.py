from pathlib import Path

from statement_worker.storage.base import BaseObjectStore
from statement_worker.storage.exceptions import ObjectNotFoundError, ObjectStoreError


class LocalObjectStore(BaseObjectStore):
    """Filesystem-backed object store: each key is a path under the root."""

    FILES_ROOT = Path("/app/files")

    def __init__(self, root: Path | None = None) -> None:
        self._root = root if root is not None else self.FILES_ROOT

    @property
    def bucket_name(self) -> str:
        return self._root.name

    def read(self, key: str) -> bytes:
        path = self._resolve_path(key)
        if not path.is_file():
            raise ObjectNotFoundError(f"Object not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise ObjectStoreError(f"Failed to read {path}: {exc}") from exc

    def write(self, key: str, data: bytes) -> None:
        path = self._resolve_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise ObjectStoreError(f"Failed to write {path}: {exc}") from exc

    def _resolve_path(self, key: str) -> Path:
        root = self._root.resolve()
        path = (root / key.lstrip("/")).resolve()
        if not path.is_relative_to(root):
            raise ObjectStoreError(f"Key escapes the store root: {key}")
        return path
