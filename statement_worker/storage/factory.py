from pathlib import Path

from statement_worker.config.settings import Settings
from statement_worker.storage.base import BaseObjectStore
from statement_worker.storage.local_adapter import LocalObjectStore
from statement_worker.storage.s3_adapter import S3ObjectStore


class ObjectStoreFactory:
    """Creates the configured object store backend."""

    BACKENDS = ("s3", "local")

    @classmethod
    def create(cls, settings: Settings) -> BaseObjectStore:
        backend = settings.object_store_backend.lower()
        if backend == "s3":
            return S3ObjectStore(
                bucket=settings.object_store_bucket,
                region=settings.aws_region,
                endpoint_url=settings.aws_endpoint_url,
            )
        if backend == "local":
            return LocalObjectStore(root=Path(settings.object_store_root))
        raise ValueError(
            f"Unknown object store backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
