from abc import ABC, abstractmethod


class BaseObjectStore(ABC):
    """Contract for blob storage keyed by path strings."""

    @property
    @abstractmethod
    def bucket_name(self) -> str:
        """Name of the bucket (or root) the store reads and writes."""

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Read an object's bytes.

        Raises:
            ObjectNotFoundError: if nothing is stored under the key.
            ObjectStoreError: on any other storage failure.
        """

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        """Write (or overwrite) an object."""
