class ObjectStoreError(Exception):
    """Raised when an object store call fails."""


class ObjectNotFoundError(ObjectStoreError):
    """Raised when no object exists under the requested key."""
