class StoreError(Exception):
    """Base exception for submission store failures."""


class RecordNotFoundError(StoreError):
    """Raised when a record cannot be found by its composite key."""
