class WorkQueueError(Exception):
    """Raised when a work queue call fails."""
