class OrchestratorError(Exception):
    """Base exception for submission orchestration errors."""


class InvalidMessageError(OrchestratorError):
    """Raised when an event or queue message cannot be decoded."""


class SubmissionFileNotFoundError(OrchestratorError):
    """Raised when a parser message names a file that is not in review."""


class UnknownTriggerError(OrchestratorError):
    """Raised when no handler is routed for an event's trigger."""
