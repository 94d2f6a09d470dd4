class ServiceError(Exception):
    """Base exception for calls to external HTTP services."""


class CallbackDeliveryError(ServiceError):
    """Raised when a status callback cannot be delivered."""


class TransformError(ServiceError):
    """Raised when the transformation service fails or answers without a path."""


class TemplatePublishError(ServiceError):
    """Raised when an extraction cannot be published to the template service."""
