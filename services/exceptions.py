class ServiceError(Exception):
    """Base class for predictable service-layer exceptions."""


class NotFoundError(ServiceError):
    """Raised when the requested resource does not exist."""


class ValidationError(ServiceError):
    """Raised when business rules are violated."""


class ConflictError(ServiceError):
    """Raised when a unique business identifier is already taken."""


class BlobStoreError(ServiceError):
    """Raised when an uploaded file cannot be written to the upload store."""


class AIServiceError(ServiceError):
    """Raised when the transcription or summarization provider fails."""


class AIConfigurationError(AIServiceError):
    """Raised when provider credentials are missing."""


class AIResponseError(AIServiceError):
    """Raised when the provider answers with nothing usable."""
