"""Exception hierarchy for CloudView."""
from typing import Any, Optional


class CloudViewError(Exception):
    """Base class for all CloudView errors."""
    pass


class ValidationError(CloudViewError):
    """Raised for malformed configuration or filter input."""

    def __init__(self, field: str, value: Any, message: str):
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"Validation error for field '{field}' (value: {value!r}): {message}")


class AuthenticationError(CloudViewError):
    """Raised when a provider cannot resolve or validate credentials."""

    def __init__(self, provider: str, message: str, cause: Optional[BaseException] = None):
        self.provider = provider
        self.message = message
        self.cause = cause
        text = f"Authentication failed for provider '{provider}': {message}"
        if cause is not None:
            text = f"{text} ({cause})"
        super().__init__(text)


class NotAuthenticatedError(CloudViewError):
    """Raised when a provider is used before a successful authentication."""

    def __init__(self, provider: str, state: Optional[str] = None):
        self.provider = provider
        self.state = state
        text = f"Provider '{provider}' is not authenticated"
        if state:
            text = f"{text} (state: {state})"
        super().__init__(text)


class NotFoundError(CloudViewError):
    """Base class for lookups that found nothing."""
    pass


class ResourceNotFoundError(NotFoundError):

    def __init__(self, resource_id: str, provider: Optional[str] = None):
        self.resource_id = resource_id
        self.provider = provider
        where = f" in provider '{provider}'" if provider else ''
        super().__init__(f"Resource '{resource_id}' not found{where}")


class UnsupportedResourceKindError(NotFoundError):

    def __init__(self, kind: str, provider: Optional[str] = None):
        self.kind = kind
        self.provider = provider
        where = f" by provider '{provider}'" if provider else ''
        super().__init__(f"Resource type '{kind}' is not supported{where}")


class ProviderNotFoundError(NotFoundError):

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Provider '{name}' not found")


class ProviderRegistrationError(CloudViewError):
    """Raised when a provider cannot be added to the registry."""
    pass


class OperationCancelledError(CloudViewError):
    """Raised when a caller cancels an in-flight operation or its deadline passes."""
    pass
