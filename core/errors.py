"""Exception hierarchy for the content core."""

from typing import Optional, Type

USER_FACING_MESSAGE = "Algo salió mal. Por favor, inténtalo de nuevo más tarde."


class VMFitError(RuntimeError):
    """Base class for all custom errors."""


class ProviderUnavailable(VMFitError):
    """A content provider failed (network, auth, malformed reply)."""

    def __init__(self, provider: str, message: str, status: Optional[int] = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status = status


class InvalidRecord(VMFitError):
    """A provider record cannot be normalized into a ContentItem."""


class DecodeError(VMFitError):
    """Neither supported encoding could decode the payload."""


class GenerationError(VMFitError):
    """Structured generation failed."""


class EmptyResponse(GenerationError):
    """The generative provider returned no content."""


class SchemaMismatch(GenerationError):
    """The generative provider's output does not match the output schema."""


class RateLimited(GenerationError):
    """The generative provider asked us to slow down (HTTP 429)."""


class RetryExhausted(VMFitError):
    """Raised after the last allowed attempt of a retried operation failed."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        super().__init__(f"{operation} failed after {attempts} attempt(s): {last_error}")
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


class ValidationError(VMFitError):
    """Raised when caller-provided input is invalid."""


def expect(condition: bool, message: str, exc: Type[VMFitError] = ValidationError) -> None:
    """Raise *exc*(message) unless *condition* is truthy."""
    if not condition:
        raise exc(message)


def user_message(exc: BaseException) -> str:
    # Diagnostic detail never reaches end users.
    return USER_FACING_MESSAGE
