"""Error taxonomy shared by the HTTP and MCP surfaces."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class BrokerError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BrokerError):
    """Malformed or missing input. Never retried."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[list[FieldError]] = None):
        self.errors = list(errors or [])
        if self.errors:
            message = f"{message}: " + ", ".join(str(e) for e in self.errors)
        super().__init__(message)


class EntitlementDenied(BrokerError):
    """The user's subscription does not permit the requested action."""

    def __init__(self, message: str, reason: str, status_code: int = 402):
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class ConfigError(BrokerError):
    """Invalid tier transition or subscription configuration."""

    status_code = 400


class ConflictError(BrokerError):
    """Stored usage counters changed between read and commit."""

    status_code = 409


class ProviderError(BrokerError):
    """Downstream AI provider failed, timed out or returned no content."""

    status_code = 500

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class InternalError(BrokerError):
    """Unexpected failure. The message shown to callers is always generic."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
