"""
Error types raised by the secret store client.

Each type also derives from the closest builtin exception, so callers can
catch ConnectionError, PermissionError, LookupError or ValueError without
importing this module.
"""

from typing import Any


class SecretStoreError(Exception):
    """Base class for every error raised by vault_kv."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors or [])


class TransportError(SecretStoreError, ConnectionError):
    """No response was received (DNS failure, refused connection, timeout)."""


class ProtocolError(SecretStoreError):
    """The server answered with a non-success status."""

    def __init__(self, message: str, status: int, errors: list[str] | None = None):
        super().__init__(message, errors)
        self.status = status


class NotFoundError(ProtocolError, LookupError):
    """The server answered 404."""


class PermissionDeniedError(ProtocolError, PermissionError):
    """The server answered 401 or 403."""


class ValidationError(SecretStoreError, ValueError):
    """Caller input was rejected before any request was made."""


def server_errors(body: Any) -> list[str]:
    """Extract the {"errors": [...]} list from a response body, if any."""
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list):
            return [str(e) for e in errors]
    return []


def error_for_status(status: int, body: Any) -> ProtocolError:
    """
    Translate an error response into the matching ProtocolError subclass.

    The message is the first server-reported error when there is one.
    """
    errors = server_errors(body)
    message = errors[0] if errors else f"Request failed with status code {status}"
    if status == 404:
        return NotFoundError(message, status, errors)
    if status in (401, 403):
        return PermissionDeniedError(message, status, errors)
    return ProtocolError(message, status, errors)
