"""
Error taxonomy for ARIOT Web.

The webhook pipeline catches every one of these at its boundary and turns it
into an audit log entry plus a plain-text HTTP response; management endpoints
translate the registry errors into JSON ``abort()`` responses.
"""
from __future__ import annotations


class AriotError(Exception):
    """Base class for all application errors."""


class NoIntegrationConfigured(AriotError):
    """No integration matches any of the default webhook slugs."""


class IntegrationNotFound(AriotError):
    """The requested integration slug or id does not exist."""


class IntegrationInvalid(AriotError):
    """Integration create request failed input validation."""


class IntegrationConflict(AriotError):
    """An integration with the same endpoint slug already exists."""


class DecodeError(AriotError):
    """A decoder script failed to compile or to produce an output object."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class CompileError(DecodeError):
    """A decoder script is not valid source code."""


class PersistenceError(AriotError):
    """Writing a record to the database failed."""


class WebhookSystemError(AriotError):
    """Uncategorized failure inside the webhook pipeline."""
