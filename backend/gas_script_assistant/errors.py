"""Error taxonomy shared by the assistant components.

Every failure the UI can show is an ``AssistantError``. The controller catches
them and turns them into display state, so none of these escape a session.
"""

from __future__ import annotations


class AssistantError(Exception):
    """Base class for user-facing assistant failures."""


class ValidationError(AssistantError):
    """User input is missing or malformed; the operation was not attempted."""


class AuthError(AssistantError):
    """No usable credential; the operation was not attempted."""


class GenerationError(AssistantError):
    """The upstream model call failed."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class InvalidCredentialError(GenerationError):
    """The upstream rejected the credential itself."""


class StorageError(AssistantError):
    """Persisting the credential failed. Logged, never fatal."""
