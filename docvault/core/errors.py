"""
DocVault Exception Hierarchy

All service-level failures inherit from :class:`DocVaultError`, which
carries a human-readable ``message``, an optional ``provider_name``
identifying the external system involved, and the HTTP status the API
layer renders it with.

    DocVaultError
    +-- AuthenticationError     (no live identity)                 401
    +-- AuthorizationError      (no workspace grant)               403
    +-- ConfigurationError      (missing provider credential)      400
    +-- SizeLimitError          (upload above the ceiling)         413
    +-- ProcessingError         (loader / chunker / embedding)     500
    +-- ExternalServiceError    (database / storage / RPC)         502
    +-- NotFoundError           (unknown file or object)           404
    +-- ProviderMismatchError   (vector from the wrong provider)   400
    +-- InvalidTransitionError  (illegal lifecycle move)           409
"""

from __future__ import annotations


class DocVaultError(Exception):
    """Base exception for all DocVault errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class AuthenticationError(DocVaultError):
    """Raised when the request carries no live identity."""

    status_code = 401

    def __init__(self, message: str = "User not authenticated") -> None:
        super().__init__(message=message)


class AuthorizationError(DocVaultError):
    """Raised when the identity has no grant on the target workspace."""

    status_code = 403

    def __init__(self, message: str = "No access to this workspace") -> None:
        super().__init__(message=message)


class ConfigurationError(DocVaultError):
    """Raised when a provider credential or setting is missing."""

    status_code = 400


class SizeLimitError(DocVaultError):
    """Raised when an upload exceeds the configured byte ceiling."""

    status_code = 413


class ProcessingError(DocVaultError):
    """Raised when loading, chunking or embedding a document fails."""

    status_code = 500


class ExternalServiceError(DocVaultError):
    """Raised when the database, object store or an embedding API fails."""

    status_code = 502


class NotFoundError(DocVaultError):
    """Raised when a file row or storage object does not exist."""

    status_code = 404


class ProviderMismatchError(DocVaultError):
    """Raised when a vector is passed to the search entry point of another provider."""

    status_code = 400


class InvalidTransitionError(DocVaultError):
    """Raised when a document lifecycle transition is not in the table."""

    status_code = 409
