"""Error kinds raised by the auth core.

Remote failures (provider, database, backend) are usually logged and swallowed by the
session store and profile fetcher. PIN mismatches and secure storage failures are kept
distinct so the UI can show a different message for each.
"""

from typing import Optional


class AuthError(Exception):
    """Base class for all auth core errors."""


class ProviderUnreachable(AuthError):
    """The auth provider could not be reached, timed out or answered with a 5xx."""


class ProviderRejected(AuthError):
    """The auth provider answered with a 4xx, e.g. an expired or invalid OTP."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class ProfileNotFound(AuthError):
    """No profile row matched the lookup."""


class PinMismatch(AuthError):
    """The candidate PIN did not match the stored surrogate. Retryable."""


class SecureStorageFailure(AuthError):
    """The device secure store failed or holds a corrupted entry."""

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class BackendError(AuthError):
    """The REST backend failed to answer a request."""
