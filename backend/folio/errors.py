"""
Domain Errors

Raised by the services layer and translated to HTTP responses in
folio.main. Background tasks catch ProviderError to schedule retries;
PersistenceError never leaves the index builder.
"""


class FolioError(Exception):
    """Base class for application errors."""


class QueryValidationError(FolioError):
    """Malformed search request (missing query, unknown mode)."""


class ProviderError(FolioError):
    """Raised when the embedding provider fails, times out or misbehaves."""


class PersistenceError(FolioError):
    """A single user's derived search artifacts could not be written."""

    def __init__(self, user_id: str, message: str):
        super().__init__(f"user {user_id}: {message}")
        self.user_id = user_id


class ProfileNotFoundError(FolioError):
    """Profile, username or owned section entry does not exist."""


class UsernameTakenError(FolioError):
    """Another user already owns the requested username."""
