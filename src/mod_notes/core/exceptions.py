"""
Domain Exceptions

Error taxonomy for the notes retrieval core. The API layer maps these to
HTTP status codes; the service layer decides which ones are swallowed.

    NotesError
    ├── ValidationError          missing/oversized input, never retried
    │   └── InvalidInputError    empty text handed to the embedding provider
    ├── InvalidIdentifierError   malformed note id (mapped to "not found")
    ├── ServiceUnavailableError  semantic search dependency is down
    ├── DimensionMismatchError   vectors of different length (programmer error)
    ├── ProviderFailure          embedding provider failed (recovered locally)
    └── IndexingError            vector index write or query embedding failed
"""


class NotesError(Exception):
    """Base class for all mod-notes errors."""


class ValidationError(NotesError):
    """Input failed a domain validation rule."""


class InvalidInputError(ValidationError):
    """Input text is empty or whitespace-only."""


class InvalidIdentifierError(NotesError):
    """A note identifier is not in the store's id format."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid note identifier: {value!r}")
        self.value = value


class ServiceUnavailableError(NotesError):
    """A dependency required for the requested operation is unavailable."""


class DimensionMismatchError(NotesError, ValueError):
    """Two vectors passed to a similarity computation differ in length."""

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Vectors must have the same length ({left} != {right})")
        self.left = left
        self.right = right


class ProviderFailure(NotesError):
    """The external embedding provider call failed or returned garbage."""

    def __init__(self, message: str, reason: str = "provider_error") -> None:
        super().__init__(message)
        self.reason = reason


class IndexingError(NotesError):
    """A vector index side effect (or the embedding feeding it) failed."""
