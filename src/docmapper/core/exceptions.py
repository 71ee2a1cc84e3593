"""Document manager exceptions."""


class DocumentManagerError(Exception):
    """Base exception for document manager errors."""


class DocumentNotFoundError(DocumentManagerError):
    """Raised when a document is absent both locally and in the engine."""


class DocumentUnavailableError(DocumentNotFoundError):
    """Raised when the engine could not be reached after all retry attempts.

    A subclass of ``DocumentNotFoundError``: handlers for a missing document
    also cover an unreachable engine, and can still tell the two apart.
    """


class ManagerConsistencyError(DocumentManagerError):
    """Raised when two distinct instances claim the same document identity."""


class UnknownKindError(DocumentManagerError):
    """Raised when no document factory is registered for a kind."""
