class SourceError(Exception):
    """Raised when the document source cannot serve a document."""


class SourceNotFoundError(SourceError):
    """Raised when the source answers that the document does not exist."""


class SourceNetworkError(SourceError):
    """Raised when the source cannot be reached or times out."""


class SourceTimeoutError(SourceNetworkError):
    """Raised when the source does not answer within the timeout."""
