from abc import ABC, abstractmethod


class BaseDocumentSource(ABC):
    """Contract for the remote publisher of law PDFs."""

    @abstractmethod
    def check_exists(self, url: str) -> None:
        """Confirm the document is published at *url*.

        Raises:
            SourceNotFoundError: if the source reports the document missing.
            SourceNetworkError: on connection failures and timeouts.
            SourceError: for any other unexpected answer.
        """

    @abstractmethod
    def download(self, url: str) -> bytes:
        """Return the raw PDF bytes published at *url*.

        Raises:
            SourceError: (or a subclass) if the bytes cannot be retrieved.
        """
