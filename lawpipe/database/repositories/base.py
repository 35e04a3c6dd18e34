from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator

from lawpipe.database.models import DocumentRecord, RecordUpdate
from lawpipe.pipeline.status import DocumentFlag, ProcessingStatus


class BaseDocumentStore(ABC):
    """Contract for the Document Record store."""

    @abstractmethod
    def insert_discovered(self, records: Iterable[DocumentRecord]) -> int:
        """Insert new records, ignoring identities that already exist.

        Returns:
            Number of records actually inserted.
        """

    @abstractmethod
    def find_eligible(
        self,
        statuses: Iterable[ProcessingStatus],
        limit: int,
        document_id: str | None = None,
        excluded_flags: Iterable[DocumentFlag] = (),
        max_confidence: float | None = None,
    ) -> list[DocumentRecord]:
        """Read at most *limit* records whose status is in *statuses*.

        Optionally narrowed to one identity, to records carrying none of
        *excluded_flags*, and to records whose confidence is below
        *max_confidence*.
        """

    @abstractmethod
    def find_by_id(self, document_id: str) -> DocumentRecord | None:
        """Find a record by identity."""

    @abstractmethod
    def iter_all(self, page_size: int) -> Iterator[list[DocumentRecord]]:
        """Yield every record, any status, in pages of *page_size*."""

    @abstractmethod
    def apply_updates(self, updates: list[RecordUpdate]) -> int:
        """Apply all updates as one atomic unit.

        An update whose record version changed since it was read is skipped.

        Returns:
            Number of records actually updated.
        """
