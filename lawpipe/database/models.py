from dataclasses import dataclass, field, replace
from datetime import datetime

from lawpipe.extraction.models import Article
from lawpipe.pipeline.identity import DocumentType, format_identity
from lawpipe.pipeline.status import DocumentFlag, ProcessingStatus

_IDENTITY_FIELDS = frozenset({"document_id", "doc_type", "year", "number"})


@dataclass(frozen=True)
class DocumentRecord:
    """Represents a row from the law_documents table."""

    document_id: str
    doc_type: DocumentType
    year: int
    number: int
    source_url: str
    status: ProcessingStatus = ProcessingStatus.DISCOVERED
    flags: frozenset[DocumentFlag] = frozenset()
    pdf_path: str | None = None
    images_path: str | None = None
    text_path: str | None = None
    corrected_text_path: str | None = None
    json_path: str | None = None
    content_hash: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    confidence: float | None = None
    extraction_method: str | None = None
    repair_attempts: int = 0
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        expected = format_identity(self.doc_type, self.year, self.number)
        if self.document_id != expected:
            raise ValueError(
                f"document_id {self.document_id!r} does not match identity fields ({expected!r})"
            )
        if self.confidence is not None and not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @classmethod
    def create(
        cls,
        doc_type: DocumentType | str,
        year: int,
        number: int,
        source_url: str,
    ) -> "DocumentRecord":
        doc_type = DocumentType(doc_type)
        return cls(
            document_id=format_identity(doc_type, year, number),
            doc_type=doc_type,
            year=year,
            number=number,
            source_url=source_url,
        )

    def has_flag(self, flag: DocumentFlag) -> bool:
        return flag in self.flags

    def with_changes(self, **changes: object) -> "DocumentRecord":
        """Copy with mutable fields replaced. Identity fields cannot change."""
        frozen = _IDENTITY_FIELDS.intersection(changes)
        if frozen:
            raise ValueError(f"Identity fields are immutable: {sorted(frozen)}")
        return replace(self, **changes)  # type: ignore[arg-type]


@dataclass
class CorrectionEntry:
    """Represents a row from the ocr_corrections table."""

    error_found: str
    correction_text: str | None = None
    error_count: int = 0
    correction_is_automatic: bool = False
    original_text: str | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        raw = self.error_found
        self.error_found = raw.strip().lower()
        if not self.error_found:
            raise ValueError("error_found must not be blank")
        if self.original_text is None:
            self.original_text = raw.strip()
        if self.correction_text is not None:
            self.correction_text = self.correction_text.strip() or None
        self.error_count = max(0, self.error_count)

    def record_use(self, delta: int = 1) -> None:
        self.error_count = max(0, self.error_count + delta)

    def is_promoted(self, threshold: int) -> bool:
        return self.correction_text is not None and self.error_count >= threshold


@dataclass(frozen=True)
class RecordUpdate:
    """New state for one claimed record, written only if its version is unchanged."""

    record: DocumentRecord
    expected_version: int
    articles: list[Article] | None = field(default=None)
