from dataclasses import dataclass, field
from enum import Enum


class ExtractionMethod(str, Enum):
    """Label of the extraction path that produced a result."""

    PATTERN = "pattern"
    PATTERN_CORRECTED = "pattern+corrections"
    AI_CORRECTED_OCR = "ai-corrected-ocr"
    AI_FULL = "ai-full"


@dataclass(frozen=True)
class Article:
    """A single law article, 1-based index in document order."""

    index: int
    content: str


@dataclass(frozen=True)
class Signatory:
    """A signatory recognised in the document footer."""

    role: str
    name: str
    mandate_start: str | None = None
    mandate_end: str | None = None


@dataclass(frozen=True)
class DocumentMetadata:
    """Document-level metadata. Every field is optional."""

    title: str | None = None
    promulgation_date: str | None = None
    promulgation_city: str | None = None
    signatories: list[Signatory] = field(default_factory=list)

    @property
    def populated_fraction(self) -> float:
        populated = [
            self.title is not None,
            self.promulgation_date is not None,
            self.promulgation_city is not None,
            bool(self.signatories),
        ]
        return sum(populated) / len(populated)


@dataclass(frozen=True)
class ParseAnomalies:
    """Structural irregularities noticed while segmenting articles."""

    truncated_last_article: bool = False
    out_of_sequence_markers: int = 0
    dropped_short_articles: int = 0

    @property
    def total(self) -> int:
        return (
            int(self.truncated_last_article)
            + self.out_of_sequence_markers
            + self.dropped_short_articles
        )


@dataclass(frozen=True)
class ExtractionResult:
    """Output of one extraction method for one document."""

    articles: list[Article]
    metadata: DocumentMetadata
    confidence: float
    method: str
    anomalies: ParseAnomalies = field(default_factory=ParseAnomalies)
    corrections_applied: int = 0

    def to_dict(self, document_id: str) -> dict[str, object]:
        """JSON-ready payload written to the document's JSON artifact."""
        return {
            "documentId": document_id,
            "method": self.method,
            "confidence": round(self.confidence, 4),
            "metadata": {
                "title": self.metadata.title,
                "promulgationDate": self.metadata.promulgation_date,
                "promulgationCity": self.metadata.promulgation_city,
                "signatories": [
                    {
                        "role": s.role,
                        "name": s.name,
                        "mandateStart": s.mandate_start,
                        "mandateEnd": s.mandate_end,
                    }
                    for s in self.metadata.signatories
                ],
            },
            "articles": [{"index": a.index, "content": a.content} for a in self.articles],
            "_metadata": {
                "truncatedLastArticle": self.anomalies.truncated_last_article,
                "outOfSequenceMarkers": self.anomalies.out_of_sequence_markers,
                "droppedShortArticles": self.anomalies.dropped_short_articles,
                "correctionsApplied": self.corrections_applied,
            },
        }
