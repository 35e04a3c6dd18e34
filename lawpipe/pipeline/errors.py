"""Tagged error values carried from stage transforms to failure-status writes."""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    """Stable error codes. Transient kinds are retried by the fix scanner."""

    SOURCE_NOT_FOUND = ("SOURCE_NOT_FOUND", False)
    NETWORK_ERROR = ("NETWORK_ERROR", True)
    TIMEOUT = ("TIMEOUT", True)
    EMPTY_PDF = ("EMPTY_PDF", False)
    CORRUPTED_PDF = ("CORRUPTED_PDF", False)
    OCR_ENGINE_INIT = ("OCR_ENGINE_INIT", True)
    OCR_FAILED = ("OCR_FAILED", True)
    OCR_EMPTY = ("OCR_EMPTY", False)
    RENDER_FAILED = ("RENDER_FAILED", True)
    MISSING_ARTIFACT = ("MISSING_ARTIFACT", False)
    AI_UNAVAILABLE = ("AI_UNAVAILABLE", True)
    SPELLCHECK_UNAVAILABLE = ("SPELLCHECK_UNAVAILABLE", True)
    NO_ARTICLES = ("NO_ARTICLES", False)
    EXTRACTION_FAILED = ("EXTRACTION_FAILED", True)
    INVALID_JSON = ("INVALID_JSON", False)
    STORAGE_ERROR = ("STORAGE_ERROR", True)
    UNEXPECTED = ("UNEXPECTED", False)

    def __init__(self, code: str, transient: bool) -> None:
        self.code = code
        self.transient = transient

    @classmethod
    def from_code(cls, code: str | None) -> "ErrorKind | None":
        for kind in cls:
            if kind.code == code:
                return kind
        return None


@dataclass(frozen=True)
class StageError:
    """Failure of one document in one stage."""

    kind: ErrorKind
    document_id: str
    stage: str
    cause: str

    @property
    def code(self) -> str:
        return self.kind.code

    def __str__(self) -> str:
        return f"[{self.stage}] {self.document_id}: {self.kind.code}: {self.cause}"


class ConfigurationError(Exception):
    """Raised when a stage cannot be built from its configuration."""
