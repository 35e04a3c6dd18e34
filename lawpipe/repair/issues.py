from dataclasses import dataclass
from enum import Enum


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class IssueType(str, Enum):
    """Inconsistencies detected by the fix scanner."""

    MISSING_PDF = "MISSING_PDF"
    MISSING_TEXT = "MISSING_TEXT"
    MISSING_CORRECTED_TEXT = "MISSING_CORRECTED_TEXT"
    MISSING_JSON = "MISSING_JSON"
    MISSING_IMAGES = "MISSING_IMAGES"
    CORRUPTED_PDF = "CORRUPTED_PDF"
    UNREADABLE_JSON = "UNREADABLE_JSON"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    RETRYABLE_FAILURE = "RETRYABLE_FAILURE"
    STATUS_BEHIND_ARTIFACTS = "STATUS_BEHIND_ARTIFACTS"
    STUCK_STATUS = "STUCK_STATUS"

    @property
    def severity(self) -> Severity:
        return _SEVERITIES[self]


_SEVERITIES: dict[IssueType, Severity] = {
    IssueType.MISSING_PDF: Severity.HIGH,
    IssueType.MISSING_TEXT: Severity.HIGH,
    IssueType.MISSING_CORRECTED_TEXT: Severity.HIGH,
    IssueType.MISSING_JSON: Severity.HIGH,
    IssueType.MISSING_IMAGES: Severity.LOW,
    IssueType.CORRUPTED_PDF: Severity.CRITICAL,
    IssueType.UNREADABLE_JSON: Severity.HIGH,
    IssueType.LOW_CONFIDENCE: Severity.MEDIUM,
    IssueType.RETRYABLE_FAILURE: Severity.LOW,
    IssueType.STATUS_BEHIND_ARTIFACTS: Severity.LOW,
    IssueType.STUCK_STATUS: Severity.MEDIUM,
}


@dataclass(frozen=True)
class Issue:
    type: IssueType
    detail: str

    @property
    def severity(self) -> Severity:
        return self.type.severity

    def __str__(self) -> str:
        return f"{self.type.value}[{self.severity.value}]: {self.detail}"
