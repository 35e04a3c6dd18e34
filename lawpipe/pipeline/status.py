"""Processing statuses, orthogonal flags and the legal transition table."""

from enum import Enum


class ProcessingStatus(str, Enum):
    DISCOVERED = "DISCOVERED"
    FETCHED = "FETCHED"
    DOWNLOADED = "DOWNLOADED"
    OCR_EXTRACTED = "OCR_EXTRACTED"
    TEXT_CORRECTED = "TEXT_CORRECTED"
    STRUCTURED = "STRUCTURED"
    CONSOLIDATED = "CONSOLIDATED"
    FAILED_FETCH = "FAILED_FETCH"
    FAILED_DOWNLOAD = "FAILED_DOWNLOAD"
    FAILED_OCR = "FAILED_OCR"
    FAILED_EXTRACTION = "FAILED_EXTRACTION"
    FAILED_CONSOLIDATION = "FAILED_CONSOLIDATION"

    @property
    def is_failure(self) -> bool:
        return self in FAILURE_RESUME

    @property
    def rank(self) -> int:
        """Position in the main progression; a failure ranks with its stage input."""
        if self in FAILURE_RESUME:
            return PROGRESSION.index(FAILURE_RESUME[self])
        return PROGRESSION.index(self)


class DocumentFlag(str, Enum):
    """Auxiliary completions that never gate the main pipeline."""

    RENDERED_IMAGES = "RENDERED_IMAGES"
    IMAGES_FAILED = "IMAGES_FAILED"
    AI_ENRICHED = "AI_ENRICHED"
    AI_ENRICH_FAILED = "AI_ENRICH_FAILED"


S = ProcessingStatus

PROGRESSION: tuple[ProcessingStatus, ...] = (
    S.DISCOVERED,
    S.FETCHED,
    S.DOWNLOADED,
    S.OCR_EXTRACTED,
    S.TEXT_CORRECTED,
    S.STRUCTURED,
    S.CONSOLIDATED,
)

# Failure status -> input status of the stage that produced it.
FAILURE_RESUME: dict[ProcessingStatus, ProcessingStatus] = {
    S.FAILED_FETCH: S.DISCOVERED,
    S.FAILED_DOWNLOAD: S.FETCHED,
    S.FAILED_OCR: S.DOWNLOADED,
    S.FAILED_EXTRACTION: S.OCR_EXTRACTED,
    S.FAILED_CONSOLIDATION: S.STRUCTURED,
}

# Forward adjacency. A failure may move straight to its stage's success status
# when a targeted single-document re-run succeeds.
TRANSITIONS: dict[ProcessingStatus, frozenset[ProcessingStatus]] = {
    S.DISCOVERED: frozenset({S.FETCHED, S.FAILED_FETCH}),
    S.FETCHED: frozenset({S.DOWNLOADED, S.FAILED_DOWNLOAD}),
    S.DOWNLOADED: frozenset({S.OCR_EXTRACTED, S.FAILED_OCR}),
    S.OCR_EXTRACTED: frozenset({S.TEXT_CORRECTED, S.FAILED_EXTRACTION}),
    S.TEXT_CORRECTED: frozenset({S.STRUCTURED, S.FAILED_EXTRACTION}),
    S.STRUCTURED: frozenset({S.CONSOLIDATED, S.FAILED_CONSOLIDATION}),
    S.CONSOLIDATED: frozenset(),
    S.FAILED_FETCH: frozenset({S.FETCHED}),
    S.FAILED_DOWNLOAD: frozenset({S.DOWNLOADED}),
    S.FAILED_OCR: frozenset({S.OCR_EXTRACTED}),
    S.FAILED_EXTRACTION: frozenset({S.TEXT_CORRECTED, S.STRUCTURED}),
    S.FAILED_CONSOLIDATION: frozenset({S.CONSOLIDATED}),
}


def is_transition_allowed(source: ProcessingStatus, target: ProcessingStatus) -> bool:
    """Staying in the same status is always allowed (flag or error updates)."""
    return source == target or target in TRANSITIONS[source]


def is_regression_allowed(source: ProcessingStatus, target: ProcessingStatus) -> bool:
    """Backward moves land on a progression status strictly behind the source.

    A failure status may also be reset to its own stage input.
    """
    if target.is_failure:
        return False
    if source.is_failure:
        return target.rank <= source.rank
    return target.rank < source.rank
