import json
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from pathlib import Path

from lawpipe.database.models import DocumentRecord, RecordUpdate
from lawpipe.database.repositories.base import BaseDocumentStore
from lawpipe.logging.logger import Log
from lawpipe.pipeline.artifacts import ArtifactStore, sha256_hex
from lawpipe.pipeline.errors import ErrorKind
from lawpipe.pipeline.state_machine import regress, transition
from lawpipe.pipeline.status import FAILURE_RESUME, DocumentFlag, ProcessingStatus
from lawpipe.repair.issues import Issue, IssueType
from lawpipe.stages.engine import ChunkReport

S = ProcessingStatus

# Record fields that only hold for a record at or beyond the given status.
_FIELDS_FROM: list[tuple[ProcessingStatus, tuple[str, ...]]] = [
    (S.DOWNLOADED, ("pdf_path", "content_hash")),
    (S.OCR_EXTRACTED, ("text_path",)),
    (S.TEXT_CORRECTED, ("corrected_text_path",)),
    (S.STRUCTURED, ("json_path", "confidence", "extraction_method")),
]

_FAILURE_FLAGS = (DocumentFlag.IMAGES_FAILED, DocumentFlag.AI_ENRICH_FAILED)


class FixScanner:
    """Self-healing pass over every Document Record, whatever its status.

    Verifies that referenced artifacts exist (and the PDF still matches its
    hash), that the status is consistent with them, and that the stored
    extraction confidence is acceptable. Inconsistent records are moved
    back to the last status whose artifact is verified, with the invalid
    references cleared, so the regular stages pick them up again.

    Records left in an in-progress status for longer than `stuck_after`
    are reported as stuck but not changed.
    """

    name = "fix"

    def __init__(
        self,
        store: BaseDocumentStore,
        artifacts: ArtifactStore,
        min_confidence: float = 0.3,
        max_repair_attempts: int = 3,
        stuck_after: timedelta = timedelta(hours=24),
        page_size: int = 100,
    ) -> None:
        self._store = store
        self._artifacts = artifacts
        self._min_confidence = min_confidence
        self._max_repair_attempts = max_repair_attempts
        self._stuck_after = stuck_after
        self._page_size = page_size

    def run_chunk(self, document_id: str | None = None) -> ChunkReport:
        """Scan all records (or one), writing each page's repairs atomically."""
        pages: Iterable[list[DocumentRecord]]
        if document_id is not None:
            record = self._store.find_by_id(document_id)
            pages = [[record]] if record is not None else []
        else:
            pages = self._store.iter_all(self._page_size)

        now = datetime.now(timezone.utc)
        scanned = repaired = applied = stuck = 0
        for page in pages:
            updates: list[RecordUpdate] = []
            for current in page:
                update = self.repair(current)
                if update is not None:
                    updates.append(update)
                    continue
                issue = self.find_stuck(current, now)
                if issue is not None:
                    stuck += 1
                    Log.warning(f"[fix] {current.document_id}: {issue}")
            scanned += len(page)
            repaired += len(updates)
            applied += self._store.apply_updates(updates)

        if repaired or stuck:
            Log.info(
                f"[fix] Scanned {scanned} records, repaired {repaired}, written {applied}, "
                f"stuck {stuck}"
            )
        else:
            Log.debug(f"[fix] Scanned {scanned} records, nothing to repair")
        return ChunkReport(stage=self.name, claimed=repaired, succeeded=repaired, applied=applied)

    def repair(self, record: DocumentRecord) -> RecordUpdate | None:
        """Detect issues on one record and build the corrective update, if any."""
        issues: list[Issue] = []
        target: ProcessingStatus | None = None
        changes: dict[str, object] = {}
        attempts = record.repair_attempts

        verified, artifact_issues = self._verify_artifacts(record)
        if artifact_issues:
            issues.extend(artifact_issues)
            target = verified
            if artifact_issues[0].type is IssueType.CORRUPTED_PDF:
                Path(record.pdf_path or "").unlink(missing_ok=True)
        elif record.status is S.FETCHED:
            advanced = self._advance_fetched(record)
            if advanced is not None:
                return RecordUpdate(record=advanced, expected_version=record.version)
        elif self._is_low_confidence(record) and attempts < self._max_repair_attempts:
            issues.append(
                Issue(IssueType.LOW_CONFIDENCE, f"confidence {record.confidence:.2f}")
            )
            target = S.OCR_EXTRACTED
            attempts += 1
        elif self._is_retryable_failure(record) and attempts < self._max_repair_attempts:
            issues.append(Issue(IssueType.RETRYABLE_FAILURE, f"error {record.error_code}"))
            target = FAILURE_RESUME[record.status]
            attempts += 1

        flags = set(record.flags)
        if DocumentFlag.RENDERED_IMAGES in flags and not self._artifacts.list_page_images(
            record.images_path
        ):
            issues.append(Issue(IssueType.MISSING_IMAGES, f"no page images in {record.images_path}"))
            flags.discard(DocumentFlag.RENDERED_IMAGES)
            changes["images_path"] = None
        failed_flags = flags.intersection(_FAILURE_FLAGS)
        if failed_flags and attempts < self._max_repair_attempts:
            names = sorted(f.value for f in failed_flags)
            issues.append(Issue(IssueType.RETRYABLE_FAILURE, f"flags {names}"))
            flags -= failed_flags
            if target is None:
                attempts += 1
        if target is not None and target.rank < S.STRUCTURED.rank:
            flags.discard(DocumentFlag.AI_ENRICHED)

        if not issues:
            return None
        changes["flags"] = frozenset(flags)
        changes["repair_attempts"] = attempts
        reason = "; ".join(str(issue) for issue in issues)

        if target is None:
            Log.info(f"[fix] {record.document_id}: {reason}")
            updated = transition(record, record.status, **changes)
        else:
            for status, fields in _FIELDS_FROM:
                if target.rank < status.rank:
                    changes.update(dict.fromkeys(fields))
            changes["error_code"] = None
            changes["error_message"] = None
            updated = regress(record, target, reason, **changes)
        if updated is None:
            return None
        return RecordUpdate(record=updated, expected_version=record.version)

    def find_stuck(self, record: DocumentRecord, now: datetime) -> Issue | None:
        """A STUCK_STATUS issue when an in-progress record has not moved for too long."""
        if record.updated_at is None or record.status.is_failure:
            return None
        if record.status is S.CONSOLIDATED:
            return None
        age = now - record.updated_at
        if age < self._stuck_after:
            return None
        hours = age.total_seconds() / 3600
        return Issue(IssueType.STUCK_STATUS, f"{record.status.value} unchanged for {hours:.0f}h")

    def _verify_artifacts(self, record: DocumentRecord) -> tuple[ProcessingStatus, list[Issue]]:
        """Highest status whose artifacts all check out, up to the record's own level."""
        level = FAILURE_RESUME.get(record.status, record.status)
        checks = [
            (S.DOWNLOADED, self._check_pdf),
            (S.OCR_EXTRACTED, self._check_text),
            (S.TEXT_CORRECTED, self._check_corrected_text),
            (S.STRUCTURED, self._check_json),
        ]
        verified = S.FETCHED if level.rank >= S.FETCHED.rank else level
        for status, check in checks:
            if status.rank > level.rank:
                break
            issue = check(record)
            if issue is not None:
                return verified, [issue]
            verified = status
        return verified, []

    def _check_pdf(self, record: DocumentRecord) -> Issue | None:
        if not self._artifacts.is_present(record.pdf_path):
            return Issue(IssueType.MISSING_PDF, f"PDF missing: {record.pdf_path}")
        if record.content_hash is not None:
            actual = sha256_hex(Path(record.pdf_path or "").read_bytes())
            if actual != record.content_hash:
                return Issue(IssueType.CORRUPTED_PDF, "PDF content hash mismatch")
        return None

    def _check_text(self, record: DocumentRecord) -> Issue | None:
        if not self._artifacts.is_present(record.text_path):
            return Issue(IssueType.MISSING_TEXT, f"OCR text missing: {record.text_path}")
        return None

    def _check_corrected_text(self, record: DocumentRecord) -> Issue | None:
        if not self._artifacts.is_present(record.corrected_text_path):
            return Issue(
                IssueType.MISSING_CORRECTED_TEXT,
                f"corrected text missing: {record.corrected_text_path}",
            )
        return None

    def _check_json(self, record: DocumentRecord) -> Issue | None:
        if not self._artifacts.is_present(record.json_path):
            return Issue(IssueType.MISSING_JSON, f"JSON missing: {record.json_path}")
        try:
            payload = json.loads(self._artifacts.read_text(record.json_path))
        except (OSError, ValueError) as exc:
            return Issue(IssueType.UNREADABLE_JSON, str(exc))
        if not isinstance(payload, dict) or not isinstance(payload.get("articles"), list):
            return Issue(IssueType.UNREADABLE_JSON, "JSON artifact has no article list")
        return None

    def _advance_fetched(self, record: DocumentRecord) -> DocumentRecord | None:
        """A FETCHED record whose PDF is already stored moves on to DOWNLOADED."""
        path = self._artifacts.pdf_path(record)
        if not self._artifacts.is_present(str(path)):
            return None
        data = path.read_bytes()
        if not data.startswith(b"%PDF"):
            return None
        Log.info(f"[fix] {record.document_id}: {IssueType.STATUS_BEHIND_ARTIFACTS.value}")
        return transition(
            record,
            S.DOWNLOADED,
            pdf_path=str(path),
            content_hash=sha256_hex(data),
            error_code=None,
            error_message=None,
        )

    def _is_low_confidence(self, record: DocumentRecord) -> bool:
        return (
            record.status in (S.STRUCTURED, S.CONSOLIDATED)
            and record.confidence is not None
            and record.confidence < self._min_confidence
        )

    @staticmethod
    def _is_retryable_failure(record: DocumentRecord) -> bool:
        if not record.status.is_failure:
            return False
        kind = ErrorKind.from_code(record.error_code)
        return kind is not None and kind.transient
