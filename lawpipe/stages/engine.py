import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import ClassVar

from lawpipe.database.models import DocumentRecord, RecordUpdate
from lawpipe.database.repositories.base import BaseDocumentStore
from lawpipe.extraction.models import Article
from lawpipe.logging.logger import Log
from lawpipe.pipeline.errors import ErrorKind, StageError
from lawpipe.pipeline.state_machine import transition
from lawpipe.pipeline.status import DocumentFlag, ProcessingStatus


@dataclass(frozen=True)
class StepResult:
    """Successful outcome of a step: record field changes plus optional articles."""

    changes: dict[str, object] = field(default_factory=dict)
    articles: list[Article] | None = None


class StageStep(ABC):
    """Per-item transform of one stage.

    Failures are returned as StageError values. Anything raised is treated
    by the engine as an unexpected failure of that item only.
    """

    stage_name: ClassVar[str] = "stage"

    def fail(self, record: DocumentRecord, kind: ErrorKind, cause: object) -> StageError:
        return StageError(
            kind=kind,
            document_id=record.document_id,
            stage=self.stage_name,
            cause=str(cause),
        )

    @abstractmethod
    def run(self, record: DocumentRecord) -> StepResult | StageError:
        raise NotImplementedError


@dataclass(frozen=True)
class StageDefinition:
    name: str
    input_statuses: tuple[ProcessingStatus, ...]
    step: StageStep
    success_status: ProcessingStatus | None = None
    failure_status: ProcessingStatus | None = None
    success_flag: DocumentFlag | None = None
    failure_flag: DocumentFlag | None = None
    max_confidence: float | None = None
    after_chunk: Callable[[], None] | None = None

    @property
    def excluded_flags(self) -> frozenset[DocumentFlag]:
        """Flag-only stages skip records they already completed or failed."""
        return frozenset(f for f in (self.success_flag, self.failure_flag) if f is not None)


@dataclass(frozen=True)
class ChunkReport:
    stage: str
    claimed: int = 0
    succeeded: int = 0
    failed: int = 0
    rejected: int = 0
    applied: int = 0

    @property
    def is_empty(self) -> bool:
        return self.claimed == 0


class StageEngine:
    """Claim a chunk, run the step on every record independently, persist once.

    Workers finish items concurrently. Their outcomes are collected under a
    lock and written with a single atomic apply_updates call.
    """

    def __init__(
        self,
        definition: StageDefinition,
        store: BaseDocumentStore,
        chunk_size: int,
        pool_size: int = 1,
    ) -> None:
        self._definition = definition
        self._store = store
        self._chunk_size = chunk_size
        self._pool_size = max(1, pool_size)

    @property
    def name(self) -> str:
        return self._definition.name

    def run_chunk(self, document_id: str | None = None) -> ChunkReport:
        """Process one chunk of eligible records.

        A targeted run (document_id set) also claims the record from the
        stage's failure status so it can be retried by hand.
        """
        definition = self._definition
        records = self._store.find_eligible(
            self._statuses(document_id),
            limit=self._chunk_size,
            document_id=document_id,
            excluded_flags=self._excluded_flags(document_id),
            max_confidence=definition.max_confidence,
        )
        if not records:
            Log.debug(f"[{definition.name}] No eligible records")
            return ChunkReport(stage=definition.name)

        Log.info(f"[{definition.name}] Chunk started: {len(records)} records")
        lock = threading.Lock()
        updates: list[RecordUpdate] = []
        counts = {"succeeded": 0, "failed": 0, "rejected": 0}

        def process(record: DocumentRecord) -> None:
            outcome = self._run_step(record)
            update = self._to_update(record, outcome)
            with lock:
                if update is None:
                    counts["rejected"] += 1
                    return
                updates.append(update)
                counts["failed" if isinstance(outcome, StageError) else "succeeded"] += 1

        with ThreadPoolExecutor(max_workers=min(self._pool_size, len(records))) as pool:
            list(pool.map(process, records))

        updates.sort(key=lambda u: u.record.document_id)
        applied = self._store.apply_updates(updates)
        if definition.after_chunk is not None:
            definition.after_chunk()

        report = ChunkReport(
            stage=definition.name,
            claimed=len(records),
            applied=applied,
            **counts,
        )
        Log.info(
            f"[{definition.name}] Chunk finished: {report.succeeded} succeeded, "
            f"{report.failed} failed, {report.rejected} rejected, {report.applied} written"
        )
        return report

    def _statuses(self, document_id: str | None) -> tuple[ProcessingStatus, ...]:
        statuses = self._definition.input_statuses
        failure = self._definition.failure_status
        if document_id is not None and failure is not None and failure not in statuses:
            statuses = statuses + (failure,)
        return statuses

    def _excluded_flags(self, document_id: str | None) -> frozenset[DocumentFlag]:
        excluded = self._definition.excluded_flags
        if document_id is not None and self._definition.failure_flag is not None:
            excluded = excluded - {self._definition.failure_flag}
        return excluded

    def _run_step(self, record: DocumentRecord) -> StepResult | StageError:
        try:
            return self._definition.step.run(record)
        except Exception as exc:
            Log.exception(f"[{self.name}] Unexpected error for {record.document_id}")
            return StageError(
                kind=ErrorKind.UNEXPECTED,
                document_id=record.document_id,
                stage=self.name,
                cause=f"{type(exc).__name__}: {exc}",
            )

    def _to_update(
        self,
        record: DocumentRecord,
        outcome: StepResult | StageError,
    ) -> RecordUpdate | None:
        definition = self._definition
        flags = set(record.flags)

        if isinstance(outcome, StageError):
            Log.error(f"Stage failure {outcome}")
            if definition.failure_flag is not None:
                flags.add(definition.failure_flag)
            target = definition.failure_status or record.status
            updated = transition(
                record,
                target,
                flags=frozenset(flags),
                error_code=outcome.code,
                error_message=outcome.cause,
            )
            articles = None
        else:
            if definition.success_flag is not None:
                flags.add(definition.success_flag)
            if definition.failure_flag is not None:
                flags.discard(definition.failure_flag)
            target = definition.success_status or record.status
            changes = {"error_code": None, "error_message": None, **outcome.changes}
            updated = transition(record, target, flags=frozenset(flags), **changes)
            articles = outcome.articles

        if updated is None:
            return None
        return RecordUpdate(record=updated, expected_version=record.version, articles=articles)
