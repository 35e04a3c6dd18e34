"""Applies status changes to Document Records under the transition rules."""

from lawpipe.database.models import DocumentRecord
from lawpipe.logging.logger import Log
from lawpipe.pipeline.status import (
    ProcessingStatus,
    is_regression_allowed,
    is_transition_allowed,
)


def transition(
    record: DocumentRecord,
    target: ProcessingStatus,
    **changes: object,
) -> DocumentRecord | None:
    """Return the record moved to *target*, or None when the move is not legal.

    A rejected transition is a no-op, never an error, so retried stage runs
    stay idempotent.
    """
    if not is_transition_allowed(record.status, target):
        Log.debug(
            f"Rejected transition {record.status.value} -> {target.value} "
            f"for {record.document_id}"
        )
        return None
    return record.with_changes(status=target, **changes)


def regress(
    record: DocumentRecord,
    target: ProcessingStatus,
    reason: str,
    **changes: object,
) -> DocumentRecord | None:
    """Move a record backward. Reserved for the fix scanner and operators."""
    if not is_regression_allowed(record.status, target):
        Log.debug(
            f"Rejected regression {record.status.value} -> {target.value} "
            f"for {record.document_id}"
        )
        return None
    Log.warning(
        f"Regressing {record.document_id} {record.status.value} -> {target.value}: {reason}"
    )
    return record.with_changes(status=target, **changes)
