"""
Atomic batch write helper.

Every row of a batch is validated, built and flushed inside one
transaction. The first failure rolls back the whole batch and the
caller gets a TransactionAborted naming the offending entry.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carbonledger.core.errors import CarbonLedgerError, InvalidInput, TransactionAborted

logger = logging.getLogger(__name__)

RowBuilder = Callable[[int, Dict[str, Any]], Any]


class BatchInsertResult:
    """Result of an atomic batch insert."""

    def __init__(self):
        self.rows_inserted: int = 0
        self.rows_skipped: int = 0
        self.inserted_ids: List[str] = []
        self.started_at: datetime = datetime.utcnow()
        self.completed_at: Optional[datetime] = None

    def mark_complete(self) -> None:
        """Mark the operation as complete."""
        self.completed_at = datetime.utcnow()

    @property
    def duration_seconds(self) -> Optional[float]:
        """Duration in seconds if complete."""
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "count": self.rows_inserted,
            "skipped": self.rows_skipped,
            "inserted_ids": list(self.inserted_ids),
            "duration_seconds": self.duration_seconds,
        }


def atomic_batch_insert(
    db: Session,
    entries: Sequence[Dict[str, Any]],
    build_row: RowBuilder,
    max_entries: Optional[int] = None,
    label: str = "records",
    progress_every: int = 500,
) -> BatchInsertResult:
    """
    Insert all entries or none of them.

    Args:
        db: SQLAlchemy session (must have no unrelated pending writes)
        entries: Raw entry mappings, processed in order
        build_row: Callback(index, entry) returning an ORM object, or None to
            skip the entry; raises a CarbonLedgerError when the entry is invalid
        max_entries: Optional upper bound on the batch size
        label: Name used in log messages
        progress_every: Log progress every N rows

    Returns:
        BatchInsertResult with the inserted count and ids

    Raises:
        InvalidInput: If the batch exceeds max_entries
        TransactionAborted: If any entry fails; nothing is committed

    Example:
        result = atomic_batch_insert(
            db=session,
            entries=[{"site_id": "...", "activity_type": "diesel", "amount": 10, "unit": "L"}],
            build_row=lambda index, entry: service.build_emission_record(entry),
        )
    """
    result = BatchInsertResult()

    if not entries:
        logger.info(f"Atomic batch of {label} called with no entries")
        result.mark_complete()
        return result

    total = len(entries)
    if max_entries is not None and total > max_entries:
        raise InvalidInput(
            f"Batch of {total} {label} exceeds the limit of {max_entries}",
            field="entries",
        )

    logger.info(f"Starting atomic batch: {total} {label}")

    index: Optional[int] = None
    try:
        for index, entry in enumerate(entries):
            row = build_row(index, entry)
            if row is None:
                result.rows_skipped += 1
                continue
            db.add(row)
            db.flush()
            result.rows_inserted += 1
            result.inserted_ids.append(row.id)

            if result.rows_inserted % progress_every == 0:
                logger.info(f"Progress: {result.rows_inserted}/{total} {label} staged")

        db.commit()

    except CarbonLedgerError as e:
        db.rollback()
        logger.warning(f"Batch of {label} rolled back at entry {index}: {e}")
        raise TransactionAborted.from_error(e, index=index) from e

    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Storage error in batch of {label} at entry {index}: {e}")
        raise TransactionAborted(
            reason=f"storage error: {e.__class__.__name__}", index=index
        ) from e

    except Exception:
        db.rollback()
        raise

    result.mark_complete()
    logger.info(
        f"Committed {result.rows_inserted} {label} in {result.duration_seconds:.3f}s"
    )
    return result
