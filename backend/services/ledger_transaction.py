"""Locked, all-or-nothing execution of a single ledger write.

``run_locked`` is the only place where ledger writes are committed. It
takes the entity's lock, runs the read-validate-write callable, commits,
and releases the lock, so a second writer on the same entity always reads
the committed result of the first. Any failure before the commit rolls
back the balance change and its movement record together.
"""

import logging
import time
from contextlib import ExitStack
from typing import Callable, Sequence, TypeVar

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from services.entity_locks import entity_locks
from services.exceptions import ConcurrencyTimeoutError, LedgerError, StorageError
from services.principal_service import Principal
from services.read_cache import read_cache

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CONTENTION_MARKERS = ("database is locked", "could not obtain lock", "lock timeout", "deadlock")


def _is_lock_contention(exc: OperationalError) -> bool:
    """True if the database rejected the write because of a competing lock."""
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in _CONTENTION_MARKERS)


def run_locked(
    db: Session,
    table: str,
    entity_id: str,
    operation: str,
    work: Callable[[], T],
    actor: Principal | None = None,
    parent_keys: Sequence[tuple[str, str]] = (),
) -> T:
    """Run ``work`` while holding the lock for ``(table, entity_id)`` and commit.

    Args:
        db: Database session; committed on success, rolled back on failure.
        table: Table name of the locked entity; also the read-cache prefix
            invalidated after commit.
        entity_id: Primary key of the locked entity.
        operation: Short name used in logs and error details.
        work: Callable doing the read-validate-write. It must read the
            entity inside the call, not before it.
        actor: Principal performing the operation, for logging.
        parent_keys: Extra ``(table, id)`` locks taken after the entity's
            own lock and held until commit. A write that checks a parent
            row (a unit's product, an element's type) passes the parent key
            so it serializes with that parent's deletion.

    Returns:
        Whatever ``work`` returns.

    Raises:
        LedgerError: Propagated unchanged from ``work`` after rollback.
        ConcurrencyTimeoutError: Lock (in-process or database) still
            contended after ``LEDGER_LOCK_RETRIES`` retries.
        StorageError: Any other SQLAlchemy failure.
    """
    keys = [(table, entity_id), *parent_keys]
    actor_id = actor.id if actor else None
    attempts = settings.LEDGER_LOCK_RETRIES + 1

    for attempt in range(1, attempts + 1):
        with ExitStack() as held:
            acquired = all(
                held.enter_context(
                    entity_locks.hold(key, timeout=settings.LEDGER_LOCK_TIMEOUT_SECONDS)
                )
                for key in keys
            )
            if not acquired:
                logger.warning(
                    "Lock wait timed out for %s %s (%s, attempt %d/%d)",
                    table, entity_id, operation, attempt, attempts,
                )
            else:
                try:
                    result = work()
                    db.commit()
                except LedgerError:
                    db.rollback()
                    raise
                except OperationalError as exc:
                    db.rollback()
                    if not _is_lock_contention(exc):
                        _log_storage_failure(table, entity_id, operation, actor_id)
                        raise StorageError(
                            f"Storage failure during {operation}", operation=operation
                        ) from exc
                    logger.warning(
                        "Database lock contention on %s %s (%s, attempt %d/%d)",
                        table, entity_id, operation, attempt, attempts,
                    )
                except SQLAlchemyError as exc:
                    db.rollback()
                    _log_storage_failure(table, entity_id, operation, actor_id)
                    raise StorageError(
                        f"Storage failure during {operation}", operation=operation
                    ) from exc
                except BaseException:
                    # Covers caller cancellation (KeyboardInterrupt, task cancellation)
                    db.rollback()
                    raise
                else:
                    read_cache.invalidate(f"{table}:")
                    return result

        _backoff(attempt, attempts)

    raise ConcurrencyTimeoutError(
        f"Could not lock {table} {entity_id} for {operation}; retry later",
        table=table,
        entity_id=entity_id,
        operation=operation,
        attempts=attempts,
    )


def _backoff(attempt: int, attempts: int) -> None:
    if attempt < attempts and settings.LEDGER_RETRY_BACKOFF_SECONDS > 0:
        time.sleep(settings.LEDGER_RETRY_BACKOFF_SECONDS * attempt)


def _log_storage_failure(table: str, entity_id: str, operation: str, actor_id: str | None) -> None:
    logger.error(
        "Storage failure during %s on %s %s (actor=%s)",
        operation, table, entity_id, actor_id,
        exc_info=True,
    )
