"""Tests for locked ledger transactions."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from config import settings
from services.entity_locks import entity_locks
from services.exceptions import (
    ConcurrencyTimeoutError,
    InsufficientBalanceError,
    StorageError,
)
from services.ledger_transaction import run_locked
from services.read_cache import read_cache


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    monkeypatch.setattr(settings, "LEDGER_LOCK_TIMEOUT_SECONDS", 0.05)
    monkeypatch.setattr(settings, "LEDGER_LOCK_RETRIES", 1)
    monkeypatch.setattr(settings, "LEDGER_RETRY_BACKOFF_SECONDS", 0)


def _locked_error() -> OperationalError:
    return OperationalError("UPDATE units", {}, Exception("database is locked"))


class TestRunLocked:
    def test_commits_and_returns_result(self):
        db = MagicMock()
        result = run_locked(db, "units", "u1", "add_partition", lambda: "done")

        assert result == "done"
        db.commit.assert_called_once()
        db.rollback.assert_not_called()
        assert not entity_locks.is_locked(("units", "u1"))

    def test_invalidates_read_cache_after_commit(self):
        read_cache.set("units:list", ["stale"])
        read_cache.set("stock_elements:list", ["kept"])

        run_locked(MagicMock(), "units", "u1", "add_partition", lambda: None)

        assert read_cache.get("units:list") is None
        assert read_cache.get("stock_elements:list") == ["kept"]

    def test_ledger_error_rolls_back_without_retry(self):
        db = MagicMock()
        work = MagicMock(side_effect=InsufficientBalanceError("too much"))

        with pytest.raises(InsufficientBalanceError):
            run_locked(db, "units", "u1", "add_partition", work)

        assert work.call_count == 1
        db.rollback.assert_called_once()
        db.commit.assert_not_called()
        assert not entity_locks.is_locked(("units", "u1"))

    def test_database_lock_contention_is_retried(self):
        db = MagicMock()
        db.commit.side_effect = [_locked_error(), None]

        assert run_locked(db, "units", "u1", "add_partition", lambda: 42) == 42
        assert db.commit.call_count == 2
        db.rollback.assert_called_once()

    def test_persistent_contention_raises_timeout(self):
        db = MagicMock()
        db.commit.side_effect = _locked_error()

        with pytest.raises(ConcurrencyTimeoutError) as exc_info:
            run_locked(db, "units", "u1", "add_partition", lambda: None)

        assert exc_info.value.retriable
        assert exc_info.value.details["attempts"] == 2
        assert db.commit.call_count == 2

    def test_held_entity_lock_raises_timeout(self):
        key = ("stock_elements", "e1")
        assert entity_locks.acquire(key, timeout=1)
        work = MagicMock()
        try:
            with pytest.raises(ConcurrencyTimeoutError):
                run_locked(MagicMock(), "stock_elements", "e1", "register_egress", work)
        finally:
            entity_locks.release(key)

        work.assert_not_called()

    def test_other_database_errors_become_storage_errors(self, caplog):
        db = MagicMock()
        db.commit.side_effect = IntegrityError("INSERT", {}, Exception("constraint failed"))

        with pytest.raises(StorageError) as exc_info:
            run_locked(db, "units", "u1", "add_partition", lambda: None)

        assert "constraint failed" not in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, IntegrityError)
        db.rollback.assert_called_once()
        assert "Storage failure during add_partition on units u1" in caplog.text

    def test_non_contention_operational_error_not_retried(self):
        db = MagicMock()
        db.commit.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))

        with pytest.raises(StorageError):
            run_locked(db, "units", "u1", "add_partition", lambda: None)

        assert db.commit.call_count == 1

    def test_interrupt_rolls_back_and_propagates(self):
        db = MagicMock()

        def work():
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            run_locked(db, "units", "u1", "add_partition", work)

        db.rollback.assert_called_once()
        db.commit.assert_not_called()
        assert not entity_locks.is_locked(("units", "u1"))

    def test_parent_keys_held_during_work_and_released(self):
        parent = ("products", "p1")
        seen = []

        def work():
            seen.append((entity_locks.is_locked(("units", "u1")), entity_locks.is_locked(parent)))
            return "done"

        run_locked(MagicMock(), "units", "u1", "create_unit", work, parent_keys=[parent])

        assert seen == [(True, True)]
        assert not entity_locks.is_locked(("units", "u1"))
        assert not entity_locks.is_locked(parent)

    def test_held_parent_lock_raises_timeout_and_frees_own_lock(self):
        parent = ("products", "p1")
        assert entity_locks.acquire(parent, timeout=1)
        work = MagicMock()
        try:
            with pytest.raises(ConcurrencyTimeoutError):
                run_locked(
                    MagicMock(), "units", "u1", "create_unit", work, parent_keys=[parent]
                )
            assert not entity_locks.is_locked(("units", "u1"))
        finally:
            entity_locks.release(parent)

        work.assert_not_called()
