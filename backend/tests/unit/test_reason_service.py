"""Tests for the ReasonService."""

import pytest
from sqlalchemy.orm import Session

from models import Reason
from services.exceptions import DuplicateNameError, NotFoundError, ValidationError
from services.reason_service import DEFAULT_REASONS, ReasonService


class TestReasonService:
    def test_seed_default_reasons(self, db: Session):
        added = ReasonService.seed_default_reasons(db)

        assert added == len(DEFAULT_REASONS)
        names = {r.name for r in ReasonService.list_reasons(db)}
        assert {"Sale", "Waste", "Internal consumption", "Other"} <= names

    def test_seed_is_idempotent(self, db, reason):
        first = ReasonService.seed_default_reasons(db)
        second = ReasonService.seed_default_reasons(db)

        assert first == len(DEFAULT_REASONS) - 1  # "Sale" already existed
        assert second == 0
        assert db.query(Reason).count() == len(DEFAULT_REASONS)

    def test_resolve_unknown(self, db):
        with pytest.raises(NotFoundError):
            ReasonService.resolve_reason(db, "missing")

    def test_deactivated_reason_still_resolves(self, db, reason):
        ReasonService.deactivate_reason(db, reason.id)

        assert ReasonService.resolve_reason(db, reason.id).is_active is False
        assert ReasonService.list_reasons(db) == []
        assert len(ReasonService.list_reasons(db, include_inactive=True)) == 1

    def test_create_duplicate(self, db, reason):
        with pytest.raises(DuplicateNameError):
            ReasonService.create_reason(db, "Sale")

    def test_create_empty_name(self, db):
        with pytest.raises(ValidationError):
            ReasonService.create_reason(db, "")

    def test_update(self, db, reason):
        updated = ReasonService.update_reason(db, reason.id, description="Retail sale")
        assert updated.description == "Retail sale"
        assert updated.name == "Sale"

    def test_rename_to_existing(self, db, reason, waste_reason):
        with pytest.raises(DuplicateNameError):
            ReasonService.update_reason(db, waste_reason.id, name="Sale")
