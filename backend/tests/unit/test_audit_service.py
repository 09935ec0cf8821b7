"""Tests for AuditService and the soft-delete lifecycle."""

import pytest
from sqlalchemy.orm import Session

from models import ProductType
from models.utils import Deleted, Live
from services.audit_service import AuditService
from services.exceptions import DependencyExistsError, EntityDeletedError, NotFoundError


class TestAuditService:
    def test_system_actor_records_null(self, db: Session):
        product_type = ProductType(name="Feta")
        AuditService.stamp_created(product_type, None)
        db.add(product_type)
        db.flush()

        assert product_type.created_by_id is None

    def test_soft_delete_sets_lifecycle(self, db, product_type, admin_principal):
        assert product_type.lifecycle == Live()

        AuditService.soft_delete(product_type, admin_principal, "ProductType")

        lifecycle = product_type.lifecycle
        assert isinstance(lifecycle, Deleted)
        assert lifecycle.by == admin_principal.id
        assert lifecycle.at == product_type.deleted_at

    def test_soft_delete_twice_rejected(self, db, product_type, admin_principal):
        AuditService.soft_delete(product_type, admin_principal, "ProductType")
        with pytest.raises(EntityDeletedError):
            AuditService.soft_delete(product_type, admin_principal, "ProductType")

    def test_query_excludes_deleted_by_default(self, db, product_type, admin_principal):
        AuditService.soft_delete(product_type, admin_principal, "ProductType")
        db.flush()

        assert AuditService.query(db, ProductType).count() == 0
        assert AuditService.query(db, ProductType, include_deleted=True).count() == 1

    def test_get_respects_include_deleted(self, db, product_type, admin_principal):
        AuditService.soft_delete(product_type, admin_principal, "ProductType")
        db.flush()

        assert AuditService.get(db, ProductType, product_type.id, "ProductType").id == product_type.id
        with pytest.raises(NotFoundError):
            AuditService.get(
                db, ProductType, product_type.id, "ProductType", include_deleted=False
            )

    def test_dependency_guard_names_count(self):
        with pytest.raises(DependencyExistsError, match="3 active unit"):
            AuditService.ensure_no_dependents(3, "Product", "p1", "active unit(s)")

    def test_dependency_guard_passes_at_zero(self):
        AuditService.ensure_no_dependents(0, "Product", "p1", "active unit(s)")
