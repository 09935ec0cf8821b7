"""Tests for shared API helpers."""

from decimal import Decimal

import pytest

from api.helpers import (
    get_admin_principal,
    get_current_principal,
    movement_response_dict,
    stock_element_response_dict,
    unit_response_dict,
    verification_response_dict,
)
from models import StockMovement
from services.balance import ReplayResult
from services.exceptions import AuthenticationError, PermissionDeniedError
from services.principal_service import Principal
from services.unit_ledger_service import UnitLedgerService


class TestPrincipalDependencies:
    """Tests for get_current_principal / get_admin_principal."""

    def test_resolves_header_to_principal(self, db, regular_user):
        principal = get_current_principal(x_user_id=regular_user.id, db=db)
        assert principal.id == regular_user.id

    def test_missing_header_rejected(self, db):
        with pytest.raises(AuthenticationError):
            get_current_principal(x_user_id=None, db=db)

    def test_admin_dependency_rejects_user(self):
        with pytest.raises(PermissionDeniedError):
            get_admin_principal(Principal(id="u", role="user"))


class TestResponseDicts:
    def test_unit_response_dict(self, db, unit, admin_principal):
        UnitLedgerService.add_partition(db, unit.id, Decimal("250"), actor=admin_principal)
        unit = UnitLedgerService.get_unit(db, unit.id)

        result = unit_response_dict(unit)

        assert result["consumed_weight"] == Decimal("250")
        assert result["partition_count"] == 1
        assert result["product_name"] == "Aged Gouda"
        assert result["reason_name"] == "Sale"
        assert result["lifecycle"] == "live"
        assert result["created_by_id"] == admin_principal.id

    def test_stock_element_response_dict_flags_low_stock(self, db, stock_element):
        stock_element.current_quantity = Decimal("3")

        result = stock_element_response_dict(stock_element)

        assert result["is_below_threshold"] is True
        assert result["element_type_name"] == "Cardboard box"

    def test_movement_response_dict(self, db, stock_element):
        movement = db.query(StockMovement).filter_by(stock_element_id=stock_element.id).one()

        result = movement_response_dict(movement)

        assert result["kind"] == "ingress"
        assert result["reason_name"] is None
        assert result["notes"] == "Opening balance"

    def test_verification_response_dict(self):
        result = ReplayResult(
            opening_balance=Decimal("0"),
            replayed_balance=Decimal("5"),
            stored_balance=Decimal("4"),
            movement_count=2,
            broken_links=[],
        )

        payload = verification_response_dict("e1", result)

        assert payload["entity_id"] == "e1"
        assert payload["is_consistent"] is False
