"""Test fixtures and sample data."""
import pytest
from decimal import Decimal

from models import ElementType, Product, ProductType, Reason, User
from models.user import ROLE_ADMIN, ROLE_USER
from schemas.stock import StockElementCreate
from schemas.unit import UnitCreate
from services.principal_service import Principal
from services.stock_ledger_service import StockLedgerService
from services.unit_ledger_service import UnitLedgerService


@pytest.fixture
def admin_user(db) -> User:
    """Create an active admin user."""
    user = User(username="admin", display_name="Admin", role=ROLE_ADMIN, is_active=True)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def regular_user(db) -> User:
    """Create an active non-admin user."""
    user = User(username="clerk", display_name="Counter clerk", role=ROLE_USER, is_active=True)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin_principal(admin_user) -> Principal:
    return Principal(id=admin_user.id, role=ROLE_ADMIN)


@pytest.fixture
def user_principal(regular_user) -> Principal:
    return Principal(id=regular_user.id, role=ROLE_USER)


@pytest.fixture
def reason(db) -> Reason:
    """Create the "Sale" reason."""
    reason = Reason(name="Sale", description="Sold to a customer", is_active=True)
    db.add(reason)
    db.commit()
    return reason


@pytest.fixture
def waste_reason(db) -> Reason:
    reason = Reason(name="Waste", is_active=True)
    db.add(reason)
    db.commit()
    return reason


@pytest.fixture
def product_type(db) -> ProductType:
    product_type = ProductType(name="Gouda")
    db.add(product_type)
    db.commit()
    return product_type


@pytest.fixture
def product(db, product_type) -> Product:
    product = Product(
        name="Aged Gouda",
        plu="1001",
        sold_by_unit=False,
        price_per_kilo=Decimal("24.50"),
        product_type_id=product_type.id,
    )
    db.add(product)
    db.commit()
    return product


@pytest.fixture
def unit(db, product, reason, admin_principal):
    """A 1000 g unit of the sample product."""
    return UnitLedgerService.create_unit(
        db,
        UnitCreate(product_id=product.id, initial_weight=Decimal("1000"), reason_id=reason.id),
        admin_principal,
    )


@pytest.fixture
def element_type(db) -> ElementType:
    element_type = ElementType(name="Cardboard box", unit_of_measure="units", category="Packaging")
    db.add(element_type)
    db.commit()
    return element_type


@pytest.fixture
def stock_element(db, element_type, admin_principal):
    """A stock element holding 10 boxes with a minimum of 3."""
    return StockLedgerService.create_element(
        db,
        StockElementCreate(
            name="Small box",
            initial_quantity=Decimal("10"),
            element_type_id=element_type.id,
            minimum_quantity=Decimal("3"),
            location="Back room",
        ),
        admin_principal,
    )
