"""User model - the principal store for audit attribution."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String

from database import Base
from models.utils import generate_uuid, utc_now

ROLE_ADMIN = "admin"
ROLE_USER = "user"
VALID_ROLES = (ROLE_ADMIN, ROLE_USER)


class User(Base):
    """An operator who records stock movements.

    Credentials live outside this service; a request arrives with an
    already-verified user id that is resolved to a principal here.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'user')", name="ck_user_role_valid"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    username = Column(String(100), nullable=False, unique=True)
    display_name = Column(String, nullable=True)
    role = Column(String(20), nullable=False, default=ROLE_USER)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)
