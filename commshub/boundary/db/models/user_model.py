"""
User ORM model.

Read-only mirror of the CRM's users table (owned by the auth layer). The
relay only reads it to put author names and roles on message payloads.

Dependencies: sqlalchemy, commshub.boundary.db.base
System role: Author metadata lookup
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from commshub.boundary.db.base import Base, UUIDMixin


class UserModel(Base, UUIDMixin):
    """CRM user (id, display name, role)."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    role: Mapped[str | None] = mapped_column(String(64), nullable=True)
