"""
User Model
==========

Directory entries for reporters, supervisors and practitioners.

Identity and credentials are owned by the upstream identity provider;
this table only carries what the case service needs: display name,
department placement and role memberships.

Database Indexes:
- Primary key: id
- Unique index: email
- Index: department_id
- Unique: (user_id, role) on user_roles
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    String,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base
from app.models.role_enum import Role

if TYPE_CHECKING:
    from app.models.organization import Department


class User(Base):
    """
    User entity as seen by the case service.

    Attributes:
        id: Primary key (identity provider subject)
        name: Display name used in journal narratives and notifications
        email: Unique email address
        department_id: Department placement, used to default a case's building
        roles: Role memberships
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    department_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("departments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    department: Mapped[Optional["Department"]] = relationship(back_populates="users")

    roles: Mapped[List["UserRole"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"

    @property
    def role_names(self) -> list[str]:
        return [r.role for r in self.roles]

    def has_role(self, role: Role | str) -> bool:
        wanted = role.value if isinstance(role, Role) else role
        return wanted in self.role_names


class UserRole(Base):
    """Role membership of a user (a user may hold several roles)."""

    __tablename__ = "user_roles"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Stored as string; values come from Role
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    user: Mapped["User"] = relationship(back_populates="roles")

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
    )
