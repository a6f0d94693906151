"""
Organization Models
===================

Reference data for case placement: provinces own buildings, buildings
own departments. The case service only reads these tables.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.user import User


def _uuid() -> str:
    return str(uuid.uuid4())


class Province(Base):
    """Top level of the organizational directory."""

    __tablename__ = "provinces"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    buildings: Mapped[List["Building"]] = relationship(back_populates="province")

    def __repr__(self) -> str:
        return f"<Province(id={self.id}, name={self.name})>"


class Building(Base):
    """
    A government building.

    Every case belongs to exactly one building.
    """

    __tablename__ = "buildings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    province_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("provinces.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    province: Mapped[Optional["Province"]] = relationship(back_populates="buildings")
    departments: Mapped[List["Department"]] = relationship(back_populates="building")

    def __repr__(self) -> str:
        return f"<Building(id={self.id}, name={self.name})>"


class Department(Base):
    """
    A department housed in a building.

    A reporter's department decides the default building of their cases.
    """

    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    building_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("buildings.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    building: Mapped[Optional["Building"]] = relationship(back_populates="departments")
    users: Mapped[List["User"]] = relationship(back_populates="department")

    def __repr__(self) -> str:
        return f"<Department(id={self.id}, name={self.name})>"
