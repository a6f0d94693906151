"""
Test Configuration and Fixtures
================================

Central configuration for pytest with all shared fixtures.

Features:
- SQLite in-memory database for testing
- TestClient setup with gateway identity headers
- Organizational directory fixtures (province, building, department, users)
- In-memory storage fixtures for fast service tests
- A frozen clock for deterministic timestamps
"""

import os
import uuid
from datetime import datetime, timedelta, UTC
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Set testing environment before importing app modules
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["LOG_LEVEL"] = "DEBUG"

from app.core.config import Settings
from app.db.base import Base
from app.db.session import get_db
from app.main import app as main_app
from app.models import Building, Department, Province, SLARule, User, UserRole
from app.models.role_enum import Role
from app.repositories.memory import InMemoryDatabase, InMemoryUnitOfWork
from app.repositories.sqlalchemy_store import SqlAlchemyUnitOfWork
from app.services.case_service import CaseService


# =====================================
# Database Configuration
# =====================================

# Create in-memory SQLite engine for testing
# StaticPool is used to maintain the same connection across tests
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign key constraints for SQLite
@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# =====================================
# Database Fixtures
# =====================================

@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Create a fresh database session for each test.

    Creates all tables before each test and drops them after.
    This ensures complete test isolation.

    Yields:
        SQLAlchemy Session object
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    Create a TestClient with database dependency override.

    Args:
        db_session: Database session fixture

    Yields:
        TestClient instance
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    main_app.dependency_overrides[get_db] = override_get_db

    with TestClient(main_app) as test_client:
        yield test_client

    main_app.dependency_overrides.clear()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def strict_settings() -> Settings:
    return Settings(STRICT_TRANSITIONS=True)


# =====================================
# Directory Fixtures (SQL)
# =====================================

def _user(name: str, email: str, department_id=None, roles=()) -> User:
    user = User(
        id=str(uuid.uuid4()),
        name=name,
        email=email,
        department_id=department_id,
    )
    user.roles = [UserRole(id=str(uuid.uuid4()), role=role) for role in roles]
    return user


@pytest.fixture
def province(db_session: Session) -> Province:
    province = Province(id=str(uuid.uuid4()), name="Gauteng")
    db_session.add(province)
    db_session.commit()
    return province


@pytest.fixture
def building(db_session: Session, province: Province) -> Building:
    building = Building(id=str(uuid.uuid4()), name="Union Buildings", province_id=province.id)
    db_session.add(building)
    db_session.commit()
    return building


@pytest.fixture
def other_building(db_session: Session, province: Province) -> Building:
    building = Building(id=str(uuid.uuid4()), name="Civitas Building", province_id=province.id)
    db_session.add(building)
    db_session.commit()
    return building


@pytest.fixture
def department(db_session: Session, building: Building) -> Department:
    department = Department(id=str(uuid.uuid4()), name="Public Works", building_id=building.id)
    db_session.add(department)
    db_session.commit()
    return department


@pytest.fixture
def supervisor(db_session: Session, department: Department) -> User:
    """User holding the SUPERVISOR role."""
    user = _user("Thandi Supervisor", "supervisor@gov.test", department.id, [Role.SUPERVISOR.value])
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def practitioner(db_session: Session, department: Department) -> User:
    user = _user("Sipho Practitioner", "ohs1@gov.test", department.id, [Role.OHS_PRACTITIONER.value])
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def second_practitioner(db_session: Session, department: Department) -> User:
    user = _user("Lerato Practitioner", "ohs2@gov.test", department.id, [Role.OHS_PRACTITIONER.value])
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def employee(db_session: Session, department: Department) -> User:
    """Reporter whose department resolves to ``building``."""
    user = _user("Nomsa Employee", "employee@gov.test", department.id, [Role.EMPLOYEE.value])
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def homeless_employee(db_session: Session) -> User:
    """Reporter without a department, so no default building."""
    user = _user("Pieter Contractor", "contractor@gov.test", None, [Role.EMPLOYEE.value])
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def sla_rule(db_session: Session) -> SLARule:
    """Fire/High: respond within 60 minutes, resolve within 240."""
    rule = SLARule(
        id=str(uuid.uuid4()),
        category="Fire",
        severity="High",
        response_minutes=60,
        resolution_minutes=240,
        created_at=T0,
        updated_at=T0,
    )
    db_session.add(rule)
    db_session.commit()
    return rule


@pytest.fixture
def sql_uow_factory(db_session: Session) -> Callable[[], SqlAlchemyUnitOfWork]:
    return lambda: SqlAlchemyUnitOfWork(db_session)


@pytest.fixture
def case_service(sql_uow_factory, clock: FrozenClock) -> CaseService:
    """Case service over the SQLite session with a frozen clock."""
    return CaseService(sql_uow_factory, clock=clock)


# =====================================
# Identity Headers
# =====================================

@pytest.fixture
def supervisor_headers(supervisor: User) -> dict:
    return {"X-User-ID": supervisor.id, "X-User-Roles": Role.SUPERVISOR.value}


@pytest.fixture
def employee_headers(employee: User) -> dict:
    return {"X-User-ID": employee.id, "X-User-Roles": Role.EMPLOYEE.value}


@pytest.fixture
def practitioner_headers(practitioner: User) -> dict:
    return {"X-User-ID": practitioner.id, "X-User-Roles": Role.OHS_PRACTITIONER.value}


# =====================================
# In-Memory Storage Fixtures
# =====================================

class MemoryDirectory:
    """Seeded in-memory database plus handles to its directory rows."""

    def __init__(self):
        self.db = InMemoryDatabase()
        self.building = self.db.add_building(Building(id=str(uuid.uuid4()), name="Union Buildings"))
        self.department = self.db.add_department(
            Department(id=str(uuid.uuid4()), name="Public Works", building_id=self.building.id)
        )
        self.supervisor = self.db.add_user(
            User(id=str(uuid.uuid4()), name="Thandi Supervisor", email="supervisor@gov.test",
                 department_id=self.department.id),
            roles=[Role.SUPERVISOR.value],
        )
        self.practitioner = self.db.add_user(
            User(id=str(uuid.uuid4()), name="Sipho Practitioner", email="ohs1@gov.test",
                 department_id=self.department.id),
            roles=[Role.OHS_PRACTITIONER.value],
        )
        self.second_practitioner = self.db.add_user(
            User(id=str(uuid.uuid4()), name="Lerato Practitioner", email="ohs2@gov.test",
                 department_id=self.department.id),
            roles=[Role.OHS_PRACTITIONER.value],
        )
        self.employee = self.db.add_user(
            User(id=str(uuid.uuid4()), name="Nomsa Employee", email="employee@gov.test",
                 department_id=self.department.id),
            roles=[Role.EMPLOYEE.value],
        )

    def uow(self) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(self.db)

    def add_rule(self, category: str, severity: str, response: int, resolution: int) -> SLARule:
        with self.uow() as uow:
            return uow.sla.add_rule(
                SLARule(
                    id=str(uuid.uuid4()),
                    category=category,
                    severity=severity,
                    response_minutes=response,
                    resolution_minutes=resolution,
                    created_at=T0,
                    updated_at=T0,
                )
            )


@pytest.fixture
def memory() -> MemoryDirectory:
    return MemoryDirectory()


@pytest.fixture
def memory_service(memory: MemoryDirectory, clock: FrozenClock) -> CaseService:
    """Case service over in-memory storage with a frozen clock."""
    return CaseService(memory.uow, clock=clock)
