"""
Service Dependencies Module
===========================

Builds request-scoped services over the request's database session.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.repositories.sqlalchemy_store import SqlAlchemyUnitOfWork
from app.services.case_service import CaseService
from app.services.sla_service import SlaClock


def get_case_service(db: Session = Depends(get_db)) -> CaseService:
    return CaseService(lambda: SqlAlchemyUnitOfWork(db))


def get_sla_clock(db: Session = Depends(get_db)) -> SlaClock:
    return SlaClock(lambda: SqlAlchemyUnitOfWork(db))
