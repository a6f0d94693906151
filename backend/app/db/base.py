"""
Database Base Definition
========================

Defines the SQLAlchemy Declarative Base.

All ORM models must inherit from this Base. Import ``app.models`` to make
sure every table is registered on ``Base.metadata``.
"""

from sqlalchemy.orm import declarative_base

# Base class for all database models
Base = declarative_base()
