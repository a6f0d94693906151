"""
Model Package Initialization
============================

Ensures models are properly registered when imported by the application.

All SQLAlchemy ORM models are exported from this module.

Usage:
    from app.models import Incident, IncidentAssignment, SLARule
"""

from .role_enum import Role
from .organization import Province, Building, Department
from .user import User, UserRole
from .incident import (
    Incident,
    IncidentAssignment,
    IncidentStatusLog,
    IncidentMedia,
    IncidentComment,
    ImpactedPerson,
)
from .sla import SLARule, IncidentSLATracking
from .notification import Notification

__all__ = [
    "Role",
    "Province",
    "Building",
    "Department",
    "User",
    "UserRole",
    "Incident",
    "IncidentAssignment",
    "IncidentStatusLog",
    "IncidentMedia",
    "IncidentComment",
    "ImpactedPerson",
    "SLARule",
    "IncidentSLATracking",
    "Notification",
]
