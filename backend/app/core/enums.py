"""
Enumeration Module
==================

Defines enumerations used across the application.
"""

from enum import Enum


class IncidentStatus(str, Enum):
    """Lifecycle statuses for workplace incident cases."""

    RAISED = "RAISED"
    ASSIGNED = "ASSIGNED"
    INVESTIGATION_IN_PROGRESS = "INVESTIGATION_IN_PROGRESS"
    UNDER_REVIEW = "UNDER_REVIEW"
    COMPLETED = "COMPLETED"
    CLOSED = "CLOSED"


class SlaStatus(str, Enum):
    """Qualitative SLA label computed at read time."""

    ON_TRACK = "on-track"
    WARNING = "warning"
    BREACHED = "breached"


class NotificationModule(str, Enum):
    """Module tag attached to dispatched notifications."""

    CASES = "cases"
