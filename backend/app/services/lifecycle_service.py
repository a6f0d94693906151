from typing import Any

from app.core.enums import IncidentStatus
from app.core.exceptions import InvalidStatusError, InvalidTransitionError

# Lifecycle graph. Only consulted by status updates when STRICT_TRANSITIONS is on;
# assignment, escalation and closing move the case unconditionally.
LIFECYCLE_TRANSITIONS: dict[IncidentStatus, frozenset[IncidentStatus]] = {
    IncidentStatus.RAISED: frozenset({IncidentStatus.ASSIGNED}),
    IncidentStatus.ASSIGNED: frozenset({
        IncidentStatus.INVESTIGATION_IN_PROGRESS,
        IncidentStatus.UNDER_REVIEW,
    }),
    IncidentStatus.INVESTIGATION_IN_PROGRESS: frozenset({
        IncidentStatus.UNDER_REVIEW,
        IncidentStatus.COMPLETED,
    }),
    IncidentStatus.UNDER_REVIEW: frozenset({
        IncidentStatus.ASSIGNED,
        IncidentStatus.INVESTIGATION_IN_PROGRESS,
        IncidentStatus.COMPLETED,
    }),
    IncidentStatus.COMPLETED: frozenset({
        IncidentStatus.CLOSED,
        IncidentStatus.UNDER_REVIEW,
    }),
    IncidentStatus.CLOSED: frozenset(),
}


def parse_status(value: Any) -> IncidentStatus:
    """
    Resolve a status value against the closed lifecycle enumeration.

    Matching is case-insensitive; anything else is rejected.

    Raises:
        InvalidStatusError: if the value names no lifecycle state
    """
    if isinstance(value, IncidentStatus):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidStatusError(value)
    try:
        return IncidentStatus(value.strip().upper())
    except ValueError:
        raise InvalidStatusError(value) from None


def can_transition(current: IncidentStatus, new: IncidentStatus) -> bool:
    if current == new:
        return True
    return new in LIFECYCLE_TRANSITIONS[current]


def validate_transition(current: Any, new: Any) -> None:
    """
    Validate a move along the lifecycle graph.

    Raises:
        InvalidStatusError: if either side is not a lifecycle state
        InvalidTransitionError: if the graph has no such edge
    """
    current_status = parse_status(current)
    new_status = parse_status(new)

    if not can_transition(current_status, new_status):
        raise InvalidTransitionError(current_status.value, new_status.value)
