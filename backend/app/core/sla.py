"""
SLA Computation Module
======================

Pure functions for SLA deadlines and the read-time SLA view.

Nothing in this module touches storage: breach flags are only read here.
Persisting them is the job of the periodic sweep in
``app.services.sla_service``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, UTC

from app.core.enums import SlaStatus

SECONDS_PER_HOUR = 3600
DEFAULT_WARNING_RATIO = 0.25


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a datetime to aware UTC (naive values are taken as UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def calculate_sla_due(start: datetime, minutes: int) -> datetime:
    """Deadline ``minutes`` after ``start``."""
    return as_utc(start) + timedelta(minutes=minutes)


@dataclass(frozen=True)
class SlaView:
    """Derived SLA state of one tracked case at a given instant."""

    response_due_at: datetime
    resolution_due_at: datetime
    response_breached: bool
    resolution_breached: bool
    response_hours_left: float
    resolution_hours_left: float
    total_resolution_hours: float
    progress: float
    status: SlaStatus


def hours_between(later: datetime, earlier: datetime) -> float:
    return (as_utc(later) - as_utc(earlier)).total_seconds() / SECONDS_PER_HOUR


def classify(
    resolution_hours_left: float,
    total_resolution_hours: float,
    resolution_breached: bool,
    warning_ratio: float = DEFAULT_WARNING_RATIO,
) -> SlaStatus:
    """
    Qualitative SLA label.

    ``breached`` wins when the persisted flag is set or the deadline has
    passed; ``warning`` applies strictly below ``warning_ratio`` of the
    resolution budget, so exactly 25% remaining is still on track.
    """
    if resolution_breached or resolution_hours_left < 0:
        return SlaStatus.BREACHED
    if resolution_hours_left < total_resolution_hours * warning_ratio:
        return SlaStatus.WARNING
    return SlaStatus.ON_TRACK


def compute_sla_view(
    *,
    response_due_at: datetime,
    resolution_due_at: datetime,
    resolution_minutes: int,
    response_breached: bool,
    resolution_breached: bool,
    now: datetime,
    warning_ratio: float = DEFAULT_WARNING_RATIO,
) -> SlaView:
    """
    Compute hours left, progress and label for a tracking row.

    Args:
        response_due_at: Response deadline.
        resolution_due_at: Resolution deadline.
        resolution_minutes: Resolution budget captured when tracking started.
        response_breached: Persisted response breach flag.
        resolution_breached: Persisted resolution breach flag.
        now: Instant to evaluate at.
        warning_ratio: Fraction of the budget that triggers ``warning``.

    Returns:
        SlaView with unrounded figures.
    """
    response_hours_left = hours_between(response_due_at, now)
    resolution_hours_left = hours_between(resolution_due_at, now)
    total_resolution_hours = resolution_minutes / 60

    if total_resolution_hours > 0:
        elapsed = total_resolution_hours - resolution_hours_left
        progress = min(100.0, max(0.0, elapsed / total_resolution_hours * 100))
    else:
        progress = 100.0

    return SlaView(
        response_due_at=as_utc(response_due_at),
        resolution_due_at=as_utc(resolution_due_at),
        response_breached=bool(response_breached),
        resolution_breached=bool(resolution_breached),
        response_hours_left=response_hours_left,
        resolution_hours_left=resolution_hours_left,
        total_resolution_hours=total_resolution_hours,
        progress=progress,
        status=classify(
            resolution_hours_left,
            total_resolution_hours,
            bool(resolution_breached),
            warning_ratio,
        ),
    )
