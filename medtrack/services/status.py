"""
Occurrence status transitions

Upcoming -> On-time/Late via log_intake, Upcoming -> Skipped via mark_skipped,
Upcoming -> Missed via age_occurrences, and any recorded state -> Upcoming via cancel.
"""
import logging

from medtrack.models.occurrence import OccurrenceStatus
from medtrack.utils.timezone import start_of_day, to_local

logger = logging.getLogger(__name__)

TOLERANCE_MINUTES = 15


def minutes_between(scheduled, actual):
    """Whole minutes from scheduled to actual, truncated toward zero"""
    delta = to_local(actual) - to_local(scheduled)
    return int(delta.total_seconds() / 60)


def is_on_time(scheduled, actual):
    return abs(minutes_between(scheduled, actual)) <= TOLERANCE_MINUTES


def classify(scheduled, actual):
    # Early intake outside the tolerance also counts as late
    if is_on_time(scheduled, actual):
        return OccurrenceStatus.ON_TIME
    return OccurrenceStatus.LATE


def log_intake(occurrence, actual_time, notes=None):
    actual_time = to_local(actual_time)
    occurrence.actual_time = actual_time
    occurrence.notes = notes
    occurrence.status = classify(occurrence.scheduled_time, actual_time).value
    return occurrence


def mark_skipped(occurrence):
    occurrence.status = OccurrenceStatus.SKIPPED.value
    occurrence.actual_time = None
    occurrence.notes = None
    return occurrence


def cancel(occurrence):
    """Revert a recorded occurrence to Upcoming"""
    if occurrence.status == OccurrenceStatus.UPCOMING:
        return occurrence
    occurrence.status = OccurrenceStatus.UPCOMING.value
    occurrence.actual_time = None
    occurrence.notes = None
    return occurrence


def age_occurrences(occurrences, now):
    """Flip Upcoming occurrences dated strictly before today to Missed.

    Same-day doses stay Upcoming even after their scheduled time has
    passed. Returns the occurrences that changed.
    """
    today = start_of_day(now)
    aged = []
    for occurrence in occurrences:
        if occurrence.status == OccurrenceStatus.UPCOMING and start_of_day(occurrence.date) < today:
            occurrence.status = OccurrenceStatus.MISSED.value
            aged.append(occurrence)
    if aged:
        logger.info('Marked %d overdue occurrences as missed', len(aged))
    return aged


def format_time_difference(scheduled, actual):
    diff = minutes_between(scheduled, actual)
    if diff == 0:
        return 'on time'
    if diff > 0:
        return f'{diff} min late'
    return f'{abs(diff)} min early'
