"""
Occurrence generation
Expands schedules into dated occurrences and persists the missing ones
"""
import logging
from datetime import timedelta

from medtrack.models.occurrence import Occurrence
from medtrack.models.schedule import Frequency
from medtrack.utils.timezone import (
    days_between, local_date, start_of_day, today as tz_today, weekday_of,
)

logger = logging.getLogger(__name__)

DEFAULT_LOOKAHEAD_DAYS = 60


def should_generate(schedule, day):
    """Whether schedule has a dose on the calendar date day"""
    if not schedule.is_active:
        return False

    target = start_of_day(day)
    if target < start_of_day(schedule.start_date):
        return False
    if schedule.end_date is not None and target > start_of_day(schedule.end_date):
        return False

    if schedule.frequency == Frequency.DAILY:
        return True
    if schedule.frequency == Frequency.WEEKLY:
        return weekday_of(day) in schedule.weekdays
    return False


def generate_occurrences_for_date(schedules, day):
    """New Upcoming occurrences for every schedule due on day, by scheduled time"""
    occurrences = [
        Occurrence.from_schedule(schedule, day)
        for schedule in schedules
        if should_generate(schedule, day)
    ]
    return sorted(occurrences, key=lambda occurrence: occurrence.scheduled_time)


def ensure_occurrences(store, schedules, start, end):
    """Persist any missing occurrences for schedules between start and end.

    Existing occurrences are never overwritten, so running this again over
    the same range is a no-op. Returns the newly created occurrences.
    """
    candidates = []
    for day in days_between(start, end):
        candidates.extend(generate_occurrences_for_date(schedules, day))
    if not candidates:
        return []

    created = store.add_occurrences_if_absent(candidates)
    if created:
        logger.info('Generated %d occurrences between %s and %s', len(created), local_date(start), local_date(end))
    return created


def lookahead_window(schedule, days=DEFAULT_LOOKAHEAD_DAYS, today=None):
    """Eager generation window for a schedule: today .. today+days, clipped to its date range"""
    today = local_date(today) if today is not None else tz_today()
    start = max(today, schedule.start_date)
    end = today + timedelta(days=days)
    if schedule.end_date is not None:
        end = min(end, schedule.end_date)
    return start, end


def ensure_lookahead(store, schedule, days=DEFAULT_LOOKAHEAD_DAYS, today=None):
    if not schedule.is_active:
        return []
    start, end = lookahead_window(schedule, days, today)
    return ensure_occurrences(store, [schedule], start, end)
