"""
Timezone and calendar utilities for MedTrack
All calendar arithmetic happens in the configured local timezone.
The database stores naive timestamps that are already in local time.
"""
import calendar
import os
from datetime import datetime, time, timedelta

import pytz

DATE_FORMAT = '%Y-%m-%d'
TIME_FORMAT = '%H:%M'
DATETIME_FORMAT = '%Y-%m-%d %H:%M'

LOCAL_TZ = pytz.timezone(os.environ.get('MEDTRACK_TIMEZONE', 'UTC'))


def configure(tz_name):
    """Switch the local timezone used by every helper in this module"""
    global LOCAL_TZ
    LOCAL_TZ = pytz.timezone(tz_name)
    return LOCAL_TZ


def now():
    """Get current datetime in the local timezone as naive datetime for database compatibility"""
    return datetime.now(LOCAL_TZ).replace(tzinfo=None)


def today():
    return now().date()


def to_local(dt):
    """Convert any datetime to the local timezone and return as naive"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        # Already naive, assume it's local time
        return dt
    return dt.astimezone(LOCAL_TZ).replace(tzinfo=None)


def start_of_day(value):
    """Truncate a datetime or date to local midnight.

    Every calendar-day comparison goes through here; comparing raw
    timestamps across days gives wrong answers near midnight.
    """
    if isinstance(value, datetime):
        return to_local(value).replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime(value.year, value.month, value.day)


def local_date(value):
    """Calendar date of a datetime or date in the local timezone"""
    return start_of_day(value).date()


def weekday_of(value):
    """Weekday ordinal with Sunday=0 through Saturday=6"""
    return local_date(value).isoweekday() % 7


def month_range(value):
    """First and last calendar day of the month containing value"""
    day = local_date(value)
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def days_between(start, end):
    """Inclusive list of calendar dates from start to end, empty if start > end"""
    current = local_date(start)
    last = local_date(end)
    days = []
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


def combine_date_and_time(day, time_of_day):
    """Concrete local timestamp for a calendar date at a wall-clock time"""
    day = local_date(day)
    return datetime(day.year, day.month, day.day, time_of_day.hour, time_of_day.minute)


def format_date(value):
    if value is None:
        return None
    return local_date(value).strftime(DATE_FORMAT)


def parse_date(value):
    """Parse a YYYY-MM-DD string into a date"""
    return datetime.strptime(value, DATE_FORMAT).date()


def format_time(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        value = to_local(value)
    return value.strftime(TIME_FORMAT)


def parse_time(value):
    """Parse an HH:mm string into a wall-clock time"""
    parsed = datetime.strptime(value, TIME_FORMAT)
    return time(parsed.hour, parsed.minute)


def parse_timestamp(value, day=None):
    """Parse either 'YYYY-MM-DD HH:mm' or a bare 'HH:mm' applied to day"""
    if len(value) > 5:
        return datetime.strptime(value, DATETIME_FORMAT)
    return combine_date_and_time(day or today(), parse_time(value))


def month_of(value):
    """Parse a YYYY-MM string into the first day of that month"""
    return datetime.strptime(value, '%Y-%m').date()
