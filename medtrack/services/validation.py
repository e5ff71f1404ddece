"""
Schedule payload validation
Payloads use the wire field names (camelCase, YYYY-MM-DD dates, HH:mm times)
"""
from medtrack.errors import ValidationError
from medtrack.models.schedule import Frequency
from medtrack.utils.timezone import parse_date, parse_time

REQUIRED_FIELDS = ('name', 'dosage', 'scheduledTime', 'frequency', 'startDate')


def validate_schedule_data(data):
    """Check a schedule payload. Returns (is_valid, message)"""
    if not isinstance(data, dict):
        return False, 'Schedule payload must be a JSON object'

    missing = [field for field in REQUIRED_FIELDS if data.get(field) in (None, '')]
    if missing:
        return False, f"Missing required fields: {', '.join(missing)}"

    for field in ('name', 'dosage'):
        if not isinstance(data[field], str) or not data[field].strip():
            return False, f'{field} must be a non-empty string'

    try:
        frequency = Frequency(data['frequency'])
    except ValueError:
        return False, f"Unknown frequency: {data['frequency']}"

    try:
        parse_time(data['scheduledTime'])
    except (TypeError, ValueError):
        return False, 'scheduledTime must be HH:mm'

    try:
        start_date = parse_date(data['startDate'])
        end_date = parse_date(data['endDate']) if data.get('endDate') else None
    except (TypeError, ValueError):
        return False, 'startDate and endDate must be YYYY-MM-DD'

    if end_date is not None and end_date < start_date:
        return False, 'endDate must not be before startDate'

    active_days = data.get('activeDays')
    if active_days is not None:
        if not isinstance(active_days, list) or not all(
            isinstance(day, int) and not isinstance(day, bool) and 0 <= day <= 6
            for day in active_days
        ):
            return False, 'activeDays must be a list of weekday numbers 0-6 (0 = Sunday)'

    if frequency is Frequency.WEEKLY and not active_days:
        return False, 'Weekly schedules need at least one active weekday'

    if 'isActive' in data and not isinstance(data['isActive'], bool):
        return False, 'isActive must be true or false'

    return True, 'Validation successful'


def require_valid_schedule(data):
    is_valid, message = validate_schedule_data(data)
    if not is_valid:
        raise ValidationError(message)
