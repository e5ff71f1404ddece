import enum
import uuid

from medtrack.models import db
from medtrack.utils.timezone import (
    format_date, format_time, now as tz_now, parse_date, parse_time,
)


class Frequency(str, enum.Enum):
    DAILY = 'daily'
    WEEKLY = 'weekly'
    # Reserved: no custom recurrence rule exists, so it never generates
    CUSTOM = 'custom'


class Schedule(db.Model):
    __tablename__ = 'schedules'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(200), nullable=False)
    dosage = db.Column(db.String(100), nullable=False)  # e.g., "500mg", "2 tablets"
    time_of_day = db.Column(db.Time, nullable=False)
    frequency = db.Column(db.String(20), nullable=False, default=Frequency.DAILY.value)
    active_weekdays = db.Column(db.JSON, nullable=True)  # 0=Sunday .. 6=Saturday
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=tz_now)
    updated_at = db.Column(db.DateTime, default=tz_now, onupdate=tz_now)

    def __init__(self, **kwargs):
        kwargs.setdefault('id', str(uuid.uuid4()))
        kwargs['frequency'] = Frequency(kwargs.get('frequency', Frequency.DAILY)).value
        kwargs.setdefault('is_active', True)
        super().__init__(**kwargs)

    def __repr__(self):
        return f'<Schedule {self.name} - {self.dosage} at {format_time(self.time_of_day)}>'

    @property
    def weekdays(self):
        return set(self.active_weekdays or [])

    def copy_from(self, other):
        """Overwrite editable fields with another schedule's values"""
        self.name = other.name
        self.dosage = other.dosage
        self.time_of_day = other.time_of_day
        self.frequency = other.frequency
        self.active_weekdays = other.active_weekdays
        self.start_date = other.start_date
        self.end_date = other.end_date
        self.is_active = other.is_active

    def to_dict(self):
        """Wire format shared with the remote store"""
        data = {
            'id': self.id,
            'name': self.name,
            'dosage': self.dosage,
            'scheduledTime': format_time(self.time_of_day),
            'frequency': Frequency(self.frequency).value,
            'startDate': format_date(self.start_date),
            'isActive': bool(self.is_active),
        }
        if self.active_weekdays is not None:
            data['activeDays'] = sorted(self.active_weekdays)
        if self.end_date is not None:
            data['endDate'] = format_date(self.end_date)
        return data

    @classmethod
    def from_dict(cls, data):
        """Build a transient Schedule from a validated wire record"""
        end_date = data.get('endDate')
        active_days = data.get('activeDays')
        return cls(
            id=data.get('id') or str(uuid.uuid4()),
            name=data['name'].strip(),
            dosage=data['dosage'].strip(),
            time_of_day=parse_time(data['scheduledTime']),
            frequency=Frequency(data['frequency']).value,
            active_weekdays=sorted(set(active_days)) if active_days is not None else None,
            start_date=parse_date(data['startDate']),
            end_date=parse_date(end_date) if end_date else None,
            is_active=data.get('isActive', True),
        )
