import enum

from medtrack.models import db
from medtrack.utils.timezone import (
    combine_date_and_time, format_date, format_time, local_date,
    now as tz_now, parse_date, parse_time,
)


class OccurrenceStatus(str, enum.Enum):
    UPCOMING = 'upcoming'
    ON_TIME = 'on-time'
    LATE = 'late'
    MISSED = 'missed'
    SKIPPED = 'skipped'

    @property
    def is_completed(self):
        return self in (OccurrenceStatus.ON_TIME, OccurrenceStatus.LATE)


def occurrence_id(schedule_id, day):
    """Deterministic key for the one occurrence of a schedule on a date"""
    return f'{schedule_id}-{format_date(day)}'


class Occurrence(db.Model):
    __tablename__ = 'occurrences'
    __table_args__ = (
        db.UniqueConstraint('schedule_id', 'date', name='uq_occurrences_schedule_date'),
        db.Index('ix_occurrences_date', 'date'),
    )

    id = db.Column(db.String(64), primary_key=True)
    schedule_id = db.Column(db.String(36), nullable=False, index=True)
    # Snapshot of the schedule when the dose was due, never a live reference
    medication_name = db.Column(db.String(200), nullable=False)
    dosage = db.Column(db.String(100), nullable=False)
    scheduled_time = db.Column(db.DateTime, nullable=False)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=OccurrenceStatus.UPCOMING.value)
    actual_time = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime, default=tz_now, onupdate=tz_now)

    def __init__(self, **kwargs):
        if 'id' not in kwargs:
            kwargs['id'] = occurrence_id(kwargs['schedule_id'], kwargs['date'])
        kwargs['status'] = OccurrenceStatus(kwargs.get('status', OccurrenceStatus.UPCOMING)).value
        super().__init__(**kwargs)

    def __repr__(self):
        return f'<Occurrence {self.id} {self.status}>'

    @classmethod
    def from_schedule(cls, schedule, day):
        """New Upcoming occurrence of schedule on day"""
        day = local_date(day)
        return cls(
            schedule_id=schedule.id,
            medication_name=schedule.name,
            dosage=schedule.dosage,
            scheduled_time=combine_date_and_time(day, schedule.time_of_day),
            date=day,
            status=OccurrenceStatus.UPCOMING,
            actual_time=None,
            notes=None,
        )

    def to_dict(self):
        """Wire format shared with the remote store"""
        data = {
            'id': self.id,
            'scheduleId': self.schedule_id,
            'medicationName': self.medication_name,
            'dosage': self.dosage,
            'scheduledTime': format_time(self.scheduled_time),
            'date': format_date(self.date),
            'status': OccurrenceStatus(self.status).value,
        }
        if self.actual_time is not None:
            data['actualTime'] = format_time(self.actual_time)
        if self.notes is not None:
            data['notes'] = self.notes
        return data

    @classmethod
    def from_dict(cls, data):
        """Build a transient Occurrence from a wire record.

        Times travel as bare HH:mm, so full timestamps are rebuilt by
        combining them with the record's own date.
        """
        day = parse_date(data['date'])
        actual = data.get('actualTime')
        return cls(
            id=data['id'],
            schedule_id=data['scheduleId'],
            medication_name=data['medicationName'],
            dosage=data['dosage'],
            scheduled_time=combine_date_and_time(day, parse_time(data['scheduledTime'])),
            date=day,
            status=OccurrenceStatus(data.get('status', OccurrenceStatus.UPCOMING.value)),
            actual_time=combine_date_and_time(day, parse_time(actual)) if actual else None,
            notes=data.get('notes'),
        )
