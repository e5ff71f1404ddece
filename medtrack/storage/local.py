"""
Local store backed by Flask-SQLAlchemy
Authoritative for the running session; every mutation commits immediately
"""
import logging

from sqlalchemy.exc import IntegrityError

from medtrack.models import db
from medtrack.models.occurrence import Occurrence, OccurrenceStatus
from medtrack.models.schedule import Schedule
from medtrack.utils.timezone import local_date

logger = logging.getLogger(__name__)


class LocalStore:
    """Schedule and occurrence persistence on a SQLAlchemy session"""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        # db.session is scoped to the active app context, so one store can
        # serve both request handlers and background sync tasks
        return self._session if self._session is not None else db.session

    # Schedules

    def get_schedules(self):
        return self.session.query(Schedule).order_by(Schedule.time_of_day, Schedule.name).all()

    def get_schedule(self, schedule_id):
        return self.session.get(Schedule, schedule_id)

    def put_schedule(self, schedule):
        schedule = self.session.merge(schedule)
        self.session.commit()
        return schedule

    def delete_schedule(self, schedule_id):
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            return False
        self.session.delete(schedule)
        self.session.commit()
        return True

    def replace_schedules(self, schedules, protected=()):
        """Make the stored schedule set equal to schedules.

        Schedules whose id is in protected are left exactly as stored (or
        absent). A removed schedule takes its occurrences with it, in the
        same transaction. Returns the ids of the removed schedules.
        """
        protected = set(protected)
        keep = {schedule.id for schedule in schedules}
        removed = [
            existing.id for existing in self.get_schedules()
            if existing.id not in keep and existing.id not in protected
        ]
        if removed:
            self.session.query(Occurrence).filter(
                Occurrence.schedule_id.in_(removed)
            ).delete(synchronize_session='fetch')
            self.session.query(Schedule).filter(
                Schedule.id.in_(removed)
            ).delete(synchronize_session='fetch')
        for schedule in schedules:
            if schedule.id not in protected:
                self.session.merge(schedule)
        self.session.commit()
        return removed

    # Occurrences

    def get_occurrences(self, start, end):
        return self.session.query(Occurrence).filter(
            Occurrence.date >= local_date(start),
            Occurrence.date <= local_date(end)
        ).order_by(Occurrence.date, Occurrence.scheduled_time).all()

    def get_occurrence(self, schedule_id, day):
        return self.session.query(Occurrence).filter_by(
            schedule_id=schedule_id,
            date=local_date(day)
        ).first()

    def get_occurrence_by_id(self, occurrence_id):
        return self.session.get(Occurrence, occurrence_id)

    def get_upcoming_before(self, day):
        return self.session.query(Occurrence).filter(
            Occurrence.status == OccurrenceStatus.UPCOMING.value,
            Occurrence.date < local_date(day)
        ).all()

    def put_occurrence(self, occurrence):
        occurrence = self.session.merge(occurrence)
        self.session.commit()
        return occurrence

    def add_occurrences_if_absent(self, occurrences):
        """Insert each occurrence whose (schedule, date) key is not stored yet.

        Each key is looked up and inserted in its own transaction, so a row
        written concurrently by another writer wins and the new one is
        dropped. Returns the occurrences actually inserted.
        """
        created = []
        for occurrence in occurrences:
            if self.session.get(Occurrence, occurrence.id) is not None:
                continue
            self.session.add(occurrence)
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                logger.warning('Occurrence %s already exists, keeping the stored one', occurrence.id)
                continue
            created.append(occurrence)
        return created

    def save(self):
        """Commit in-place changes to loaded occurrences or schedules"""
        self.session.commit()

    def delete_occurrence(self, occurrence_id):
        occurrence = self.get_occurrence_by_id(occurrence_id)
        if occurrence is None:
            return False
        self.session.delete(occurrence)
        self.session.commit()
        return True

    def delete_occurrences_by_schedule_id(self, schedule_id):
        count = self.session.query(Occurrence).filter(
            Occurrence.schedule_id == schedule_id
        ).delete(synchronize_session='fetch')
        self.session.commit()
        return count

    def delete_upcoming_from(self, schedule_id, day):
        """Delete a schedule's Upcoming occurrences dated day or later"""
        count = self.session.query(Occurrence).filter(
            Occurrence.schedule_id == schedule_id,
            Occurrence.status == OccurrenceStatus.UPCOMING.value,
            Occurrence.date >= local_date(day)
        ).delete(synchronize_session='fetch')
        self.session.commit()
        return count

    def delete_all_occurrences(self):
        count = self.session.query(Occurrence).delete(synchronize_session='fetch')
        self.session.commit()
        return count

    def replace_occurrences(self, start, end, occurrences, protected=()):
        """Make the stored occurrences between start and end equal to occurrences.

        Occurrences whose id is in protected keep their stored state.
        """
        protected = set(protected)
        incoming = [occurrence for occurrence in occurrences if occurrence.id not in protected]
        keep = {occurrence.id for occurrence in incoming}
        for existing in self.get_occurrences(start, end):
            if existing.id not in keep and existing.id not in protected:
                self.session.delete(existing)
        # (schedule_id, date) is unique, so removed rows must be gone before merging
        self.session.flush()
        for occurrence in incoming:
            self.session.merge(occurrence)
        self.session.commit()

    def rollback(self):
        self.session.rollback()
