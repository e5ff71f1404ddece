import os
import tempfile
import unittest
from datetime import date, datetime, time

from medtrack import create_app
from medtrack.config import TestConfig
from medtrack.errors import RemoteSyncError
from medtrack.models import db
from medtrack.models.occurrence import Occurrence
from medtrack.models.schedule import Schedule

# Friday 15 March 2024, mid-morning
NOW = datetime(2024, 3, 15, 10, 0)


def make_schedule(**overrides):
    values = {
        'id': 'sched-1',
        'name': 'Aspirin',
        'dosage': '100mg',
        'time_of_day': time(9, 0),
        'frequency': 'daily',
        'active_weekdays': None,
        'start_date': date(2024, 1, 10),
        'end_date': None,
        'is_active': True,
    }
    values.update(overrides)
    return Schedule(**values)


def make_occurrence(status='upcoming', day=date(2024, 3, 15), schedule_id='sched-1', **overrides):
    values = {
        'schedule_id': schedule_id,
        'medication_name': 'Aspirin',
        'dosage': '100mg',
        'scheduled_time': datetime(day.year, day.month, day.day, 9, 0),
        'date': day,
        'status': status,
    }
    values.update(overrides)
    return Occurrence(**values)


def schedule_payload(**overrides):
    data = {
        'name': 'Aspirin',
        'dosage': '100mg',
        'scheduledTime': '09:00',
        'frequency': 'daily',
        'startDate': '2024-03-01',
    }
    data.update(overrides)
    return data


class FakeRemote:
    """In-memory stand-in for RemoteStore"""

    def __init__(self):
        self.schedules = {}
        self.occurrences = {}
        self.calls = []
        self.fail = False
        # Calls named here fail while the rest succeed
        self.failing = set()
        self.rejecting = set()

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.fail or name in self.failing:
            raise RemoteSyncError(f'{name} unavailable')
        if name in self.rejecting:
            raise RemoteSyncError(f'{name} rejected', retryable=False)

    def get_schedules(self):
        self._record('get_schedules')
        return [Schedule.from_dict(data) for data in self.schedules.values()]

    def add_schedule(self, schedule):
        self._record('add_schedule', schedule.id)
        self.schedules[schedule.id] = schedule.to_dict()

    def update_schedule(self, schedule):
        self._record('update_schedule', schedule.id)
        self.schedules[schedule.id] = schedule.to_dict()

    def delete_schedule(self, schedule_id):
        self._record('delete_schedule', schedule_id)
        self.schedules.pop(schedule_id, None)

    def get_occurrences(self, start, end):
        self._record('get_occurrences', start, end)
        return [
            Occurrence.from_dict(data) for data in self.occurrences.values()
            if start.isoformat() <= data['date'] <= end.isoformat()
        ]

    def put_occurrence(self, occurrence):
        self._record('put_occurrence', occurrence.id)
        self.occurrences[occurrence.id] = occurrence.to_dict()

    def delete_occurrence(self, occurrence_id):
        self._record('delete_occurrence', occurrence_id)
        self.occurrences.pop(occurrence_id, None)

    def delete_all_occurrences(self):
        self._record('delete_all_occurrences')
        count = len(self.occurrences)
        self.occurrences.clear()
        return count


class RecordingNotifier:
    def __init__(self):
        self.scheduled = []
        self.cancelled = []

    def schedule_reminder(self, schedule):
        self.scheduled.append(schedule.id)
        return {'success': True}

    def cancel_reminder(self, schedule_id):
        self.cancelled.append(schedule_id)
        return {'success': True}


class AppTestCase(unittest.TestCase):
    """Flask app on a temporary SQLite file, with the service clock pinned to NOW"""

    sync_workers = 1

    def setUp(self):
        fd, self.db_path = tempfile.mkstemp(suffix='.db')
        os.close(fd)

        class Config(TestConfig):
            SQLALCHEMY_DATABASE_URI = f'sqlite:///{self.db_path}'
            SYNC_WORKERS = self.sync_workers

        self.remote = self.make_remote()
        self.notifier = RecordingNotifier()
        self.app = create_app(Config, remote=self.remote, notifier=self.notifier)
        self.service = self.app.extensions['medtrack']
        self.service.clock = lambda: NOW
        self.ctx = self.app.app_context()
        self.ctx.push()
        self.store = self.service.store

    def make_remote(self):
        return None

    def drain(self):
        """Wait for queued background sync work, then drop stale session state"""
        executor = self.service.sync.executor
        if executor is not None:
            executor.submit(lambda: None).result()
        self.store.session.expire_all()

    def tearDown(self):
        self.service.sync.shutdown()
        db.session.remove()
        db.drop_all()
        db.engine.dispose()
        self.ctx.pop()
        os.unlink(self.db_path)
