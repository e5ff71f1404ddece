"""
Adherence service
The single entry point presentation layers use. It applies every change to
the local store first, keeps occurrences generated and aged, keeps reminders
in step with schedules, and hands remote work to the sync service.
"""
import logging
from datetime import timedelta

from medtrack.errors import NotFoundError, ValidationError
from medtrack.models.schedule import Schedule
from medtrack.services import generator, status
from medtrack.services.reminders import LoggingNotifier
from medtrack.services.statistics import daily_statistics, month_statistics
from medtrack.services.sync import SyncService
from medtrack.services.validation import require_valid_schedule
from medtrack.utils.timezone import local_date, month_range, now as tz_now

logger = logging.getLogger(__name__)


class AdherenceService:
    def __init__(self, store, sync=None, notifier=None, lookahead_days=generator.DEFAULT_LOOKAHEAD_DAYS, clock=tz_now):
        self.store = store
        self.sync = sync or SyncService(store)
        self.notifier = notifier or LoggingNotifier()
        self.lookahead_days = lookahead_days
        self.clock = clock

    def today(self):
        return local_date(self.clock())

    # ==================== SCHEDULES ====================

    def list_schedules(self, ticket=None):
        schedules = self.store.get_schedules()
        self.sync.refresh_schedules(ticket)
        return schedules

    def get_schedule(self, schedule_id):
        schedule = self.store.get_schedule(schedule_id)
        if schedule is None:
            raise NotFoundError('Schedule', schedule_id)
        return schedule

    def create_schedule(self, data):
        require_valid_schedule(data)
        schedule = Schedule.from_dict(data)
        if self.store.get_schedule(schedule.id) is not None:
            raise ValidationError(f'Schedule {schedule.id} already exists')

        schedule = self.store.put_schedule(schedule)
        logger.info('Created schedule %s (%s)', schedule.id, schedule.name)
        self._schedule_changed(schedule)
        self.sync.push_schedule(schedule, created=True)
        return schedule

    def update_schedule(self, schedule_id, data):
        """Apply a partial update.

        Occurrences up to today keep the snapshot they were generated with.
        Later Upcoming ones are regenerated from the updated schedule.
        """
        schedule = self.get_schedule(schedule_id)
        merged = dict(schedule.to_dict(), **data)
        merged['id'] = schedule_id
        require_valid_schedule(merged)

        schedule.copy_from(Schedule.from_dict(merged))
        self.store.save()
        logger.info('Updated schedule %s', schedule_id)
        self.store.delete_upcoming_from(schedule_id, self.today() + timedelta(days=1))
        self._schedule_changed(schedule)
        self.sync.push_schedule(schedule)
        return schedule

    def toggle_schedule(self, schedule_id):
        schedule = self.get_schedule(schedule_id)
        schedule.is_active = not schedule.is_active
        self.store.save()
        logger.info('Schedule %s is now %s', schedule_id, 'active' if schedule.is_active else 'inactive')
        self._schedule_changed(schedule)
        self.sync.push_schedule(schedule)
        return schedule

    def delete_schedule(self, schedule_id):
        """Delete a schedule together with all of its occurrences"""
        if not self.store.delete_schedule(schedule_id):
            raise NotFoundError('Schedule', schedule_id)
        removed = self.store.delete_occurrences_by_schedule_id(schedule_id)
        logger.info('Deleted schedule %s and %d occurrences', schedule_id, removed)
        self.notifier.cancel_reminder(schedule_id)
        self.sync.push_schedule_deletion(schedule_id)
        return removed

    def _schedule_changed(self, schedule):
        if schedule.is_active:
            generator.ensure_lookahead(self.store, schedule, self.lookahead_days, self.today())
            self.notifier.schedule_reminder(schedule)
        else:
            removed = self.store.delete_upcoming_from(schedule.id, self.today())
            if removed:
                logger.info('Removed %d upcoming occurrences of inactive schedule %s', removed, schedule.id)
            self.notifier.cancel_reminder(schedule.id)

    def generate_horizon(self, days=None):
        """Eagerly generate the lookahead window for every active schedule"""
        days = self.lookahead_days if days is None else days
        created = []
        for schedule in self.store.get_schedules():
            created.extend(generator.ensure_lookahead(self.store, schedule, days, self.today()))
        return created

    # ==================== OCCURRENCES ====================

    def occurrences_for_range(self, start, end, ticket=None):
        """Generate, age and return the occurrences between start and end.

        Viewed days are generated lazily, but never beyond the lookahead
        horizon for multi-day ranges.
        """
        start, end = local_date(start), local_date(end)
        if start > end:
            raise ValidationError('startDate must not be after endDate')

        generate_until = end
        if start != end:
            generate_until = min(end, self.today() + timedelta(days=self.lookahead_days))
        generator.ensure_occurrences(self.store, self.store.get_schedules(), start, generate_until)

        occurrences = self.store.get_occurrences(start, end)
        self._age(occurrences)
        self.sync.refresh_occurrences(start, end, ticket)
        return occurrences

    def day_view(self, day, ticket=None):
        occurrences = self.occurrences_for_range(day, day, ticket)
        return occurrences, daily_statistics(occurrences)

    def month_view(self, day, ticket=None):
        first, last = month_range(day)
        occurrences = self.occurrences_for_range(first, last, ticket)
        return month_statistics(occurrences)

    def sweep(self):
        """Age every overdue Upcoming occurrence in the store"""
        return self._age(self.store.get_upcoming_before(self.today()))

    def _age(self, occurrences):
        aged = status.age_occurrences(occurrences, self.clock())
        if aged:
            self.store.save()
            for occurrence in aged:
                self.sync.push_occurrence(occurrence)
        return aged

    def get_occurrence(self, occurrence_id):
        occurrence = self.store.get_occurrence_by_id(occurrence_id)
        if occurrence is None:
            raise NotFoundError('Occurrence', occurrence_id)
        return occurrence

    def log_intake(self, occurrence_id, actual_time=None, notes=None):
        occurrence = self.get_occurrence(occurrence_id)
        status.log_intake(occurrence, actual_time or self.clock(), notes)
        return self._occurrence_changed(occurrence)

    def mark_skipped(self, occurrence_id):
        occurrence = self.get_occurrence(occurrence_id)
        status.mark_skipped(occurrence)
        return self._occurrence_changed(occurrence)

    def cancel(self, occurrence_id):
        occurrence = self.get_occurrence(occurrence_id)
        status.cancel(occurrence)
        return self._occurrence_changed(occurrence)

    def _occurrence_changed(self, occurrence):
        self.store.save()
        logger.info('Occurrence %s is now %s', occurrence.id, occurrence.status)
        self.sync.push_occurrence(occurrence)
        return occurrence

    def delete_occurrence(self, occurrence_id):
        if not self.store.delete_occurrence(occurrence_id):
            raise NotFoundError('Occurrence', occurrence_id)
        self.sync.push_occurrence_deletion(occurrence_id)

    def reset_all_occurrences(self):
        removed = self.store.delete_all_occurrences()
        logger.info('Reset %d occurrences', removed)
        self.sync.push_reset()
        return removed
