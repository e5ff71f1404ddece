import unittest
from datetime import date, datetime

from helpers import make_occurrence

from medtrack.models.occurrence import OccurrenceStatus
from medtrack.services.status import (
    age_occurrences, cancel, classify, format_time_difference, is_on_time,
    log_intake, mark_skipped, minutes_between,
)

NINE = datetime(2024, 3, 15, 9, 0)


class TestClassifier(unittest.TestCase):
    """Tests for the ±15 minute tolerance window."""

    def test_tolerance_boundaries(self):
        self.assertEqual(classify(NINE, datetime(2024, 3, 15, 9, 15)), OccurrenceStatus.ON_TIME)
        self.assertEqual(classify(NINE, datetime(2024, 3, 15, 9, 16)), OccurrenceStatus.LATE)
        self.assertEqual(classify(NINE, datetime(2024, 3, 15, 8, 45)), OccurrenceStatus.ON_TIME)
        self.assertEqual(classify(NINE, datetime(2024, 3, 15, 8, 44)), OccurrenceStatus.LATE)

    def test_partial_minutes_are_truncated(self):
        self.assertEqual(minutes_between(NINE, datetime(2024, 3, 15, 9, 15, 59)), 15)
        self.assertTrue(is_on_time(NINE, datetime(2024, 3, 15, 9, 15, 59)))
        self.assertEqual(minutes_between(NINE, datetime(2024, 3, 15, 8, 44, 1)), -15)

    def test_exact_time_is_on_time(self):
        self.assertTrue(is_on_time(NINE, NINE))

    def test_time_difference_text(self):
        self.assertEqual(format_time_difference(NINE, NINE), 'on time')
        self.assertEqual(format_time_difference(NINE, datetime(2024, 3, 15, 9, 40)), '40 min late')
        self.assertEqual(format_time_difference(NINE, datetime(2024, 3, 15, 8, 30)), '30 min early')


class TestTransitions(unittest.TestCase):
    """Tests for user-driven status changes."""

    def test_log_intake_on_time(self):
        occurrence = log_intake(make_occurrence(), datetime(2024, 3, 15, 9, 10), 'with water')

        self.assertEqual(occurrence.status, OccurrenceStatus.ON_TIME)
        self.assertEqual(occurrence.actual_time, datetime(2024, 3, 15, 9, 10))
        self.assertEqual(occurrence.notes, 'with water')

    def test_log_intake_late(self):
        occurrence = log_intake(make_occurrence(), datetime(2024, 3, 15, 11, 0))
        self.assertEqual(occurrence.status, OccurrenceStatus.LATE)
        self.assertIsNone(occurrence.notes)

    def test_mark_skipped_clears_intake(self):
        occurrence = log_intake(make_occurrence(), NINE, 'oops')
        mark_skipped(occurrence)

        self.assertEqual(occurrence.status, OccurrenceStatus.SKIPPED)
        self.assertIsNone(occurrence.actual_time)
        self.assertIsNone(occurrence.notes)

    def test_cancel_reverts_to_upcoming(self):
        for recorded in ('on-time', 'late', 'skipped', 'missed'):
            occurrence = make_occurrence(status=recorded, actual_time=NINE, notes='x')
            cancel(occurrence)

            self.assertEqual(occurrence.status, OccurrenceStatus.UPCOMING, recorded)
            self.assertIsNone(occurrence.actual_time)
            self.assertIsNone(occurrence.notes)

    def test_cancel_upcoming_is_noop(self):
        occurrence = make_occurrence(notes='keep me')
        cancel(occurrence)
        self.assertEqual(occurrence.notes, 'keep me')


class TestAging(unittest.TestCase):
    """Tests for the Upcoming -> Missed sweep."""

    def test_yesterday_becomes_missed_tomorrow_stays(self):
        yesterday = make_occurrence(day=date(2024, 3, 14))
        tomorrow = make_occurrence(day=date(2024, 3, 16))

        aged = age_occurrences([yesterday, tomorrow], datetime(2024, 3, 15, 10, 0))

        self.assertEqual(aged, [yesterday])
        self.assertEqual(yesterday.status, OccurrenceStatus.MISSED)
        self.assertEqual(tomorrow.status, OccurrenceStatus.UPCOMING)

    def test_today_past_due_stays_upcoming(self):
        today = make_occurrence(day=date(2024, 3, 15))
        age_occurrences([today], datetime(2024, 3, 15, 23, 59))
        self.assertEqual(today.status, OccurrenceStatus.UPCOMING)

    def test_recorded_occurrences_untouched(self):
        taken = make_occurrence(status='on-time', day=date(2024, 3, 1))
        skipped = make_occurrence(status='skipped', day=date(2024, 3, 1))

        self.assertEqual(age_occurrences([taken, skipped], datetime(2024, 3, 15)), [])
        self.assertEqual(taken.status, OccurrenceStatus.ON_TIME)
        self.assertEqual(skipped.status, OccurrenceStatus.SKIPPED)

    def test_sweep_is_idempotent(self):
        occurrence = make_occurrence(day=date(2024, 3, 1))
        age_occurrences([occurrence], datetime(2024, 3, 15))

        self.assertEqual(age_occurrences([occurrence], datetime(2024, 3, 15)), [])
        self.assertEqual(occurrence.status, OccurrenceStatus.MISSED)


if __name__ == "__main__":
    unittest.main()
