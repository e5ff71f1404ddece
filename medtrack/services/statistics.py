"""
Adherence statistics for the daily view and the calendar
"""
from collections import defaultdict
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Dict, Optional

from medtrack.models.occurrence import OccurrenceStatus
from medtrack.utils.timezone import format_date, local_date

GREEN = 'green'
YELLOW = 'yellow'
ORANGE = 'orange'
RED = 'red'


@dataclass
class DailyStatistics:
    total: int = 0
    completed: int = 0
    on_time: int = 0
    late: int = 0
    missed: int = 0
    skipped: int = 0
    upcoming: int = 0

    @property
    def completion_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.completed / self.total * 100

    def to_dict(self):
        data = asdict(self)
        data['completion_rate'] = self.completion_rate
        return data


@dataclass
class MonthStatistics:
    """Per-day statistics keyed by normalized calendar date"""
    days: Dict[date, DailyStatistics] = field(default_factory=dict)

    def statistics_for(self, value) -> Optional[DailyStatistics]:
        return self.days.get(local_date(value))

    def color_for(self, value) -> Optional[str]:
        return day_color(self.statistics_for(value))

    def to_dict(self):
        return {
            format_date(day): dict(stats.to_dict(), color=day_color(stats))
            for day, stats in sorted(self.days.items())
        }


def daily_statistics(occurrences):
    stats = DailyStatistics()
    for occurrence in occurrences:
        stats.total += 1
        status = OccurrenceStatus(occurrence.status)
        if status is OccurrenceStatus.ON_TIME:
            stats.on_time += 1
            stats.completed += 1
        elif status is OccurrenceStatus.LATE:
            stats.late += 1
            stats.completed += 1
        elif status is OccurrenceStatus.MISSED:
            stats.missed += 1
        elif status is OccurrenceStatus.SKIPPED:
            stats.skipped += 1
        else:
            stats.upcoming += 1
    return stats


def month_statistics(occurrences):
    grouped = defaultdict(list)
    for occurrence in occurrences:
        grouped[local_date(occurrence.date)].append(occurrence)
    return MonthStatistics({day: daily_statistics(items) for day, items in grouped.items()})


def day_color(stats):
    """Calendar cell color; rules are checked in order and the first match wins"""
    if stats is None or stats.total == 0:
        return None
    if stats.on_time == stats.total:
        return GREEN
    if stats.completed == stats.total:
        return YELLOW
    if 0 < stats.completed < stats.total:
        return ORANGE
    return RED
