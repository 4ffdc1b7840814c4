"""
Reading Analytics

Pure functions over a list of books. Each book covers a range of calendar
days: Completed books cover [startDate, completionDate], Reading books cover
[startDate, today], other statuses cover nothing. Books with missing or
unparsable dates, or a start after the end, are skipped.
"""

import math
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Iterable, Literal

from myshelf.models.library_models import Book, ReadingStatus

from .validators import parse_date

# Upper bound on days expanded for one book, counted back from its end
MAX_COVERAGE_DAYS = 5000

CONSISTENCY_WINDOW_DAYS = 90

Trend = Literal["up", "down", "flat"]


@dataclass(frozen=True)
class StreakMetrics:
    longest_streak: int
    current_streak: int

    def to_dict(self) -> dict:
        return {"longestStreak": self.longest_streak, "currentStreak": self.current_streak}


@dataclass(frozen=True)
class ConsistencyMetric:
    score: int
    label: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MomentumMetric:
    current_month_count: int
    previous_month_count: int
    diff: int
    trend: Trend

    def to_dict(self) -> dict:
        return {
            "currentMonthCount": self.current_month_count,
            "previousMonthCount": self.previous_month_count,
            "diff": self.diff,
            "trend": self.trend,
        }


def round_half_up(value: float) -> int:
    """Round .5 towards positive infinity."""
    return math.floor(value + 0.5)


def coverage_interval(book: Book, today: date) -> tuple[date, date] | None:
    """Return the (start, end) days a book covers, or None."""
    if book.status == ReadingStatus.COMPLETED.value:
        if not book.start_date or not book.completion_date:
            return None
        end = parse_date(book.completion_date)
        end_day = end.date() if end else None
    elif book.status == ReadingStatus.READING.value:
        if not book.start_date:
            return None
        end_day = today
    else:
        return None

    start = parse_date(book.start_date)
    if start is None or end_day is None or start.date() > end_day:
        return None
    return start.date(), end_day


def covered_days(books: Iterable[Book], today: date | None = None) -> set[date]:
    """Union of every book's coverage interval."""
    today = today or date.today()
    days: set[date] = set()
    for book in books:
        interval = coverage_interval(book, today)
        if interval is None:
            continue
        start, end = interval
        # Keep the most recent days
        start = max(start, end - timedelta(days=MAX_COVERAGE_DAYS - 1))
        days.update(start + timedelta(days=offset) for offset in range((end - start).days + 1))
    return days


def calculate_reading_streak(books: Iterable[Book], today: date | None = None) -> StreakMetrics:
    """
    Longest run of consecutive covered days, and the run ending today.

    The current streak is 0 when today itself is not covered.
    """
    today = today or date.today()
    days = covered_days(books, today)
    if not days:
        return StreakMetrics(longest_streak=0, current_streak=0)

    longest = 0
    run = 0
    previous: date | None = None
    for day in sorted(days):
        run = run + 1 if previous is not None and (day - previous).days == 1 else 1
        longest = max(longest, run)
        previous = day

    current = 0
    day = today
    while day in days:
        current += 1
        day -= timedelta(days=1)

    return StreakMetrics(longest_streak=longest, current_streak=current)


def consistency_label(score: int) -> str:
    if score >= 80:
        return "Highly Consistent"
    if score >= 50:
        return "Building Momentum"
    return "Needs Discipline"


def calculate_reading_consistency(
    books: Iterable[Book], today: date | None = None
) -> ConsistencyMetric:
    """
    Share of the trailing 90 days (today inclusive) with reading coverage.
    """
    today = today or date.today()
    window_start = today - timedelta(days=CONSISTENCY_WINDOW_DAYS - 1)
    active = [d for d in covered_days(books, today) if window_start <= d <= today]

    score = min(100, round_half_up(len(active) / CONSISTENCY_WINDOW_DAYS * 100))
    return ConsistencyMetric(score=score, label=consistency_label(score))


def _previous_month(today: date) -> tuple[int, int]:
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def calculate_monthly_momentum(
    books: Iterable[Book], today: date | None = None
) -> MomentumMetric:
    """
    Covered days this calendar month against the previous one.

    A month with activity after an empty one reports +100 rather than an
    unbounded percentage.
    """
    today = today or date.today()
    prev_year, prev_month = _previous_month(today)
    days = covered_days(books, today)

    current_count = sum(1 for d in days if (d.year, d.month) == (today.year, today.month))
    previous_count = sum(1 for d in days if (d.year, d.month) == (prev_year, prev_month))

    if previous_count > 0:
        diff = round_half_up((current_count - previous_count) / previous_count * 100)
    elif current_count > 0:
        diff = 100
    else:
        diff = 0

    trend: Trend = "up" if diff > 0 else "down" if diff < 0 else "flat"
    return MomentumMetric(
        current_month_count=current_count,
        previous_month_count=previous_count,
        diff=diff,
        trend=trend,
    )
