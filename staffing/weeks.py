from __future__ import annotations
from datetime import date, timedelta
from typing import List

from .models import WeekWindow


def week_window_of(day: date) -> WeekWindow:
    # date.weekday() is Monday-first whatever the locale
    start = day - timedelta(days=day.weekday())
    return WeekWindow(start=start, end=start + timedelta(days=6))


def week_key(window: WeekWindow) -> str:
    return window.key


def week_key_of(day: date) -> str:
    return week_window_of(day).key


def enumerate_weeks(range_start: date, range_end: date) -> List[WeekWindow]:
    """Every week window intersecting ``range_start``..``range_end``, partial boundary weeks included."""
    if range_end < range_start:
        return []
    windows: List[WeekWindow] = []
    window = week_window_of(range_start)
    while window.start <= range_end:
        windows.append(window)
        window = window.next()
    return windows
