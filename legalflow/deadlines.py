"""
Procedural deadline calculator.
"""

from __future__ import annotations

from datetime import date, timedelta

BUSINESS = "business"
CALENDAR = "calendar"


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def calculate_deadline(start: date, days: int, count_type: str = BUSINESS) -> date:
    """
    Business counting skips Saturdays and Sundays. Calendar counting adds the
    days as-is and, when the result falls on a weekend, moves it to Monday.
    """
    if days < 0:
        raise ValueError("days must be non-negative")
    if count_type == CALENDAR:
        current = start + timedelta(days=days)
        while is_weekend(current):
            current += timedelta(days=1)
        return current
    if count_type != BUSINESS:
        raise ValueError(f"unknown count type: {count_type}")

    current = start
    added = 0
    while added < days:
        current += timedelta(days=1)
        if not is_weekend(current):
            added += 1
    return current
