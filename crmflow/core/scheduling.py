"""
Send-time slot allocation for cloned emails.

A strategy maps the position of a source email within one day's batch to an
hour:minute slot. Minutes past 59 roll into the hour; hours past 23 are left
for the caller to roll into the next calendar day via timedelta.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional, Tuple

from ..config import (
    AFTERNOON_HOUR,
    MAX_MORNING_SLOTS,
    MORNING_HOUR,
    SLOT_INTERVAL_MINUTES,
)
from .models import CloneStrategy


@dataclass(frozen=True)
class CustomSlotOptions:
    """Slot layout for the ``custom`` strategy."""

    start_hour: int = MORNING_HOUR
    start_minute: int = 0
    interval: int = SLOT_INTERVAL_MINUTES
    morning_window_minutes: int = MAX_MORNING_SLOTS * SLOT_INTERVAL_MINUTES
    afternoon_hour: int = AFTERNOON_HOUR
    afternoon_minute: int = 0

    def __post_init__(self):
        if self.interval <= 0:
            raise ValueError("interval must be positive")
        if self.morning_window_minutes < 0:
            raise ValueError("morning_window_minutes must not be negative")

    @property
    def morning_capacity(self) -> int:
        return self.morning_window_minutes // self.interval


def normalize_slot(hour: int, minute: int) -> Tuple[int, int]:
    return hour + minute // 60, minute % 60


def compute_slot(
    strategy: CloneStrategy,
    index: int,
    custom: Optional[CustomSlotOptions] = None,
) -> Tuple[int, int]:
    """
    Return the (hour, minute) slot for the ``index``-th email of a day.

    Args:
        strategy: Slot allocation policy
        index: Zero-based position of the email within the day
        custom: Layout used by the ``custom`` strategy
    """
    strategy = CloneStrategy(strategy)
    step = SLOT_INTERVAL_MINUTES

    if strategy == CloneStrategy.MORNING:
        return normalize_slot(MORNING_HOUR, index * step)

    if strategy == CloneStrategy.AFTERNOON:
        return normalize_slot(AFTERNOON_HOUR, index * step)

    if strategy == CloneStrategy.CUSTOM:
        opts = custom or CustomSlotOptions()
        capacity = opts.morning_capacity
        if index < capacity:
            return normalize_slot(opts.start_hour, opts.start_minute + index * opts.interval)
        overflow = index - capacity
        return normalize_slot(opts.afternoon_hour, opts.afternoon_minute + overflow * opts.interval)

    # smart
    if index < MAX_MORNING_SLOTS:
        return normalize_slot(MORNING_HOUR, index * step)
    return normalize_slot(AFTERNOON_HOUR, (index - MAX_MORNING_SLOTS) * step)


def slot_datetime(day: date, hour: int, minute: int, tz: tzinfo) -> datetime:
    """Combine a calendar day and a slot; hours past 23 roll into later days."""
    midnight = datetime(day.year, day.month, day.day, tzinfo=tz)
    return midnight + timedelta(hours=hour, minutes=minute)


def to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)
