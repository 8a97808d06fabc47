"""Delivery-date assignment rules.

Pure functions with no database access: the order service reads the
configuration, calls ``compute_delivery_schedule`` right after a payment
is confirmed and persists the result.

Rules:
- A confirmation at or before the daily cutoff (compared in whole minutes,
  local time) is delivered the same day; after the cutoff, the next day.
- Saturdays, Sundays and configured holidays are skipped one day at a time.
  The walk is capped at ``MAX_ADVANCE_DAYS``; exceeding it raises
  ``DeliveryCalendarError``.
- When no slot was chosen, confirmations before the cutoff default to the
  afternoon window and later ones to the next morning window.  A chosen
  slot is never overwritten.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, Optional

import structlog

from modules.deliveries.constants import (
    MAX_ADVANCE_DAYS,
    SUBSCRIPTION_WINDOW_DAYS,
    WEEKEND_DAYS,
    TimeSlot,
    Weekday,
)
from modules.deliveries.exceptions import DeliveryCalendarError

logger = structlog.get_logger(__name__)

DEFAULT_CUTOFF = time(12, 0)


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DeliveryConfig:
    """Scheduling inputs read from system settings."""

    cutoff: time = DEFAULT_CUTOFF
    holidays: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class DeliverySchedule:
    """Outcome of a payment confirmation."""

    delivery_date: date
    time_slot: str
    confirmed_at: datetime
    before_cutoff: bool


# ---------------------------------------------------------------------------
# Configuration parsing
# ---------------------------------------------------------------------------


def parse_cutoff(raw: object) -> time:
    """Parse an ``"HH:MM"`` cutoff, tolerating JSON quoting.

    Missing or malformed values fall back to 12:00.
    """
    if isinstance(raw, time):
        return raw
    if raw is None:
        return DEFAULT_CUTOFF
    if not isinstance(raw, str):
        logger.warning("delivery.cutoff_invalid", raw=repr(raw))
        return DEFAULT_CUTOFF

    cleaned = raw.strip().strip('"').strip()
    if not cleaned:
        return DEFAULT_CUTOFF

    parts = cleaned.split(":")
    try:
        hour = int(parts[0])
        minute = int(parts[1]) if len(parts) > 1 and parts[1] else 0
        return time(hour, minute)
    except ValueError:
        logger.warning("delivery.cutoff_invalid", raw=raw)
        return DEFAULT_CUTOFF


def parse_holidays(raw: object) -> frozenset[str]:
    """Normalise the holiday setting into a set of ``YYYY-MM-DD`` strings.

    Accepts a list or a JSON-encoded list.  Non-string entries are
    dropped; anything else yields an empty set.
    """
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("delivery.holidays_invalid", raw=raw)
            return frozenset()
    if not isinstance(raw, (list, tuple, set, frozenset)):
        logger.warning("delivery.holidays_invalid", raw=repr(raw))
        return frozenset()

    holidays = set()
    for item in raw:
        if isinstance(item, date):
            holidays.add(item.isoformat())
        elif isinstance(item, str) and item.strip():
            holidays.add(item.strip())
    return frozenset(holidays)


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


def is_business_day(day: date, holidays: Iterable[str] = frozenset()) -> bool:
    return day.weekday() not in WEEKEND_DAYS and day.isoformat() not in holidays


def next_business_day(
    start: date,
    holidays: Iterable[str] = frozenset(),
    max_days: int = MAX_ADVANCE_DAYS,
) -> date:
    """Return ``start`` or the first business day after it.

    Advances exactly one day per iteration.

    Raises:
        DeliveryCalendarError: no business day within ``max_days``.
    """
    holidays = frozenset(holidays)
    day = start
    for _ in range(max_days + 1):
        if is_business_day(day, holidays):
            return day
        day += timedelta(days=1)

    logger.error(
        "delivery.calendar_exhausted",
        start=start.isoformat(),
        max_days=max_days,
        holiday_count=len(holidays),
    )
    raise DeliveryCalendarError(
        f"No business day within {max_days} days of {start.isoformat()}."
    )


def compute_delivery_schedule(
    confirmed_at: datetime,
    config: DeliveryConfig,
    current_slot: Optional[str] = None,
    tz: Optional[tzinfo] = None,
    max_days: int = MAX_ADVANCE_DAYS,
) -> DeliverySchedule:
    """Assign the delivery date and window for a payment confirmed at ``confirmed_at``.

    An aware ``confirmed_at`` is converted to ``tz`` before reading the
    time of day; a naive one is taken as already local.
    """
    local = confirmed_at
    if tz is not None and confirmed_at.tzinfo is not None:
        local = confirmed_at.astimezone(tz)

    minutes = local.hour * 60 + local.minute
    cutoff_minutes = config.cutoff.hour * 60 + config.cutoff.minute
    before_cutoff = minutes <= cutoff_minutes

    tentative = local.date() if before_cutoff else local.date() + timedelta(days=1)
    delivery_date = next_business_day(tentative, config.holidays, max_days)

    if current_slot:
        time_slot = current_slot
    elif before_cutoff:
        time_slot = TimeSlot.AFTERNOON
    else:
        time_slot = TimeSlot.MORNING

    return DeliverySchedule(
        delivery_date=delivery_date,
        time_slot=str(time_slot),
        confirmed_at=confirmed_at,
        before_cutoff=before_cutoff,
    )


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


def _target_weekdays(weekdays: Iterable[object]) -> set[int]:
    valid = {day for day in weekdays if isinstance(day, int) and 0 <= day <= 6}
    return valid or {Weekday.MONDAY}


def next_subscription_delivery(today: date, weekdays: Iterable[object]) -> date:
    """First date strictly after ``today`` falling on one of ``weekdays``.

    An empty or invalid weekday list means Monday.
    """
    targets = _target_weekdays(weekdays)
    for offset in range(1, 8):
        candidate = today + timedelta(days=offset)
        if candidate.weekday() in targets:
            return candidate
    return today + timedelta(days=7)


def monthly_delivery_dates(
    today: date,
    weekdays: Iterable[object],
    count: int,
    window_days: int = SUBSCRIPTION_WINDOW_DAYS,
) -> list[date]:
    """Lay out up to ``count`` deliveries in the window starting tomorrow."""
    targets = _target_weekdays(weekdays)
    dates: list[date] = []
    for offset in range(1, window_days + 1):
        if len(dates) >= count:
            break
        candidate = today + timedelta(days=offset)
        if candidate.weekday() in targets:
            dates.append(candidate)
    return dates
