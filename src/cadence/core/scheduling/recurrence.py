"""Recurrence calculation: (schedule rule, now) -> next fire time.

Pure functions. ``now`` is always injected and its ``tzinfo`` is kept on
the result. Each rule is translated to a five-field cron expression and
evaluated with croniter in ``now``'s zone, so a ``ZoneInfo`` clock keeps
"09:00" at 09:00 local time across DST changes.

croniter returns the first match strictly after ``now``: a job
re-evaluated at the exact instant it fired is pushed to the next period
instead of firing twice.

┌────────────┬──────────────────────────────┬──────────────────────────────┐
│ type       │ config                       │ cron expression              │
├────────────┼──────────────────────────────┼──────────────────────────────┤
│ hourly     │ minute                       │ M * * * *                    │
│ daily      │ time HH:MM                   │ M H * * *                    │
│ weekly     │ day_of_week (0=Sun), time    │ M H * * D                    │
└────────────┴──────────────────────────────┴──────────────────────────────┘
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from croniter import CroniterBadCronError, CroniterBadDateError, croniter

from cadence.core.errors import UnschedulableJobError
from cadence.core.logging import get_logger
from cadence.core.models import ScheduleConfig, ScheduleType

logger = get_logger(__name__)

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def next_fire_time(
    schedule_type: str | ScheduleType,
    schedule_config: ScheduleConfig | None,
    now: datetime,
) -> datetime | None:
    """Next fire time strictly after ``now``, or None when unschedulable.

    Never raises for bad job definitions: an unknown type or malformed
    config is logged and yields None.
    """
    try:
        return compute_next_fire_time(schedule_type, schedule_config, now)
    except UnschedulableJobError as e:
        logger.warning("job_unschedulable", **e.log_fields())
        return None


def compute_next_fire_time(
    schedule_type: str | ScheduleType,
    schedule_config: ScheduleConfig | None,
    now: datetime,
) -> datetime:
    """Strict variant of ``next_fire_time``.

    Raises:
        UnschedulableJobError: unknown schedule type or malformed config
    """
    expression = cron_expression(schedule_type, schedule_config)
    try:
        return croniter(expression, now).get_next(datetime)
    except (CroniterBadCronError, CroniterBadDateError) as e:
        raise UnschedulableJobError(
            f"Cannot evaluate {expression!r}", cause=e
        ).with_context(schedule_type=str(schedule_type), expression=expression) from e


def cron_expression(
    schedule_type: str | ScheduleType,
    schedule_config: ScheduleConfig | None,
) -> str:
    """Five-field cron expression for a schedule rule.

    Missing fields default to minute 0, time 00:00 and Sunday.

    Raises:
        UnschedulableJobError: unknown schedule type or malformed config
    """
    kind = _schedule_type(schedule_type)
    config = schedule_config or ScheduleConfig()

    if kind is ScheduleType.HOURLY:
        minute = _bounded_int(config.minute, "minute", 0, 59)
        return f"{minute} * * * *"

    hour, minute = _parse_time(config.time)
    if kind is ScheduleType.DAILY:
        return f"{minute} {hour} * * *"

    day_of_week = _bounded_int(config.day_of_week, "day_of_week", 0, 6)
    return f"{minute} {hour} * * {day_of_week}"


def _schedule_type(value: str | ScheduleType) -> ScheduleType:
    try:
        return ScheduleType(value)
    except ValueError:
        raise UnschedulableJobError(
            f"Unknown schedule type: {value!r}"
        ).with_context(schedule_type=str(value)) from None


def _bounded_int(value: Any, name: str, low: int, high: int) -> int:
    """Integer config field; missing or empty values default to ``low``."""
    if value is None or value == "":
        return low
    if isinstance(value, bool):
        raise UnschedulableJobError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise UnschedulableJobError(f"{name} must be an integer, got {value!r}")
    if not low <= value <= high:
        raise UnschedulableJobError(f"{name} must be between {low} and {high}, got {value}")
    return value


def _parse_time(value: Any) -> tuple[int, int]:
    """Parse ``"HH:MM"``; missing or empty defaults to midnight."""
    if value is None or value == "":
        return 0, 0
    match = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise UnschedulableJobError(f"time must be HH:MM, got {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise UnschedulableJobError(f"time out of range: {value!r}")
    return hour, minute
