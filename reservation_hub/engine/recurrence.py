"""Materialize recurring reservations into concrete intervals."""

from __future__ import annotations

import itertools
import logging
from datetime import date, datetime, time
from typing import Optional

from dateutil.rrule import DAILY, FR, MO, MONTHLY, SA, SU, TH, TU, WE, WEEKLY, YEARLY, rrule

from ..models.entities import RECURRENCE_FREQUENCIES, RecurrenceRule
from .errors import ValidationError

logger = logging.getLogger(__name__)

_FREQUENCIES = {"daily": DAILY, "weekly": WEEKLY, "monthly": MONTHLY, "yearly": YEARLY}
# Index 0 is Sunday.
_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)

DEFAULT_MAX_OCCURRENCES = 366


def validate_rule(rule: RecurrenceRule) -> None:
    """Raise ``ValidationError`` when the rule cannot be expanded."""

    if rule.frequency not in RECURRENCE_FREQUENCIES:
        raise ValidationError(f"Unknown recurrence frequency '{rule.frequency}'.")
    if rule.interval is None or rule.interval < 1:
        raise ValidationError("Recurrence interval must be at least 1.")
    if rule.end_date is not None and rule.occurrences is not None:
        raise ValidationError("A recurrence takes either an end date or an occurrence count, not both.")
    if rule.occurrences is not None and rule.occurrences < 1:
        raise ValidationError("Occurrence count must be at least 1.")
    if rule.days_of_week is not None:
        if rule.frequency != "weekly":
            raise ValidationError("Days of week only apply to weekly recurrences.")
        if not rule.days_of_week:
            raise ValidationError("Days of week cannot be empty.")
        if any(day not in range(7) for day in rule.days_of_week):
            raise ValidationError("Days of week must be between 0 (Sunday) and 6 (Saturday).")


def _tightest(*values):
    present = [value for value in values if value is not None]
    return min(present) if present else None


def expand(
    rule: RecurrenceRule,
    start: datetime,
    end: datetime,
    until: Optional[date] = None,
    count: Optional[int] = None,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> list[tuple[datetime, datetime]]:
    """Expand ``rule`` anchored at ``[start, end)`` into occurrence intervals.

    ``until`` and ``count`` are the caller's horizon; the tighter of them and
    the rule's own ``end_date``/``occurrences`` wins. At least one bound must
    exist. ``max_occurrences`` is a hard ceiling on top of that. The anchor is
    the first occurrence only when it satisfies the rule (e.g. a weekly rule
    restricted to Sundays anchored on a Monday starts the following Sunday).
    """

    validate_rule(rule)
    if start >= end:
        raise ValidationError("Start time must be before end time.")
    if count is not None and count < 1:
        raise ValidationError("Occurrence count must be at least 1.")

    bound_count = _tightest(rule.occurrences, count)
    bound_until = _tightest(rule.end_date, until)
    if bound_count is None and bound_until is None:
        raise ValidationError("Recurring bookings need an end date or an occurrence count.")

    options = {
        "dtstart": start,
        "interval": rule.interval,
        "wkst": SU,
    }
    if rule.days_of_week:
        options["byweekday"] = [_WEEKDAYS[day] for day in sorted(set(rule.days_of_week))]
    if bound_until is not None:
        options["until"] = datetime.combine(bound_until, time.max)
    else:
        options["count"] = bound_count

    limit = min(bound_count or max_occurrences, max_occurrences)
    occurrences = list(itertools.islice(rrule(_FREQUENCIES[rule.frequency], **options), limit + 1))
    if len(occurrences) > limit:
        if bound_count is None or bound_count > max_occurrences:
            logger.warning(
                "Recurrence anchored at %s truncated to %d occurrences.", start.isoformat(), max_occurrences
            )
        occurrences = occurrences[:limit]

    duration = end - start
    return [(occurrence, occurrence + duration) for occurrence in occurrences]
