"""Pure spawn decisions for recurrence rules.

Nothing in this module touches storage or the wall clock; callers pass the
reference date in explicitly.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from .entities import RecurrenceRuleEntity
from .enums import RecurrenceKind

logger = logging.getLogger(__name__)

REFERENCE_TZ = timezone.utc
DUE_DATE_OFFSET = timedelta(days=7)


def reference_date(value: date | datetime) -> date:
    """Calendar date of ``value`` in the reference timezone (UTC).

    Naive datetimes are taken to already be in UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(REFERENCE_TZ)
        return value.date()
    return value


def due_date_for(now: date | datetime) -> date:
    return reference_date(now) + DUE_DATE_OFFSET


def day_of_week(day: date) -> int:
    """Day of week with Sunday as 0 and Saturday as 6."""
    return day.isoweekday() % 7


def is_active(rule: RecurrenceRuleEntity, today: date) -> bool:
    return rule.end_date is None or reference_date(rule.end_date) >= today


def _matches_pattern(rule: RecurrenceRuleEntity, today: date) -> bool:
    kind = RecurrenceKind.parse(rule.recurrence_type)
    if kind is None:
        logger.warning("Rule %s has unknown recurrence type %r", rule.id, rule.recurrence_type)
        return False

    if kind is RecurrenceKind.WEEKLY:
        dow = rule.day_of_week
        if dow is None or not 0 <= dow <= 6:
            logger.warning("Rule %s is WEEKLY with invalid day_of_week=%r", rule.id, dow)
            return False
        return day_of_week(today) == dow

    # MONTHLY: literal equality, so day 31 never fires in a 30-day month.
    dom = rule.day_of_month
    if dom is None or not 1 <= dom <= 31:
        logger.warning("Rule %s is MONTHLY with invalid day_of_month=%r", rule.id, dom)
        return False
    return today.day == dom


def should_spawn(rule: RecurrenceRuleEntity, today: date) -> bool:
    """Decide whether ``rule`` must produce a task on ``today``.

    Never raises: malformed rules are logged and treated as "do not spawn".
    The same-day watermark check runs last and overrides a positive match.
    """
    try:
        if not is_active(rule, today):
            return False
        if rule.start_date is None:
            logger.warning("Rule %s has no start_date", rule.id)
            return False
        if reference_date(rule.start_date) > today:
            return False

        decision = _matches_pattern(rule, today)

        if rule.last_spawned is not None and reference_date(rule.last_spawned) == today:
            decision = False
        return decision
    except (TypeError, ValueError, AttributeError):
        logger.warning("Rule %s could not be evaluated", getattr(rule, "id", None), exc_info=True)
        return False
