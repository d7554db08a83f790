from __future__ import annotations

from datetime import date

from staff_portal.domain.entities import RecurrenceRuleEntity
from staff_portal.domain.enums import RecurrenceKind
from staff_portal.domain.recurrence import reference_date
from staff_portal.errors import RuleValidationError
from staff_portal.infra.clock import Clock
from staff_portal.infra.repository import RecurrenceRepository, TaskRepository


class RecurrenceService:
    def __init__(self, rules: RecurrenceRepository, tasks: TaskRepository, clock: Clock) -> None:
        self._rules = rules
        self._tasks = tasks
        self._clock = clock

    def list_rules(self) -> list[RecurrenceRuleEntity]:
        return self._rules.list_rules()

    def create_rule(self, data: dict) -> RecurrenceRuleEntity:
        return self._rules.create_rule(self._normalize_data(data))

    def performance_report(self) -> list[dict]:
        stats = self._tasks.get_spawn_stats()
        report = []
        for rule in self._rules.list_rules():
            counts = stats.get(rule.id, {"total": 0, "completed": 0})
            total = counts["total"]
            completed = counts["completed"]
            report.append({
                "recurring_task_id": rule.id,
                "title": rule.title,
                "assigned_to": rule.assigned_to,
                "recurrence_type": str(rule.recurrence_type),
                "total_spawned": total,
                "completed": completed,
                "completion_rate": f"{completed / total * 100:.2f}" if total else "0.00",
                "last_spawned": rule.last_spawned,
            })
        return report

    def _normalize_data(self, data: dict) -> dict:
        title = (data.get("title") or "").strip()
        assigned_to = (data.get("assigned_to") or "").strip()
        if not title or not assigned_to:
            raise RuleValidationError("Title and assigned_to are required")

        kind = RecurrenceKind.parse(data.get("recurrence_type") or data.get("type"))
        if kind is None:
            raise RuleValidationError("Invalid recurrence type")

        day_of_week = None
        day_of_month = None
        if kind is RecurrenceKind.WEEKLY:
            day_of_week = _bounded_int(data.get("day_of_week"), "day_of_week", 0, 6)
        else:
            day_of_month = _bounded_int(data.get("day_of_month"), "day_of_month", 1, 31)

        start_date = _as_date(data.get("start_date"), "start_date") or reference_date(self._clock.now())
        end_date = _as_date(data.get("end_date"), "end_date")
        if end_date is not None and end_date < start_date:
            raise RuleValidationError("end_date must not be before start_date")

        return {
            "title": title,
            "details": data.get("details") or "",
            "assigned_to": assigned_to,
            "created_by": data.get("created_by"),
            "recurrence_type": kind.value,
            "day_of_week": day_of_week,
            "day_of_month": day_of_month,
            "start_date": start_date,
            "end_date": end_date,
        }


def _bounded_int(raw: object, field: str, low: int, high: int) -> int:
    if isinstance(raw, bool) or (isinstance(raw, float) and not raw.is_integer()):
        raise RuleValidationError(f"{field} must be an integer")
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise RuleValidationError(f"{field} must be an integer") from exc
    if not low <= value <= high:
        raise RuleValidationError(f"{field} must be between {low} and {high}")
    return value


def _as_date(raw: object, field: str) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, date):
        return reference_date(raw)
    try:
        return date.fromisoformat(str(raw))
    except ValueError as exc:
        raise RuleValidationError(f"{field} must be an ISO date") from exc
