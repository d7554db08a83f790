from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from staff_portal.domain.enums import RecurrenceKind, TaskStatus
from staff_portal.errors import RuleValidationError
from staff_portal.infra.clock import FixedClock
from staff_portal.infra.models import TaskModel
from staff_portal.infra.repository import RecurrenceRepository, TaskRepository
from staff_portal.services.recurrence_service import RecurrenceService

NOW = datetime(2024, 6, 10, 9, 15, tzinfo=timezone.utc)


@pytest.fixture()
def service(session_factory) -> RecurrenceService:
    return RecurrenceService(
        RecurrenceRepository(session_factory),
        TaskRepository(session_factory),
        FixedClock(NOW),
    )


def test_create_weekly_rule_defaults_start_to_today(service: RecurrenceService) -> None:
    rule = service.create_rule({
        "title": "  Standup notes ",
        "assigned_to": "emp-7",
        "created_by": "ceo",
        "type": "weekly",
        "day_of_week": "1",
        "day_of_month": 12,
    })

    assert rule.title == "Standup notes"
    assert rule.recurrence_type is RecurrenceKind.WEEKLY
    assert rule.day_of_week == 1
    assert rule.day_of_month is None
    assert rule.start_date == date(2024, 6, 10)
    assert rule.end_date is None
    assert rule.last_spawned is None


def test_create_monthly_rule_parses_dates(service: RecurrenceService) -> None:
    rule = service.create_rule({
        "title": "Payroll check",
        "assigned_to": "emp-2",
        "recurrence_type": "MONTHLY",
        "day_of_week": 3,
        "day_of_month": 31,
        "start_date": "2024-07-01",
        "end_date": "2024-12-31",
    })

    assert rule.day_of_week is None
    assert rule.day_of_month == 31
    assert (rule.start_date, rule.end_date) == (date(2024, 7, 1), date(2024, 12, 31))
    assert [r.id for r in service.list_rules()] == [rule.id]


@pytest.mark.parametrize(
    "data",
    [
        {"assigned_to": "emp-1", "type": "WEEKLY", "day_of_week": 1},
        {"title": "x", "type": "WEEKLY", "day_of_week": 1},
        {"title": "x", "assigned_to": "emp-1", "type": "DAILY"},
        {"title": "x", "assigned_to": "emp-1", "type": "WEEKLY"},
        {"title": "x", "assigned_to": "emp-1", "type": "WEEKLY", "day_of_week": 7},
        {"title": "x", "assigned_to": "emp-1", "type": "WEEKLY", "day_of_week": 1.9},
        {"title": "x", "assigned_to": "emp-1", "type": "MONTHLY", "day_of_month": 0},
        {"title": "x", "assigned_to": "emp-1", "type": "MONTHLY", "day_of_month": "last"},
        {"title": "x", "assigned_to": "emp-1", "type": "MONTHLY", "day_of_month": 5, "start_date": "soon"},
        {
            "title": "x",
            "assigned_to": "emp-1",
            "type": "MONTHLY",
            "day_of_month": 5,
            "start_date": "2024-06-10",
            "end_date": "2024-06-09",
        },
    ],
)
def test_create_rule_rejects_invalid_input(service: RecurrenceService, data: dict) -> None:
    with pytest.raises(RuleValidationError):
        service.create_rule(data)

    assert service.list_rules() == []


def test_performance_report(service: RecurrenceService, session_factory) -> None:
    busy = service.create_rule({"title": "Weekly", "assigned_to": "emp-1", "type": "WEEKLY", "day_of_week": 1})
    idle = service.create_rule({"title": "Monthly", "assigned_to": "emp-2", "type": "MONTHLY", "day_of_month": 1})
    tasks = TaskRepository(session_factory)
    for week in range(3):
        tasks.spawn_task_from_rule(busy.id, NOW + timedelta(weeks=week))
    with session_factory() as session:
        session.query(TaskModel).filter(TaskModel.recurring_id == busy.id).limit(1).first().status = (
            TaskStatus.COMPLETED.value
        )
        session.commit()

    report = {row["recurring_task_id"]: row for row in service.performance_report()}

    assert report[busy.id]["total_spawned"] == 3
    assert report[busy.id]["completed"] == 1
    assert report[busy.id]["completion_rate"] == "33.33"
    assert report[busy.id]["last_spawned"] == date(2024, 6, 24)
    assert report[busy.id]["recurrence_type"] == "WEEKLY"
    assert report[idle.id]["total_spawned"] == 0
    assert report[idle.id]["completion_rate"] == "0.00"
    assert report[idle.id]["last_spawned"] is None


def test_integral_float_day_is_accepted(service: RecurrenceService) -> None:
    rule = service.create_rule({"title": "x", "assigned_to": "emp-1", "type": "WEEKLY", "day_of_week": 2.0})

    assert rule.day_of_week == 2
