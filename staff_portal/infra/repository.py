from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.orm import sessionmaker

from staff_portal.domain.entities import RecurrenceRuleEntity, TaskEntity
from staff_portal.domain.enums import RecurrenceKind, TaskStatus
from staff_portal.domain.recurrence import due_date_for, reference_date
from staff_portal.errors import DuplicateSpawnError, RuleNotFoundError, SpawnTimeoutError

from .commit_guard import CommitGuard
from .models import RecurringTaskModel, TaskModel

logger = logging.getLogger(__name__)

STATUS_COMPLETED = TaskStatus.COMPLETED.value


def _rule_to_entity(model: RecurringTaskModel) -> RecurrenceRuleEntity:
    return RecurrenceRuleEntity(
        id=model.id,
        title=model.title,
        details=model.details or "",
        assigned_to=model.assigned_to,
        created_by=model.created_by,
        recurrence_type=RecurrenceKind.parse(model.recurrence_type) or model.recurrence_type,
        day_of_week=model.day_of_week,
        day_of_month=model.day_of_month,
        start_date=model.start_date,
        end_date=model.end_date,
        last_spawned=model.last_spawned,
        created_at=model.created_at,
    )


def _task_to_entity(model: TaskModel) -> TaskEntity:
    return TaskEntity(
        id=model.id,
        title=model.title,
        details=model.details or "",
        assigned_to=model.assigned_to,
        created_by=model.created_by,
        status=TaskStatus(model.status),
        due_date=model.due_date,
        recurring_id=model.recurring_id,
        created_at=model.created_at,
    )


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class RecurrenceRepository:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def list_active_rules(self, today: date) -> list[RecurrenceRuleEntity]:
        with self._session_factory() as session:
            stmt = (
                select(RecurringTaskModel)
                .where(
                    or_(
                        RecurringTaskModel.end_date.is_(None),
                        RecurringTaskModel.end_date >= today,
                    )
                )
                .order_by(RecurringTaskModel.id.asc())
            )
            return [_rule_to_entity(rule) for rule in session.scalars(stmt)]

    def list_rules(self) -> list[RecurrenceRuleEntity]:
        with self._session_factory() as session:
            stmt = select(RecurringTaskModel).order_by(RecurringTaskModel.created_at.desc())
            return [_rule_to_entity(rule) for rule in session.scalars(stmt)]

    def get_rule(self, rule_id: int) -> Optional[RecurrenceRuleEntity]:
        with self._session_factory() as session:
            rule = session.get(RecurringTaskModel, rule_id)
            return _rule_to_entity(rule) if rule else None

    def create_rule(self, data: dict) -> RecurrenceRuleEntity:
        with self._session_factory() as session:
            rule = RecurringTaskModel(**data)
            session.add(rule)
            session.commit()
            session.refresh(rule)
            logger.info("Created recurrence rule id=%s type=%s", rule.id, rule.recurrence_type)
            return _rule_to_entity(rule)


class TaskRepository:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def spawn_task_from_rule(
        self,
        rule_id: int,
        now: datetime,
        guard: CommitGuard | None = None,
    ) -> TaskEntity:
        """Create today's task for ``rule_id`` and stamp its watermark.

        Both writes share one transaction. The watermark only moves forward,
        so a second spawn for the same day raises ``DuplicateSpawnError`` and
        leaves nothing behind. With a ``guard``, a spawn whose caller already
        gave up rolls back instead of committing.
        """
        today = reference_date(now)
        with self._session_factory() as session, session.begin():
            rule = session.get(RecurringTaskModel, rule_id)
            if rule is None:
                raise RuleNotFoundError(rule_id)

            stamped = session.execute(
                update(RecurringTaskModel)
                .where(
                    RecurringTaskModel.id == rule_id,
                    or_(
                        RecurringTaskModel.last_spawned.is_(None),
                        RecurringTaskModel.last_spawned < today,
                    ),
                )
                .values(last_spawned=today)
                .execution_options(synchronize_session=False)
            )
            if stamped.rowcount != 1:
                raise DuplicateSpawnError(rule_id, today)

            task = TaskModel(
                title=rule.title,
                details=rule.details or "",
                assigned_to=rule.assigned_to,
                created_by=rule.created_by,
                status=TaskStatus.OPEN.value,
                due_date=due_date_for(today),
                recurring_id=rule.id,
                created_at=_naive_utc(now),
            )
            session.add(task)
            session.flush()
            if guard is not None and not guard.begin_commit():
                logger.warning("Rolled back spawn for rule %s: caller timed out", rule_id)
                raise SpawnTimeoutError(rule_id, guard.timeout)
            return _task_to_entity(task)

    def list_tasks_for_rule(self, rule_id: int) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = (
                select(TaskModel)
                .where(TaskModel.recurring_id == rule_id)
                .order_by(TaskModel.created_at.asc(), TaskModel.id.asc())
            )
            return [_task_to_entity(task) for task in session.scalars(stmt)]

    def get_spawn_stats(self) -> dict[int, dict[str, int]]:
        with self._session_factory() as session:
            rows = session.execute(
                select(
                    TaskModel.recurring_id,
                    func.count().label("total"),
                    func.sum(case((TaskModel.status == STATUS_COMPLETED, 1), else_=0)).label("completed"),
                )
                .where(TaskModel.recurring_id.is_not(None))
                .group_by(TaskModel.recurring_id)
            ).all()
        return {
            row.recurring_id: {"total": row.total or 0, "completed": int(row.completed or 0)}
            for row in rows
        }
