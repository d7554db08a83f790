from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Optional

from .enums import RecurrenceKind, TaskStatus


@dataclass(frozen=True)
class RecurrenceRuleEntity:
    id: int
    title: str
    details: str
    assigned_to: str
    created_by: str | None
    # Unknown kinds loaded from storage stay as raw strings.
    recurrence_type: RecurrenceKind | str
    day_of_week: int | None
    day_of_month: int | None
    start_date: Optional[date]
    end_date: Optional[date] = None
    last_spawned: Optional[date] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class TaskEntity:
    id: int
    title: str
    details: str
    assigned_to: str
    created_by: str | None
    status: TaskStatus
    due_date: Optional[date]
    recurring_id: int | None
    created_at: datetime


@dataclass(frozen=True)
class PassResult:
    spawned: int = 0
    skipped: int = 0
    failed: int = 0
    total: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)
