from __future__ import annotations

from enum import StrEnum


class TaskStatus(StrEnum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class RecurrenceKind(StrEnum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"

    @classmethod
    def parse(cls, raw: object) -> RecurrenceKind | None:
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            return None
