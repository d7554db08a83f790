from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class RecurringTaskModel(Base):
    __tablename__ = "recurring_tasks"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    details = Column(Text, nullable=False, default="")
    assigned_to = Column(String(64), nullable=False, index=True)
    created_by = Column(String(64), nullable=True)
    recurrence_type = Column(String(20), nullable=False)
    day_of_week = Column(Integer, nullable=True)
    day_of_month = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True, index=True)
    last_spawned = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class TaskModel(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    details = Column(Text, nullable=False, default="")
    assigned_to = Column(String(64), nullable=False, index=True)
    created_by = Column(String(64), nullable=True)
    status = Column(String(20), nullable=False, default="OPEN", index=True)
    due_date = Column(Date, nullable=True)
    recurring_id = Column(
        Integer,
        ForeignKey("recurring_tasks.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = Column(DateTime, nullable=False, default=utcnow)
