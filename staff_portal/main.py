from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import threading
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from staff_portal.config import Settings, get_settings
from staff_portal.errors import PortalError
from staff_portal.infra.clock import SystemClock
from staff_portal.infra.db import init_db, make_engine, make_session_factory
from staff_portal.infra.logging import setup_logging
from staff_portal.infra.repository import RecurrenceRepository, TaskRepository
from staff_portal.services.recurrence_service import RecurrenceService
from staff_portal.services.spawn_scheduler import SpawnScheduler
from staff_portal.services.trigger import SpawnTrigger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    trigger: SpawnTrigger
    recurrence: RecurrenceService


def build_container(settings: Settings) -> Container:
    engine = make_engine(settings.database_url)
    init_db(engine)
    session_factory = make_session_factory(engine)

    clock = SystemClock()
    rules = RecurrenceRepository(session_factory)
    tasks = TaskRepository(session_factory)
    scheduler = SpawnScheduler(rules, tasks, clock, spawn_timeout=settings.spawn_timeout_seconds)
    trigger = SpawnTrigger(
        scheduler,
        cron=settings.cron_schedule,
        timezone=settings.scheduler_timezone,
        misfire_grace_seconds=settings.misfire_grace_seconds,
    )
    return Container(trigger=trigger, recurrence=RecurrenceService(rules, tasks, clock))


def _serve(container: Container) -> int:
    stop = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received: stopping scheduler", signum)
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    container.trigger.start()
    logger.info("Next spawn pass at %s", container.trigger.next_run_time())
    stop.wait()
    container.trigger.shutdown()
    return 0


def _run_once(container: Container) -> int:
    result = container.trigger.run_now()
    print(json.dumps(result))
    return 1 if result["failed"] else 0


def _report(container: Container) -> int:
    report = container.recurrence.performance_report()
    print(json.dumps({"recurring_tasks_report": report}, default=str, indent=2))
    return 0


COMMANDS = {
    "serve": _serve,
    "run-once": _run_once,
    "report": _report,
}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="staff-portal", description="Recurring task spawner")
    parser.add_argument("command", choices=sorted(COMMANDS), help="what to run")
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except PortalError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2

    setup_logging(settings)
    try:
        container = build_container(settings)
    except SQLAlchemyError as exc:
        logger.error("DB error: %s", exc)
        return 1
    except PortalError as exc:
        logger.error("Startup failed: %s", exc)
        return 2

    try:
        return COMMANDS[args.command](container)
    except PortalError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
