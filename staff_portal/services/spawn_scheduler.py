from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from typing import Protocol

from staff_portal.domain.entities import PassResult, RecurrenceRuleEntity, TaskEntity
from staff_portal.domain.recurrence import reference_date, should_spawn
from staff_portal.errors import PassInProgressError, RuleLoadError, SpawnTimeoutError
from staff_portal.infra.clock import Clock
from staff_portal.infra.commit_guard import CommitGuard

logger = logging.getLogger(__name__)


class RuleSource(Protocol):
    def list_active_rules(self, today: date) -> list[RecurrenceRuleEntity]: ...


class TaskSpawner(Protocol):
    def spawn_task_from_rule(
        self,
        rule_id: int,
        now: datetime,
        guard: CommitGuard | None = None,
    ) -> TaskEntity: ...


class SpawnScheduler:
    """Runs evaluation passes over the active recurrence rules.

    Each rule is handled on its own: a failed spawn is counted and logged and
    the pass moves on. Only a failure to load the rules aborts a pass.
    Passes never overlap; asking for one while another runs raises
    ``PassInProgressError``.
    """

    def __init__(
        self,
        rules: RuleSource,
        tasks: TaskSpawner,
        clock: Clock,
        spawn_timeout: float | None = None,
    ) -> None:
        self._rules = rules
        self._tasks = tasks
        self._clock = clock
        self._spawn_timeout = spawn_timeout
        self._pass_lock = threading.Lock()

    def run_pass(self, now: datetime | None = None) -> PassResult:
        if not self._pass_lock.acquire(blocking=False):
            raise PassInProgressError("a spawn pass is already running")
        try:
            return self._run_pass(now or self._clock.now())
        finally:
            self._pass_lock.release()

    def _run_pass(self, now: datetime) -> PassResult:
        today = reference_date(now)
        logger.info("Spawn pass started for %s", today.isoformat())

        try:
            rules = self._rules.list_active_rules(today)
        except Exception as exc:
            logger.error("Failed to load recurrence rules: %s", exc)
            raise RuleLoadError(f"failed to load recurrence rules: {exc}") from exc

        if not rules:
            logger.info("No recurrence rules to process")
            return PassResult()

        spawned = skipped = failed = 0
        for rule in rules:
            if not should_spawn(rule, today):
                skipped += 1
                continue

            try:
                task = self._spawn(rule.id, now)
            except Exception as exc:  # noqa: BLE001
                failed += 1
                logger.error("Failed to spawn task for rule %s: %s", rule.id, exc)
                continue

            spawned += 1
            logger.info("Spawned task %s from rule %s: %s", task.id, rule.id, rule.title)

        result = PassResult(spawned=spawned, skipped=skipped, failed=failed, total=len(rules))
        logger.info(
            "Spawn pass completed. Spawned: %s, Skipped: %s, Failed: %s, Total rules: %s",
            result.spawned,
            result.skipped,
            result.failed,
            result.total,
        )
        return result

    def _spawn(self, rule_id: int, now: datetime) -> TaskEntity:
        if self._spawn_timeout is None:
            return self._tasks.spawn_task_from_rule(rule_id, now)

        guard = CommitGuard(self._spawn_timeout)
        outcome: dict = {}
        done = threading.Event()

        def work() -> None:
            try:
                outcome["task"] = self._tasks.spawn_task_from_rule(rule_id, now, guard=guard)
            except Exception as exc:  # noqa: BLE001
                outcome["error"] = exc
            finally:
                done.set()

        # Daemon so a hung store call cannot hold the process open.
        threading.Thread(target=work, name=f"spawn-{rule_id}", daemon=True).start()
        if not done.wait(self._spawn_timeout) and guard.expire():
            raise SpawnTimeoutError(rule_id, self._spawn_timeout)

        # Either finished, or already committing and must be waited out.
        done.wait()
        if "error" in outcome:
            raise outcome["error"]
        return outcome["task"]
