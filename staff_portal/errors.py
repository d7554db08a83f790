from __future__ import annotations


class PortalError(Exception):
    """Base class for errors raised by the staff portal."""


class ConfigurationError(PortalError):
    pass


class RuleValidationError(PortalError):
    pass


class RuleLoadError(PortalError):
    """Listing recurrence rules failed; the current pass cannot proceed."""


class PassInProgressError(PortalError):
    pass


class SpawnError(PortalError):
    """A single rule could not be spawned. Never aborts a pass."""

    def __init__(self, rule_id: int, message: str) -> None:
        super().__init__(message)
        self.rule_id = rule_id


class RuleNotFoundError(SpawnError):
    def __init__(self, rule_id: int) -> None:
        super().__init__(rule_id, f"recurrence rule {rule_id} does not exist")


class DuplicateSpawnError(SpawnError):
    def __init__(self, rule_id: int, day: object) -> None:
        super().__init__(rule_id, f"recurrence rule {rule_id} already spawned on {day}")
        self.day = day


class SpawnTimeoutError(SpawnError):
    def __init__(self, rule_id: int, timeout: float) -> None:
        super().__init__(rule_id, f"spawn for rule {rule_id} timed out after {timeout}s")
        self.timeout = timeout
