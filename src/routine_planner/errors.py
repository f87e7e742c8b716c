from __future__ import annotations

"""Exception types raised by the planner core."""


class PlannerError(Exception):
    pass


class ConfigurationError(PlannerError):
    """Static routine configuration is unusable (fatal for the affected profile)."""


class UnknownEventError(PlannerError, KeyError):
    def __init__(self, event_id: str):
        super().__init__(event_id)
        self.event_id = event_id

    def __str__(self) -> str:
        return f"event not found: {self.event_id}"


class OperationError(PlannerError):
    """A calendar operation could not be applied (missing or ambiguous target)."""


__all__ = [
    "PlannerError",
    "ConfigurationError",
    "UnknownEventError",
    "OperationError",
]
