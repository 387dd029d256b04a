"""Two-branch result of a request sent to the backup server."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class NoTargetSelected(RuntimeError):
    pass


class DispatchFailed(RuntimeError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class FailureKind(str, Enum):
    NO_TARGET_SELECTED = "no-target-selected"
    DISPATCH_FAILED = "dispatch-failed"


@dataclass(frozen=True)
class Success:
    task_id: str = ""

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    reason: str
    kind: FailureKind = FailureKind.DISPATCH_FAILED

    @property
    def ok(self) -> bool:
        return False

    def to_exception(self) -> NoTargetSelected | DispatchFailed:
        if self.kind is FailureKind.NO_TARGET_SELECTED:
            return NoTargetSelected(self.reason)
        return DispatchFailed(self.reason)


DispatchOutcome = Success | Failure
