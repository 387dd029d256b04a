from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

from pbs_console.jobs.dispatcher import BackupDispatcher
from pbs_console.jobs.selection import JobSelectionController
from pbs_console.jobs.types import JobRecord, SelectionState
from pbs_console.outcome import DispatchOutcome, Failure, FailureKind


@dataclass(frozen=True)
class Notification:
    level: Literal["info", "error"]
    title: str
    message: str


class ToolbarButton:
    def __init__(self, text: str) -> None:
        self.text = text
        self.enabled = False

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled


def notification_for(outcome: DispatchOutcome) -> Notification:
    if not isinstance(outcome, Failure):
        return Notification("info", "Success", "Backup job started successfully")
    if outcome.kind is FailureKind.NO_TARGET_SELECTED:
        return Notification("error", "Error", outcome.reason)
    return Notification("error", "Error", f"Failed to start backup job: {outcome.reason}")


class BackupJobPanel:
    """Job list selection wired to a "Start Backup" toolbar button."""

    def __init__(
        self,
        dispatcher: BackupDispatcher,
        controller: JobSelectionController | None = None,
    ) -> None:
        self.controller = controller or JobSelectionController()
        self.dispatcher = dispatcher
        self.start_button = ToolbarButton("Start Backup")
        self.controller.bind(self.start_button)
        self.last_notification: Notification | None = None

    @property
    def selection(self) -> SelectionState:
        return self.controller.state

    def on_selection_change(self, records: Sequence[JobRecord]) -> SelectionState:
        return self.controller.on_selection_change(records)

    async def start_backup(self) -> tuple[DispatchOutcome, Notification]:
        outcome = await self.dispatcher.dispatch(self.controller.state)
        notification = notification_for(outcome)
        self.last_notification = notification
        return outcome, notification
