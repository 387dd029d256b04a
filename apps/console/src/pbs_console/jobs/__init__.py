from pbs_console.jobs.dispatcher import BackupDispatcher
from pbs_console.jobs.panel import BackupJobPanel, Notification
from pbs_console.jobs.selection import JobSelectionController
from pbs_console.jobs.types import NO_SELECTION, DispatchRequest, JobRecord, SelectionState

__all__ = [
    "NO_SELECTION",
    "BackupDispatcher",
    "BackupJobPanel",
    "DispatchRequest",
    "JobRecord",
    "JobSelectionController",
    "Notification",
    "SelectionState",
]
