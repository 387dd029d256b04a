from __future__ import annotations

import logging

from pbs_console.jobs.types import DispatchRequest, SelectionState
from pbs_console.outcome import DispatchOutcome, Failure, FailureKind, Success
from pbs_console.remote.client import JobExecutionEndpoint, RemoteCallError

logger = logging.getLogger(__name__)

NO_TARGET_REASON = "No backup job selected"


class BackupDispatcher:
    def __init__(self, endpoint: JobExecutionEndpoint) -> None:
        self._endpoint = endpoint

    async def dispatch(self, selection: SelectionState) -> DispatchOutcome:
        """Send one start-backup request for the selected job.

        An empty selection fails locally without touching the endpoint. The
        remote call is made at most once; failure reasons from the server are
        passed through as-is.
        """
        job = selection.selected
        if job is None:
            return Failure(NO_TARGET_REASON, FailureKind.NO_TARGET_SELECTED)

        request = DispatchRequest.from_job(job)
        logger.info(
            "starting %s backup of %s to storage %s",
            request.mode,
            request.target_id,
            request.storage_id,
        )

        try:
            task_id = await self._endpoint.start_backup(request.target_id, request.params())
        except RemoteCallError as exc:
            logger.warning("backup of %s failed: %s", request.target_id, exc.reason)
            return Failure(exc.reason)

        logger.info("backup of %s started: %s", request.target_id, task_id or "<no task id>")
        return Success(task_id)
