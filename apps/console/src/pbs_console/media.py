from __future__ import annotations

from dataclasses import dataclass
import logging

from pbs_console.outcome import DispatchOutcome, Failure, Success
from pbs_console.remote.client import MediaRemovalEndpoint, RemoteCallError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MediaRemoval:
    """Confirmation for destroying one removable medium."""

    uuid: str
    label: str
    force: bool = False

    @property
    def warning(self) -> str:
        return f"Are you sure you want to remove tape '{self.label}' ?"

    async def confirm(self, endpoint: MediaRemovalEndpoint) -> DispatchOutcome:
        logger.info("removing media %s (%s) force=%s", self.label, self.uuid, self.force)
        try:
            await endpoint.destroy_media(self.uuid, force=self.force)
        except RemoteCallError as exc:
            logger.warning("removing media %s failed: %s", self.uuid, exc.reason)
            return Failure(exc.reason)
        return Success()
