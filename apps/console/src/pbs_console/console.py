from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from pbs_console.config import Settings
from pbs_console.jobs.dispatcher import BackupDispatcher
from pbs_console.jobs.panel import BackupJobPanel
from pbs_console.keys.catalog import KeyCatalog
from pbs_console.keys.selector import KeySelector
from pbs_console.remote.client import (
    JobExecutionEndpoint,
    KeyListingEndpoint,
    MediaRemovalEndpoint,
    ProxmoxBackupClient,
)


class ConsoleEndpoint(KeyListingEndpoint, JobExecutionEndpoint, MediaRemovalEndpoint, Protocol):
    async def aclose(self) -> None: ...


@dataclass
class Console:
    """Per-process panel state: key catalog, key selector and job panel."""

    endpoint: ConsoleEndpoint
    catalog: KeyCatalog
    key_selector: KeySelector
    job_panel: BackupJobPanel

    async def aclose(self) -> None:
        await self.endpoint.aclose()


def create_console(endpoint: ConsoleEndpoint) -> Console:
    catalog = KeyCatalog(endpoint)
    return Console(
        endpoint=endpoint,
        catalog=catalog,
        key_selector=KeySelector(catalog),
        job_panel=BackupJobPanel(BackupDispatcher(endpoint)),
    )


def build_console(settings: Settings) -> Console:
    client = ProxmoxBackupClient(
        base_url=settings.pbs_base_url,
        node=settings.pbs_node,
        api_token=settings.pbs_api_token,
        timeout_seconds=settings.pbs_timeout_seconds,
        verify_tls=settings.pbs_verify_tls,
    )
    return create_console(client)
