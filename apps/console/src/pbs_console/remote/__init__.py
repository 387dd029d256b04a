from pbs_console.remote.client import (
    JobExecutionEndpoint,
    KeyListingEndpoint,
    MediaRemovalEndpoint,
    ProxmoxBackupClient,
    RemoteCallError,
)

__all__ = [
    "JobExecutionEndpoint",
    "KeyListingEndpoint",
    "MediaRemovalEndpoint",
    "ProxmoxBackupClient",
    "RemoteCallError",
]
