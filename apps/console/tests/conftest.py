from collections.abc import Iterator
from pathlib import Path
from typing import Any, Mapping

import pytest
from fastapi.testclient import TestClient

from pbs_console.config import get_settings
from pbs_console.console import Console, create_console
from pbs_console.db import Base, get_engine
from pbs_console.main import app, get_console
import pbs_console.models  # noqa: F401
from pbs_console.remote.client import RemoteCallError


class FakeBackupServer:
    def __init__(self) -> None:
        self.keys: list[dict[str, Any]] = []
        self.key_error: str | None = None
        self.key_calls = 0
        self.start_calls: list[tuple[str, dict[str, str]]] = []
        self.start_error: str | None = None
        self.task_id = "UPID:pbs:000012AB:0000C3D4:00000001:6530F1A2:vzdump:101:root@pam:"
        self.media_calls: list[tuple[str, bool]] = []
        self.media_error: str | None = None
        self.closed = False

    async def list_encryption_keys(self) -> list[dict[str, Any]]:
        self.key_calls += 1
        if self.key_error is not None:
            raise RemoteCallError(self.key_error)
        return list(self.keys)

    async def start_backup(self, target_id: str, params: Mapping[str, str]) -> str:
        self.start_calls.append((target_id, dict(params)))
        if self.start_error is not None:
            raise RemoteCallError(self.start_error)
        return self.task_id

    async def destroy_media(self, uuid: str, *, force: bool) -> None:
        self.media_calls.append((uuid, force))
        if self.media_error is not None:
            raise RemoteCallError(self.media_error)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def reset_console_caches() -> Iterator[None]:
    get_settings.cache_clear()
    get_engine.cache_clear()
    yield
    get_settings.cache_clear()
    get_engine.cache_clear()


@pytest.fixture
def backup_server() -> FakeBackupServer:
    return FakeBackupServer()


@pytest.fixture
def console(backup_server: FakeBackupServer) -> Console:
    return create_console(backup_server)


@pytest.fixture
def client(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    console: Console,
) -> Iterator[TestClient]:
    sqlite_db_path = tmp_path / "console-tests.db"
    monkeypatch.setenv("CONSOLE_DATABASE_URL", f"sqlite+pysqlite:///{sqlite_db_path}")
    monkeypatch.setenv("CONSOLE_DB_ECHO", "false")

    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    app.dependency_overrides[get_console] = lambda: console
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()

    engine.dispose()
