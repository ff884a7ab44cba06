from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from sqlbridge import ConnectionContext, DatabaseSpec, open_db, sqlite_spec

here = Path(__file__).parent
root_path = here.parent


class ConnectionFactory:
    """Connection factory handing out a fresh mock connection per call and remembering each."""

    def __init__(self) -> None:
        self.connections: list[MagicMock] = []

    def __call__(self) -> MagicMock:
        connection = MagicMock(name=f"connection_{len(self.connections)}")
        self.connections.append(connection)
        return connection


@pytest.fixture
def ctx() -> ConnectionContext:
    """Context over a handle that is never connected; for rendering and dispatch tests."""
    return ConnectionContext(handle=DatabaseSpec(connect=MagicMock(name="connect")))


@pytest.fixture
def connection_factory() -> ConnectionFactory:
    return ConnectionFactory()


@pytest.fixture
def mock_ctx(connection_factory: ConnectionFactory) -> ConnectionContext:
    return ConnectionContext(handle=DatabaseSpec(connect=connection_factory, dialect="postgres", paramstyle="format"))


@pytest.fixture
def sqlite_db(tmp_path: Path) -> DatabaseSpec:
    return sqlite_spec(str(tmp_path / "test.db"))


@pytest.fixture
def sqlite_ctx(sqlite_db: DatabaseSpec) -> ConnectionContext:
    return open_db(sqlite_db)
