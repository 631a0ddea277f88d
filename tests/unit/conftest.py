from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest

from registratura.config.settings import Settings
from tests.unit.fakes import (
    FakeDirectory,
    FakeDocumentRepository,
    FakeStepRepository,
    RecordingNotifier,
    wire_connection,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def document_repo() -> FakeDocumentRepository:
    return FakeDocumentRepository()


@pytest.fixture
def step_repo() -> FakeStepRepository:
    return FakeStepRepository()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def mock_conn() -> Generator[MagicMock, None, None]:
    """Patch get_connection in the services that open their own transaction."""
    with (
        patch("registratura.workflow.orchestrator.get_connection") as orchestrator_conn,
        patch("registratura.workflow.lifecycle.get_connection") as lifecycle_conn,
    ):
        conn = wire_connection(orchestrator_conn)
        lifecycle_conn.return_value = orchestrator_conn.return_value
        yield conn
