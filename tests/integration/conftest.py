import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from registratura.config.settings import Settings
from registratura.database.connection import close_pool, get_connection, init_pool
from registratura.database.repositories.counter_repository import PostgresCounterStore
from registratura.database.repositories.document_repository import DocumentRepository
from registratura.database.repositories.user_directory_repository import UserDirectoryRepository
from registratura.database.repositories.workflow_step_repository import WorkflowStepRepository
from registratura.database.schema import apply_schema
from registratura.directory.base import BaseUserDirectory
from registratura.notifications.dispatcher import NotificationDispatcher
from registratura.numbering.allocator import NumberAllocator
from registratura.registry.document_store import DocumentRecordStore
from registratura.workflow.ledger import WorkflowLedger
from registratura.workflow.lifecycle import LifecycleService
from registratura.workflow.orchestrator import UpdateOrchestrator
from tests.integration.support import CollectingNotifier


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "registratura_test")
    return Settings(_env_file=None)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            apply_schema(conn)
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def organization_id() -> str:
    """Fresh numbering scope per test."""
    return f"org-{uuid.uuid4()}"


@pytest.fixture
def seed_users(db_conn: psycopg.Connection[Any]) -> Generator[dict[str, str], None, None]:
    """Creator, two active actors and one inactive actor."""
    users = {name: str(uuid.uuid4()) for name in ("creator", "a", "b", "inactive")}
    with db_conn.cursor() as cur:
        for name, user_id in users.items():
            cur.execute(
                "INSERT INTO users (id, email, is_active) VALUES (%s, %s, %s)",
                (user_id, f"{name}@example.test", name != "inactive"),
            )
    db_conn.commit()
    try:
        yield users
    finally:
        ids = list(users.values())
        with db_conn.cursor() as cur:
            cur.execute(
                "DELETE FROM notifications WHERE user_id = ANY(%s::uuid[])", (ids,)
            )
            cur.execute(
                """
                DELETE FROM workflow_steps
                WHERE document_id IN (
                    SELECT id FROM documents WHERE creator_id = ANY(%s::uuid[])
                )
                """,
                (ids,),
            )
            cur.execute("DELETE FROM documents WHERE creator_id = ANY(%s::uuid[])", (ids,))
            cur.execute("DELETE FROM users WHERE id = ANY(%s::uuid[])", (ids,))
        db_conn.commit()


@pytest.fixture
def directory(integration_pool: None) -> BaseUserDirectory:
    return UserDirectoryRepository()


@pytest.fixture
def collecting_notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture
def document_store(integration_pool: None) -> DocumentRecordStore:
    return DocumentRecordStore(DocumentRepository(), NumberAllocator(PostgresCounterStore()))


@pytest.fixture
def ledger(integration_pool: None) -> WorkflowLedger:
    return WorkflowLedger(WorkflowStepRepository())


@pytest.fixture
def orchestrator(
    test_settings: Settings,
    ledger: WorkflowLedger,
    directory: BaseUserDirectory,
    collecting_notifier: CollectingNotifier,
) -> UpdateOrchestrator:
    return UpdateOrchestrator(
        documents=DocumentRepository(),
        ledger=ledger,
        directory=directory,
        dispatcher=NotificationDispatcher(collecting_notifier, test_settings.notification_batch_cap),
        settings=test_settings,
    )


@pytest.fixture
def lifecycle(
    test_settings: Settings, ledger: WorkflowLedger, directory: BaseUserDirectory
) -> LifecycleService:
    return LifecycleService(DocumentRepository(), ledger, directory, test_settings)
