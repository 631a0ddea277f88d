from dataclasses import dataclass

from registratura.config.settings import Settings
from registratura.database.repositories.document_repository import DocumentRepository
from registratura.database.repositories.user_directory_repository import UserDirectoryRepository
from registratura.database.repositories.workflow_step_repository import WorkflowStepRepository
from registratura.directory.base import BaseUserDirectory
from registratura.notifications.dispatcher import NotificationDispatcher
from registratura.notifications.factory import NotifierFactory
from registratura.numbering.allocator import NumberAllocator
from registratura.numbering.factory import CounterStoreFactory
from registratura.registry.document_store import DocumentRecordStore
from registratura.workflow.ledger import WorkflowLedger
from registratura.workflow.lifecycle import LifecycleService
from registratura.workflow.orchestrator import UpdateOrchestrator


@dataclass(frozen=True)
class RegistryServices:
    """Entry points handed to the surrounding API layer."""

    allocator: NumberAllocator
    documents: DocumentRecordStore
    ledger: WorkflowLedger
    orchestrator: UpdateOrchestrator
    lifecycle: LifecycleService


def build_services(
    settings: Settings,
    directory: BaseUserDirectory | None = None,
) -> RegistryServices:
    """Build the registry object graph with all required adapters."""
    document_repo = DocumentRepository()
    allocator = NumberAllocator(CounterStoreFactory.create(settings))
    ledger = WorkflowLedger(WorkflowStepRepository())
    directory = directory or UserDirectoryRepository()
    dispatcher = NotificationDispatcher(
        NotifierFactory.create(settings),
        batch_cap=settings.notification_batch_cap,
    )
    return RegistryServices(
        allocator=allocator,
        documents=DocumentRecordStore(document_repo, allocator),
        ledger=ledger,
        orchestrator=UpdateOrchestrator(
            documents=document_repo,
            ledger=ledger,
            directory=directory,
            dispatcher=dispatcher,
            settings=settings,
        ),
        lifecycle=LifecycleService(
            documents=document_repo,
            ledger=ledger,
            directory=directory,
            settings=settings,
        ),
    )
