from registratura.config.settings import Settings
from registratura.numbering.in_memory_store import InMemoryCounterStore
from registratura.registry.services import build_services
from registratura.workflow.lifecycle import LifecycleService
from registratura.workflow.orchestrator import UpdateOrchestrator
from tests.unit.fakes import FakeDirectory


class TestBuildServices:
    def test_wires_configured_adapters(self) -> None:
        settings = Settings(_env_file=None, counter_backend="memory", notifier_provider="log")

        services = build_services(settings, directory=FakeDirectory())

        assert isinstance(services.orchestrator, UpdateOrchestrator)
        assert isinstance(services.lifecycle, LifecycleService)
        assert isinstance(services.allocator._store, InMemoryCounterStore)

    def test_allocator_is_usable_without_database(self) -> None:
        settings = Settings(_env_file=None, counter_backend="memory", notifier_provider="log")

        services = build_services(settings, directory=FakeDirectory())

        assert services.allocator.allocate("parish-1", "incoming", 2025) == (1, "1/2025")  # type: ignore[arg-type]
