from registratura.config.settings import Settings
from registratura.database.repositories.counter_repository import PostgresCounterStore
from registratura.numbering.base import BaseCounterStore
from registratura.numbering.in_memory_store import InMemoryCounterStore


class CounterStoreFactory:
    """Creates the counter store selected in settings."""

    BACKENDS: dict[str, type[BaseCounterStore]] = {
        "postgres": PostgresCounterStore,
        "memory": InMemoryCounterStore,
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseCounterStore:
        backend = settings.counter_backend.lower()
        store_cls = cls.BACKENDS.get(backend)
        if store_cls is None:
            raise ValueError(
                f"Unknown counter backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
            )
        return store_cls()
