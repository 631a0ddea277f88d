from registratura.config.settings import Settings
from registratura.database.connection import close_pool, init_pool
from registratura.logging.logger import Log
from registratura.registry.services import build_services
from registratura.worker.worker import ExpirySweepWorker


def main() -> None:
    """Entry point: initialize pool -> build services -> run the expiry sweep loop."""
    settings = Settings()
    Log.configure(settings.log_level, settings.app_env)
    init_pool(settings)

    try:
        services = build_services(settings)
        worker = ExpirySweepWorker(services.ledger, settings)
        worker.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
