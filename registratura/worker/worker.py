import time

from registratura.config.settings import Settings
from registratura.database.connection import get_connection
from registratura.logging.logger import Log
from registratura.workflow.ledger import WorkflowLedger


class ExpirySweepWorker:
    """Poll loop: sweep overdue pending steps -> sleep."""

    def __init__(self, ledger: WorkflowLedger, settings: Settings) -> None:
        self._ledger = ledger
        self._settings = settings

    def run(self, max_runs: int | None = None) -> None:
        """Main poll loop. Runs forever until interrupted.

        If max_runs is set, stop after that many sweeps (for testing).
        """
        Log.info("Expiry sweep worker started")
        runs = 0
        try:
            while True:
                self._try_sweep()
                runs += 1
                if max_runs is not None and runs >= max_runs:
                    break
                time.sleep(self._settings.expiry_sweep_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Expiry sweep worker shutting down gracefully")

    def _try_sweep(self) -> int:
        """Run one sweep. Database errors are logged and retried next round."""
        try:
            with get_connection() as conn:
                expired = self._ledger.sweep_expired(conn)
                conn.commit()
        except Exception as exc:
            Log.warning(f"Database error during expiry sweep, will retry: {exc}")
            return 0
        if expired:
            Log.info(f"Marked {expired} pending steps as expired")
        else:
            Log.debug("No overdue pending steps")
        return expired
