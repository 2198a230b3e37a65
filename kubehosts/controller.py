"""Process lifecycle: mode selection, error budget and shutdown cleanup."""

import time
from typing import Callable, Optional

from .cluster import ClusterClient
from .errors import ErrorBudgetExceeded, FileAccessError, HostsError, ListError
from .logging_config import get_logger, log_function_entry, log_function_exit, log_reconcile_event
from .models import HostsConfig
from .reconciler import FileReconciler
from .watcher import WatchLoop, reconcile_cycle

logger = get_logger(__name__)


class ErrorBudget:
    """Counts reconciliation failures against a ceiling.

    The count is never reset by a success; it only starts over with a new
    process.
    """

    def __init__(self, max_errors: int):
        self.max_errors = max_errors
        self.failures = 0

    @property
    def exceeded(self) -> bool:
        return self.failures > self.max_errors

    def record_failure(self) -> None:
        """Count one failure.

        Raises:
            ErrorBudgetExceeded: Once the count is greater than ``max_errors``.
        """
        self.failures += 1
        if self.exceeded:
            raise ErrorBudgetExceeded(self.failures, self.max_errors)


class RunController:
    """Runs kubehosts in one-shot or watch mode and cleans up afterwards."""

    def __init__(self,
                 hosts_config: HostsConfig,
                 cluster: Optional[ClusterClient] = None,
                 reconciler: Optional[FileReconciler] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.hosts_config = hosts_config
        self.cluster = cluster or ClusterClient(hosts_config)
        self.reconciler = reconciler or FileReconciler(hosts_config.filepath,
                                                       atomic=hosts_config.atomic_writes)
        self.watch_loop = WatchLoop(self.cluster, self.reconciler)
        self.budget = ErrorBudget(hosts_config.max_errors)
        self._sleep = sleep

    def run(self) -> int:
        """Run until done and return the process exit code.

        The original file content is restored on the way out, whatever the
        mode or reason for leaving. A failure to restore it is raised.
        """
        log_function_entry(logger, "run", once=self.hosts_config.once, filepath=self.hosts_config.filepath)

        try:
            self.cluster.connect()
            self.reconciler.snapshot()
        except HostsError as e:
            logger.error("Startup failed", error=str(e), error_type=type(e).__name__)
            return 1

        exit_code = 1
        try:
            if self.hosts_config.once:
                self.run_once()
                exit_code = 0
            else:
                self.watch_loop.run()
        except HostsError as e:
            logger.error("Fatal error", error=str(e), error_type=type(e).__name__)
        finally:
            self.cleanup()

        log_function_exit(logger, "run", exit_code=exit_code)
        return exit_code

    def run_once(self) -> None:
        """Reconcile until one attempt succeeds or the error budget runs out.

        Raises:
            ErrorBudgetExceeded: When failures exceed ``max_errors``.
            MalformedFileError: Immediately, it is never retried.
        """
        while True:
            try:
                reconcile_cycle(self.cluster, self.reconciler)
            except (ListError, FileAccessError) as e:
                logger.warning("Hosts file update failed",
                               error=str(e),
                               error_type=type(e).__name__,
                               failures=self.budget.failures + 1,
                               max_errors=self.budget.max_errors)
                self.budget.record_failure()
                self._sleep(self.hosts_config.retry_delay_seconds)
                continue

            log_reconcile_event(logger, "one_shot_complete", failures=self.budget.failures)
            return

    def cleanup(self) -> None:
        """Remove the managed fragment, restoring the startup content."""
        if not self.hosts_config.restore_on_exit:
            logger.info("Leaving managed fragment in place", path=self.hosts_config.filepath)
            return

        try:
            self.reconciler.restore_original()
        except HostsError as e:
            logger.error("Error during cleanup while restoring original file",
                         path=self.hosts_config.filepath, error=str(e))
            raise
