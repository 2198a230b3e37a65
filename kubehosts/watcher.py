"""Continuous reconciliation driven by the ingress watch stream."""

from enum import Enum

from .aggregator import aggregate
from .cluster import ClusterClient
from .logging_config import get_logger, log_reconcile_event
from .models import AddressBook
from .reconciler import FileReconciler

logger = get_logger(__name__)

RECONCILE_EVENT_TYPES = frozenset({"ADDED", "MODIFIED"})


class WatchState(str, Enum):
    SUBSCRIBING = "subscribing"
    STREAMING = "streaming"


def reconcile_cycle(cluster: ClusterClient, reconciler: FileReconciler) -> AddressBook:
    """List ingresses, aggregate them and rewrite the managed fragment.

    Errors from listing or writing propagate to the caller.
    """
    ingresses = cluster.list_ingresses()
    address_book = aggregate(ingresses)
    reconciler.reconcile(address_book)
    return address_book


class WatchLoop:
    """Reconciles the hosts file on every ingress add or modify event.

    When the server closes the stream the loop opens a new one, forever.
    :meth:`run` therefore only ends by raising: either the watch could not be
    opened or a reconciliation failed.

    A subscription is only counted once its first event (or a clean close)
    has arrived; while a watch on an empty cluster sits idle, ``subscriptions``
    and the "subscribed" log lag behind the open request.
    """

    def __init__(self, cluster: ClusterClient, reconciler: FileReconciler):
        self.cluster = cluster
        self.reconciler = reconciler
        self.state = WatchState.SUBSCRIBING
        self.subscriptions = 0
        self.reconciliations = 0

    def run(self) -> None:
        while True:
            self.state = WatchState.SUBSCRIBING
            events = self.cluster.watch_ingresses()
            self.subscriptions += 1
            log_reconcile_event(logger, "subscribed", subscription=self.subscriptions)

            self.state = WatchState.STREAMING
            for event in events:
                if event.type not in RECONCILE_EVENT_TYPES:
                    logger.debug("Ignoring watch event", type=event.type, ingress_name=event.name)
                    continue

                logger.debug("Reconciling after watch event", type=event.type, ingress_name=event.name)
                reconcile_cycle(self.cluster, self.reconciler)
                self.reconciliations += 1

            logger.info("Watch stream closed, starting again", subscription=self.subscriptions)
