"""Kubernetes API access: listing and watching ingresses."""

from typing import Any, Dict, Iterator, List, Optional

from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException

from .errors import ApiConnectError, ListError, SubscribeError
from .logging_config import get_logger, log_function_entry, log_function_exit, log_k8s_operation
from .models import HostsConfig, IngressRecord, WatchEvent

logger = get_logger(__name__)


class ClusterClient:
    """Client for reading ingress state from a single Kubernetes API server."""

    def __init__(self, hosts_config: HostsConfig):
        self.hosts_config = hosts_config
        self._k8s_client: Optional[client.ApiClient] = None
        self._networking_v1: Optional[client.NetworkingV1Api] = None
        logger.debug("ClusterClient initialized", api=self.api_label)

    @property
    def api_label(self) -> str:
        """Human readable name of the API server, for logs."""
        if self.hosts_config.in_cluster:
            return "in-cluster"
        return self.hosts_config.api_host or "unknown"

    def connect(self) -> None:
        """Build the Kubernetes API client.

        Raises:
            ApiConnectError: If the configuration cannot be loaded or the client built.
        """
        log_function_entry(logger, "connect", api=self.api_label)
        log_k8s_operation(logger, "connect", self.api_label, in_cluster=self.hosts_config.in_cluster)

        try:
            if self.hosts_config.in_cluster:
                logger.debug("Loading in-cluster config")
                config.load_incluster_config()
                self._k8s_client = client.ApiClient()
            else:
                logger.debug("Using explicit API host", host=self.hosts_config.api_host)
                configuration = client.Configuration()
                configuration.host = self.hosts_config.api_host
                self._k8s_client = client.ApiClient(configuration)

            self._networking_v1 = client.NetworkingV1Api(self._k8s_client)
        except Exception as e:
            logger.error("Failed to create Kubernetes client", api=self.api_label, error=str(e))
            log_function_exit(logger, "connect", status="error", error=str(e))
            raise ApiConnectError(f"Error creating Kubernetes client for {self.api_label}: {e}") from e

        logger.info("Kubernetes client ready", api=self.api_label)
        log_function_exit(logger, "connect", status="success")

    def _api(self) -> client.NetworkingV1Api:
        if not self._networking_v1:
            logger.debug("API client not initialized, connecting", api=self.api_label)
            self.connect()
        return self._networking_v1

    def list_ingresses(self) -> List[IngressRecord]:
        """List ingresses across all namespaces.

        Raises:
            ListError: If the API call fails.
        """
        api = self._api()
        log_k8s_operation(logger, "list_ingresses", self.api_label)

        try:
            response = api.list_ingress_for_all_namespaces()
        except Exception as e:
            logger.error("Error listing ingresses", api=self.api_label, error=str(e))
            raise ListError(f"Error listing ingresses: {e}") from e

        records = [IngressRecord.from_k8s(item) for item in response.items]
        logger.debug("Found ingresses", api=self.api_label, count=len(records))
        return records

    def watch_ingresses(self) -> Iterator[WatchEvent]:
        """Open a watch on ingresses across all namespaces.

        This blocks until the first event arrives or the server closes the
        stream, so a subscription that cannot be opened fails here rather than
        later during iteration. On a cluster without ingresses the call stays
        blocked while the watch is idle. The returned iterator ends when the
        server closes the stream; an API error after the stream was opened is
        treated the same way.

        Raises:
            SubscribeError: If the watch cannot be opened.
        """
        api = self._api()
        log_k8s_operation(logger, "watch_ingresses", self.api_label,
                          timeout_seconds=self.hosts_config.watch_timeout_seconds)

        kwargs: Dict[str, Any] = {}
        if self.hosts_config.watch_timeout_seconds:
            kwargs["timeout_seconds"] = self.hosts_config.watch_timeout_seconds

        watcher = watch.Watch()
        stream = watcher.stream(api.list_ingress_for_all_namespaces, **kwargs)
        logger.info("Opening ingress watch, waiting for first event", api=self.api_label)
        try:
            first = next(stream, None)
        except Exception as e:
            watcher.stop()
            logger.error("Error opening ingress watch", api=self.api_label, error=str(e))
            raise SubscribeError(f"Watch error {e}") from e

        return self._events(watcher, stream, first)

    def _events(self, watcher: watch.Watch, stream: Iterator[Dict[str, Any]],
                first: Optional[Dict[str, Any]]) -> Iterator[WatchEvent]:
        try:
            if first is None:
                return
            yield _to_event(first)
            for raw in stream:
                yield _to_event(raw)
        except ApiException as e:
            logger.warning("Watch stream ended with API error", api=self.api_label,
                           status=e.status, reason=e.reason)
        except Exception as e:
            logger.warning("Watch stream interrupted", api=self.api_label, error=str(e))
        finally:
            watcher.stop()


def _to_event(raw: Dict[str, Any]) -> WatchEvent:
    obj = raw.get("object")
    metadata = getattr(obj, "metadata", None)
    return WatchEvent(
        type=str(raw.get("type", "")),
        name=getattr(metadata, "name", None),
    )
