"""kubehosts: keep Kubernetes ingress hostnames in a hosts file."""

__version__ = "0.1.0"

# Lazy imports to avoid loading the kubernetes client for CLI usage
__all__ = [
    "ClusterClient",
    "FileReconciler",
    "HostsConfig",
    "IngressRecord",
    "RunController",
    "WatchLoop",
]


def __getattr__(name):
    if name == "ClusterClient":
        from .cluster import ClusterClient
        return ClusterClient
    elif name == "FileReconciler":
        from .reconciler import FileReconciler
        return FileReconciler
    elif name == "HostsConfig":
        from .models import HostsConfig
        return HostsConfig
    elif name == "IngressRecord":
        from .models import IngressRecord
        return IngressRecord
    elif name == "RunController":
        from .controller import RunController
        return RunController
    elif name == "WatchLoop":
        from .watcher import WatchLoop
        return WatchLoop
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
