"""Error types raised by kubehosts components."""


class HostsError(Exception):
    """Base class for all kubehosts errors."""


class ConfigError(HostsError):
    """Startup parameters are missing or invalid."""


class ApiConnectError(HostsError):
    """The Kubernetes API client could not be constructed."""


class ListError(HostsError):
    """Listing ingress resources failed."""


class SubscribeError(HostsError):
    """Opening the ingress watch stream failed."""


class FileAccessError(HostsError):
    """The target file could not be opened, read or written."""


class MalformedFileError(HostsError):
    """The managed file could not be split around the fragment marker."""


class ErrorBudgetExceeded(HostsError):
    """Too many consecutive reconciliation failures in one-shot mode."""

    def __init__(self, failures: int, max_errors: int):
        self.failures = failures
        self.max_errors = max_errors
        super().__init__(
            f"{failures} consecutive failures exceeded the limit of {max_errors}"
        )
