"""Data models for kubehosts."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_MAX_ERRORS = 10
DEFAULT_FILEPATH = "/etc/hosts"

# IP address -> hostnames, in encounter order
AddressBook = Dict[str, List[str]]


class IngressRule(BaseModel):
    """A single host routing rule of an ingress."""

    host: str = Field("", description="Hostname routed by this rule")

    @field_validator("host", mode="before")
    @classmethod
    def _strip_host(cls, value: Any) -> str:
        return (value or "").strip()


class IngressRecord(BaseModel):
    """Snapshot of an ingress resource as seen by the aggregator."""

    name: str = Field(..., description="Ingress resource name")
    namespace: Optional[str] = Field(None, description="Kubernetes namespace")
    load_balancer_ip: Optional[str] = Field(None, description="First load-balancer IP, if assigned")
    rules: List[IngressRule] = Field(default_factory=list, description="Host rules in declaration order")

    @field_validator("load_balancer_ip", mode="before")
    @classmethod
    def _strip_ip(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @classmethod
    def from_k8s(cls, ingress: Any) -> "IngressRecord":
        """Build a record from a kubernetes ``V1Ingress`` object."""
        metadata = ingress.metadata
        ip = None
        status = ingress.status
        if status and status.load_balancer and status.load_balancer.ingress:
            ip = status.load_balancer.ingress[0].ip

        rules = []
        if ingress.spec and ingress.spec.rules:
            rules = [IngressRule(host=rule.host) for rule in ingress.spec.rules]

        return cls(
            name=metadata.name,
            namespace=metadata.namespace,
            load_balancer_ip=ip,
            rules=rules,
        )


class WatchEvent(BaseModel):
    """A change notification from the ingress watch stream."""

    type: str = Field(..., description="Event type (ADDED, MODIFIED, DELETED, ...)")
    name: Optional[str] = Field(None, description="Name of the affected ingress")


class HostsConfig(BaseModel):
    """Runtime configuration, built once at startup."""

    in_cluster: bool = Field(False, description="Use the in-cluster service account config")
    api_host: Optional[str] = Field(None, description="Kubernetes API host; required unless in_cluster")
    once: bool = Field(False, description="Write the file once and exit instead of watching")
    filepath: str = Field(DEFAULT_FILEPATH, description="Hosts file to manage")
    max_errors: int = Field(DEFAULT_MAX_ERRORS, description="Consecutive failures tolerated in one-shot mode")
    retry_delay_seconds: float = Field(1.0, ge=0, description="Pause between one-shot retries")
    watch_timeout_seconds: Optional[int] = Field(None, gt=0, description="Server-side watch timeout")
    atomic_writes: bool = Field(True, description="Write via temporary file and rename")
    restore_on_exit: bool = Field(True, description="Remove the managed fragment on shutdown")

    @field_validator("max_errors")
    @classmethod
    def _normalize_max_errors(cls, value: int) -> int:
        if value < 0:
            return DEFAULT_MAX_ERRORS
        return value

    @field_validator("api_host", mode="before")
    @classmethod
    def _blank_host_is_none(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_api_source(self) -> "HostsConfig":
        if self.in_cluster and self.api_host:
            raise ValueError("in_cluster and api_host are mutually exclusive")
        if not self.in_cluster and not self.api_host:
            raise ValueError("either in_cluster must be set or an api_host provided")
        return self
