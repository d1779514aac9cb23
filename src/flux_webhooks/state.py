"""State definitions for webhook reconciliation."""

from dataclasses import dataclass, field
from typing import Any

IMAGE_REPOSITORY_API_VERSION = "image.toolkit.fluxcd.io/v1beta2"
DOCKERHUB_RECEIVER_TYPE = "dockerhub"


def resource_key(api_version: str, kind: str, namespace: str, name: str) -> str:
    """Composite identity of a cluster object."""
    return f"{api_version}/{kind}/{namespace}/{name}"


@dataclass(frozen=True)
class ResourceRef:
    """A cross-namespace object reference held by a receiver."""

    kind: str
    name: str
    namespace: str = ""
    api_version: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResourceRef":
        """Build from a receiver's spec.resources entry."""
        return cls(
            kind=data.get("kind", ""),
            name=data.get("name", ""),
            namespace=data.get("namespace", "") or "",
            api_version=data.get("apiVersion", "") or "",
        )


@dataclass(frozen=True)
class SourceRecord:
    """A Flux ImageRepository as read from the cluster."""

    api_version: str
    kind: str
    namespace: str
    name: str
    image: str

    @property
    def key(self) -> str:
        return resource_key(self.api_version, self.kind, self.namespace, self.name)

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "SourceRecord":
        """Build from a custom object dict."""
        metadata = obj.get("metadata") or {}
        spec = obj.get("spec") or {}
        return cls(
            api_version=obj.get("apiVersion", ""),
            kind=obj.get("kind", ""),
            namespace=metadata.get("namespace", ""),
            name=metadata.get("name", ""),
            image=spec.get("image", ""),
        )


@dataclass(frozen=True)
class TriggerRecord:
    """A Flux notification Receiver as read from the cluster."""

    api_version: str
    kind: str
    namespace: str
    name: str
    type: str
    resources: tuple[ResourceRef, ...] = ()
    webhook_path: str = ""

    @property
    def key(self) -> str:
        return resource_key(self.api_version, self.kind, self.namespace, self.name)

    @property
    def short_key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> "TriggerRecord":
        """Build from a custom object dict."""
        metadata = obj.get("metadata") or {}
        spec = obj.get("spec") or {}
        status = obj.get("status") or {}
        return cls(
            api_version=obj.get("apiVersion", ""),
            kind=obj.get("kind", ""),
            namespace=metadata.get("namespace", ""),
            name=metadata.get("name", ""),
            type=spec.get("type", ""),
            resources=tuple(
                ResourceRef.from_dict(ref) for ref in spec.get("resources") or []
            ),
            webhook_path=status.get("webhookPath", "") or "",
        )


@dataclass(frozen=True)
class DesiredWebhook:
    """A Docker Hub webhook that should exist for an active receiver."""

    repository: str
    name: str
    path: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "repository": self.repository,
            "name": self.name,
            "path": self.path,
        }


@dataclass
class ReconciliationResult:
    """Outcome of one reconciliation pass."""

    created: list[dict[str, Any]] = field(default_factory=list)
    existing: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[dict[str, Any]] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)
    dry_run: bool = False

    def add_created(self, repository: str, name: str, hook_url: str) -> None:
        self.created.append(_entry(repository, name, hook_url))

    def add_existing(self, repository: str, name: str, hook_url: str) -> None:
        self.existing.append(_entry(repository, name, hook_url))

    def add_skipped(self, repository: str, name: str, hook_url: str, reason: str) -> None:
        """Record a webhook that was missing but deliberately not created."""
        self.skipped.append(_entry(repository, name, hook_url, reason=reason))

    def add_failed(self, repository: str, name: str, hook_url: str, reason: str) -> None:
        self.failed.append(_entry(repository, name, hook_url, reason=reason))

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "dry_run": self.dry_run,
            "created": self.created,
            "existing": self.existing,
            "skipped": self.skipped,
            "failed": self.failed,
        }


def _entry(repository: str, name: str, hook_url: str, **extra: Any) -> dict[str, Any]:
    return {"repository": repository, "name": name, "hook_url": hook_url, **extra}
