"""Read-only access to Flux custom resources in the cluster."""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import urllib3
from kubernetes import client, config
from kubernetes.client import ApiException

from flux_webhooks.config import Deadline
from flux_webhooks.errors import ClusterError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceKind:
    """Group/version/plural coordinates of a custom resource."""

    group: str
    version: str
    plural: str
    kind: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}"


IMAGE_REPOSITORY = ResourceKind(
    "image.toolkit.fluxcd.io", "v1beta2", "imagerepositories", "ImageRepository"
)
RECEIVER = ResourceKind(
    "notification.toolkit.fluxcd.io", "v1", "receivers", "Receiver"
)


class ResourceLister(Protocol):
    """Lists cluster objects of one kind."""

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[dict[str, Any]]:
        ...


def load_kube_config(kubeconfig: str | None = None, context: str | None = None) -> None:
    """Try regular kubeconfig then in-cluster."""
    try:
        config.load_kube_config(config_file=kubeconfig, context=context)
        return
    except (config.ConfigException, OSError) as e:
        if kubeconfig or context:
            raise ClusterError(f"unable to load kubeconfig: {e}") from e
        logger.debug("no usable kubeconfig, trying in-cluster config", extra={"error": str(e)})

    try:
        config.load_incluster_config()
    except config.ConfigException as e:
        raise ClusterError(f"unable to load cluster configuration: {e}") from e


class KubeResourceLister:
    """ResourceLister backed by the Kubernetes custom objects API."""

    def __init__(self, api: client.CustomObjectsApi, deadline: Deadline | None = None):
        self.api = api
        self.deadline = deadline

    @classmethod
    def from_kubeconfig(
        cls,
        kubeconfig: str | None = None,
        context: str | None = None,
        deadline: Deadline | None = None,
    ) -> "KubeResourceLister":
        load_kube_config(kubeconfig, context)
        return cls(client.CustomObjectsApi(), deadline=deadline)

    def list(self, kind: ResourceKind, namespace: str | None = None) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {}
        if self.deadline is not None:
            kwargs["_request_timeout"] = self.deadline.check()

        try:
            if namespace:
                resp = self.api.list_namespaced_custom_object(
                    kind.group, kind.version, namespace, kind.plural, **kwargs
                )
            else:
                resp = self.api.list_cluster_custom_object(
                    kind.group, kind.version, kind.plural, **kwargs
                )
        except ApiException as e:
            raise ClusterError(
                f"unable to list {kind.plural}: {e.status} {e.reason}",
                kind=kind.kind,
            ) from e
        except urllib3.exceptions.HTTPError as e:
            raise ClusterError(f"unable to list {kind.plural}: {e}", kind=kind.kind) from e

        items = resp.get("items") or []
        # Items of a list response may omit their own type meta
        for item in items:
            item.setdefault("apiVersion", kind.api_version)
            item.setdefault("kind", kind.kind)
        return items
