"""Join Flux receivers with the image repositories they point at."""

import logging
from collections.abc import Iterable

from flux_webhooks.kube import IMAGE_REPOSITORY, RECEIVER, ResourceLister
from flux_webhooks.state import (
    DOCKERHUB_RECEIVER_TYPE,
    IMAGE_REPOSITORY_API_VERSION,
    DesiredWebhook,
    SourceRecord,
    TriggerRecord,
    resource_key,
)

logger = logging.getLogger(__name__)


def correlate(
    sources: Iterable[SourceRecord], triggers: Iterable[TriggerRecord]
) -> dict[str, DesiredWebhook]:
    """
    Build the desired webhooks from image repositories and receivers.

    Only receivers of type ``dockerhub`` with a provisioned webhook path are
    considered. Each of their resource references that resolves to a known
    image repository yields one DesiredWebhook, keyed by
    ``"<image>:<receiver namespace>/<receiver name>"``.
    """
    repositories: dict[str, SourceRecord] = {}
    for repo in sources:
        repositories[repo.key] = repo
        logger.debug("added repository", extra={"repository": repo.key})

    webhooks: dict[str, DesiredWebhook] = {}
    for receiver in triggers:
        logger.debug(
            "found receiver", extra={"receiver": receiver.key, "type": receiver.type}
        )
        if receiver.type != DOCKERHUB_RECEIVER_TYPE:
            continue

        for ref in receiver.resources:
            namespace = ref.namespace or receiver.namespace
            key = resource_key(IMAGE_REPOSITORY_API_VERSION, ref.kind, namespace, ref.name)

            if not receiver.webhook_path:
                logger.debug(
                    "ignoring receiver with inactive webhook",
                    extra={"receiver": receiver.key, "type": receiver.type},
                )
                continue

            repo = repositories.get(key)
            if repo is None:
                logger.debug(
                    "receiver references unknown repository",
                    extra={"receiver": receiver.key, "repository": key},
                )
                continue

            logger.debug(
                "found receiver for repository",
                extra={"receiver": receiver.key, "repository": key},
            )
            webhooks[f"{repo.image}:{receiver.short_key}"] = DesiredWebhook(
                repository=repo.image,
                name=receiver.short_key,
                path=receiver.webhook_path,
            )

    return webhooks


def list_repository_receivers(
    lister: ResourceLister, namespace: str | None = None
) -> dict[str, DesiredWebhook]:
    """
    List image repositories and receivers from the cluster and correlate them.

    A failed listing raises ClusterError; nothing is returned in that case.
    """
    sources = [SourceRecord.from_dict(obj) for obj in lister.list(IMAGE_REPOSITORY, namespace)]
    triggers = [TriggerRecord.from_dict(obj) for obj in lister.list(RECEIVER, namespace)]
    return correlate(sources, triggers)
