"""Webhook reconciliation engine."""

import logging
from collections.abc import Mapping

from flux_webhooks.config import DEFAULT_PAGE_SIZE, WebhookConfig
from flux_webhooks.correlate import list_repository_receivers
from flux_webhooks.dockerhub import (
    DockerHubWebhookWrapper,
    WebhookService,
    new_dockerhub_webhook,
    parse_base_url,
)
from flux_webhooks.errors import TooManyWebhooks, UnexpectedWebhookShape, WebhookCreateError
from flux_webhooks.kube import ResourceLister
from flux_webhooks.state import DesiredWebhook, ReconciliationResult

logger = logging.getLogger(__name__)


class WebhookReconciler:
    """Creates the Docker Hub webhooks that desired state has and Docker Hub lacks."""

    def __init__(
        self,
        service: WebhookService,
        page_size: int = DEFAULT_PAGE_SIZE,
        dry_run: bool = False,
    ):
        self.service = service
        self.page_size = page_size
        self.dry_run = dry_run

    def build_payloads(
        self, base_url: str, desired: Mapping[str, DesiredWebhook]
    ) -> dict[str, list[DockerHubWebhookWrapper]]:
        """Group payloads by repository."""
        payloads: dict[str, list[DockerHubWebhookWrapper]] = {}
        for key in sorted(desired):
            webhook = desired[key]
            logger.debug(
                "webhook for reconciliation",
                extra={"repository": webhook.repository, "webhook": webhook.name, "path": webhook.path},
            )
            payloads.setdefault(webhook.repository, []).append(
                new_dockerhub_webhook(base_url, webhook)
            )
        return payloads

    def existing_hook_urls(self, repository: str) -> set[str]:
        """Hook URLs already registered on a repository."""
        resp = self.service.list_webhooks(repository, self.page_size)
        if resp.count > self.page_size:
            raise TooManyWebhooks(
                f"too many webhooks for {repository}: {resp.count} exceed page size {self.page_size}",
                repository=repository,
                count=resp.count,
            )

        urls = set()
        for webhook in resp.results:
            if len(webhook.webhooks) != 1:
                raise UnexpectedWebhookShape(
                    f"unexpected number of elements for webhook {repository} - {webhook.name}",
                    repository=repository,
                    webhook=webhook.name,
                    count=len(webhook.webhooks),
                )
            urls.add(webhook.webhooks[0].hook_url)
        return urls

    def create_missing_webhooks(
        self, base_url: str, desired: Mapping[str, DesiredWebhook]
    ) -> ReconciliationResult:
        """
        Converge every repository towards the desired webhooks.

        Webhooks are matched on hook URL only. A failed creation is logged and
        recorded; the remaining webhooks are still processed. Listing failures,
        pagination overflow and malformed remote entries abort the whole run.
        """
        result = ReconciliationResult(dry_run=self.dry_run)
        payloads = self.build_payloads(base_url, desired)

        for repository in sorted(payloads):
            urls = self.existing_hook_urls(repository)

            for webhook in payloads[repository]:
                hook_url = webhook.webhooks[0].hook_url
                log_extra = {"repository": repository, "webhook": webhook.name}

                if hook_url in urls:
                    logger.info("ignoring webhook because it already exists", extra=log_extra)
                    result.add_existing(repository, webhook.name, hook_url)
                    continue

                if self.dry_run:
                    logger.info("would create webhook", extra={**log_extra, "hook_url": hook_url})
                    result.add_skipped(repository, webhook.name, hook_url, reason="dry_run")
                    continue

                logger.info("creating webhook", extra=log_extra)
                try:
                    self.service.create_webhook(repository, webhook)
                except WebhookCreateError as e:
                    logger.error("couldn't create webhook", extra={**log_extra, "error": e.message})
                    result.add_failed(repository, webhook.name, hook_url, reason=e.message)
                    continue

                urls.add(hook_url)
                result.add_created(repository, webhook.name, hook_url)

        return result


def collect_desired_webhooks(
    config: WebhookConfig, lister: ResourceLister
) -> dict[str, DesiredWebhook]:
    """
    Validate the receiver base URL and read the desired webhooks from the cluster.

    Nothing here talks to Docker Hub, so callers can run it before logging in.
    """
    parse_base_url(config.receiver_base_url)

    desired = list_repository_receivers(lister, namespace=config.namespace)
    logger.info("desired webhooks collected", extra={"count": len(desired)})
    return desired


def run_reconciliation(
    config: WebhookConfig,
    lister: ResourceLister,
    service: WebhookService,
) -> ReconciliationResult:
    """Correlate cluster state and create the missing webhooks."""
    desired = collect_desired_webhooks(config, lister)

    reconciler = WebhookReconciler(service, page_size=config.page_size, dry_run=config.dry_run)
    return reconciler.create_missing_webhooks(config.receiver_base_url, desired)
