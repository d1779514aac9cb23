"""Docker Hub webhook reconciliation for Flux receivers."""

from flux_webhooks.correlate import correlate, list_repository_receivers
from flux_webhooks.reconciler import WebhookReconciler, run_reconciliation
from flux_webhooks.state import DesiredWebhook, ReconciliationResult

__all__ = [
    "DesiredWebhook",
    "ReconciliationResult",
    "WebhookReconciler",
    "correlate",
    "list_repository_receivers",
    "run_reconciliation",
]
