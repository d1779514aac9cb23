"""
Error types for webhook reconciliation.

Everything raised on purpose derives from FluxWebhooksError so the CLI can
turn it into a non-zero exit with a readable message. WebhookCreateError is
the only one the reconciler recovers from; the rest abort the run.
"""

from typing import Any


class FluxWebhooksError(Exception):
    """Base error class."""

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigError(FluxWebhooksError):
    """Missing or invalid configuration."""


class ClusterError(FluxWebhooksError):
    """Cluster configuration could not be loaded or a resource list failed."""


class MalformedURL(FluxWebhooksError):
    """The receiver base URL cannot be parsed into an absolute URL."""


class DeadlineExceeded(FluxWebhooksError):
    """The overall run deadline passed before the work finished."""


class DockerHubError(FluxWebhooksError):
    """Base class for failures talking to Docker Hub."""


class AuthenticationError(DockerHubError):
    """Docker Hub did not issue an access token."""


class RemoteListError(DockerHubError):
    """Existing webhooks for a repository could not be read."""


class TooManyWebhooks(DockerHubError):
    """A repository reports more webhooks than fit in one page."""


class UnexpectedWebhookShape(DockerHubError):
    """A remote webhook does not hold exactly one hook URL."""


class WebhookCreateError(DockerHubError):
    """A single webhook could not be created."""
