"""
flux-webhooks Configuration

Settings for a reconciliation run. Values passed in explicitly win;
anything left unset is read from FLUXWH_* environment variables.
"""

import os
import time
from dataclasses import dataclass
from typing import Optional

from flux_webhooks.errors import ConfigError, DeadlineExceeded

DEFAULT_HUB_URL = "https://hub.docker.com"
DEFAULT_PAGE_SIZE = 100
DEFAULT_TIMEOUT = 360.0


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class WebhookConfig:
    """Configuration for one reconciliation run."""

    # Docker Hub credentials
    hub_username: str = ""
    hub_password: str = ""
    hub_url: str = ""

    # Flux notification-controller receiver endpoint; its path is replaced per webhook
    receiver_base_url: str = ""

    page_size: Optional[int] = None
    timeout: Optional[float] = None
    dry_run: bool = False

    # Cluster access
    namespace: Optional[str] = None
    kubeconfig: Optional[str] = None
    context: Optional[str] = None

    log_level: str = ""
    log_json: Optional[bool] = None

    def __post_init__(self):
        self.hub_username = self.hub_username or os.getenv("FLUXWH_HUB_USERNAME", "")
        self.hub_password = self.hub_password or os.getenv("FLUXWH_HUB_PASSWORD", "")
        self.hub_url = self.hub_url or os.getenv("FLUXWH_HUB_URL", DEFAULT_HUB_URL)
        self.receiver_base_url = self.receiver_base_url or os.getenv(
            "FLUXWH_RECEIVER_BASE_URL", ""
        )
        self.log_level = self.log_level or os.getenv("FLUXWH_LOG_LEVEL", "info")
        if self.log_json is None:
            self.log_json = _env_bool("FLUXWH_LOG_JSON", False)

        try:
            if self.page_size is None:
                self.page_size = int(os.getenv("FLUXWH_PAGE_SIZE", DEFAULT_PAGE_SIZE))
            if self.timeout is None:
                self.timeout = float(os.getenv("FLUXWH_TIMEOUT", DEFAULT_TIMEOUT))
        except ValueError as e:
            raise ConfigError(f"invalid numeric setting: {e}") from e

    def validate(self, require_hub: bool = True) -> None:
        """Raise ConfigError if a required setting is missing or out of range."""
        if require_hub:
            missing = [
                flag
                for flag, value in (
                    ("hub-username", self.hub_username),
                    ("hub-password", self.hub_password),
                    ("receiver-base-url", self.receiver_base_url),
                )
                if not value
            ]
            if missing:
                raise ConfigError(
                    f"required settings not provided: {', '.join(missing)}",
                    missing=missing,
                )

        if self.page_size <= 0:
            raise ConfigError(f"page size must be positive, got {self.page_size}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")


class Deadline:
    """A single deadline shared by every blocking call of a run."""

    def __init__(self, seconds: float, clock=time.monotonic):
        self._clock = clock
        self.seconds = seconds
        self.expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0

    def check(self) -> float:
        """Return the remaining seconds, raising once the deadline has passed."""
        remaining = self.remaining()
        if remaining <= 0:
            raise DeadlineExceeded(f"run exceeded its {self.seconds:g}s deadline")
        return remaining
