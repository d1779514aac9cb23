"""
Docker Hub webhook API client.

Covers the three calls reconciliation needs: logging in (with optional 2FA),
listing the webhooks of a repository and creating a webhook. Payloads are
pydantic models shaped exactly like the Docker Hub JSON.
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol
from urllib.parse import SplitResult, urlsplit, urlunsplit

import httpx
from pydantic import BaseModel, Field

from flux_webhooks.config import DEFAULT_HUB_URL, DEFAULT_PAGE_SIZE, Deadline
from flux_webhooks.errors import (
    AuthenticationError,
    MalformedURL,
    RemoteListError,
    WebhookCreateError,
)
from flux_webhooks.state import DesiredWebhook

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0


# Models
class DockerHubWebhookModel(BaseModel):
    name: str = ""
    hook_url: str


class DockerHubWebhookWrapper(BaseModel):
    name: str = ""
    expect_final_callback: bool = False
    webhooks: list[DockerHubWebhookModel] = Field(default_factory=list)


class GetDockerHubWebhooksResponse(BaseModel):
    count: int = 0
    next: str | None = None
    results: list[DockerHubWebhookWrapper] = Field(default_factory=list)


def parse_base_url(base_url: str) -> SplitResult:
    """
    Split the receiver base URL, rejecting anything that is not absolute.

    The components are kept as written; host case and default ports are not
    normalised, so hook URLs compare equal to ones registered earlier.
    """
    try:
        url = urlsplit(base_url)
        url.port  # raises ValueError on a non-numeric port
    except (ValueError, TypeError, AttributeError) as e:
        raise MalformedURL(f"unable to parse base url: {e}", base_url=base_url) from e

    if not url.scheme or not url.hostname:
        raise MalformedURL(
            f"unable to parse base url: {base_url!r} is not an absolute URL",
            base_url=base_url,
        )
    return url


def new_dockerhub_webhook(base_url: str, webhook: DesiredWebhook) -> DockerHubWebhookWrapper:
    """Build the Docker Hub payload pointing at the receiver's webhook path."""
    path = webhook.path if webhook.path.startswith("/") else f"/{webhook.path}"
    hook_url = urlunsplit(parse_base_url(base_url)._replace(path=path))

    return DockerHubWebhookWrapper(
        name=webhook.name,
        expect_final_callback=False,
        webhooks=[DockerHubWebhookModel(name=webhook.name, hook_url=hook_url)],
    )


class WebhookService(Protocol):
    """Reads and creates webhooks for a Docker Hub repository."""

    def list_webhooks(self, repository: str, page_size: int) -> GetDockerHubWebhooksResponse:
        ...

    def create_webhook(self, repository: str, webhook: DockerHubWebhookWrapper) -> None:
        ...


class DockerHubClient:
    """WebhookService talking to the Docker Hub v2 API."""

    def __init__(
        self,
        token: str,
        hub_url: str = DEFAULT_HUB_URL,
        deadline: Deadline | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.deadline = deadline
        self.http_client = httpx.Client(
            base_url=hub_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {token}",
            },
            timeout=DEFAULT_REQUEST_TIMEOUT,
            transport=transport,
        )

    def close(self) -> None:
        """Close HTTP client."""
        self.http_client.close()

    def __enter__(self) -> "DockerHubClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _timeout(self) -> Any:
        if self.deadline is None:
            return httpx.USE_CLIENT_DEFAULT
        return self.deadline.check()

    @staticmethod
    def _collection(repository: str) -> str:
        return f"/v2/repositories/{repository}/webhook_pipeline/"

    def list_webhooks(
        self, repository: str, page_size: int = DEFAULT_PAGE_SIZE
    ) -> GetDockerHubWebhooksResponse:
        """Fetch one page of webhooks configured on a repository."""
        try:
            response = self.http_client.get(
                self._collection(repository),
                params={"page_size": page_size},
                timeout=self._timeout(),
            )
        except httpx.HTTPError as e:
            raise RemoteListError(
                f"unable to list webhooks for {repository}: {e}", repository=repository
            ) from e

        if not response.is_success:
            raise RemoteListError(
                f"unable to list webhooks for {repository}: "
                f"HTTP {response.status_code}: {response.text}",
                repository=repository,
                status_code=response.status_code,
            )

        try:
            return GetDockerHubWebhooksResponse.model_validate(response.json())
        except ValueError as e:
            raise RemoteListError(
                f"unexpected webhook listing for {repository}: {e}", repository=repository
            ) from e

    def create_webhook(self, repository: str, webhook: DockerHubWebhookWrapper) -> None:
        """Create a webhook; anything but 201 Created is an error."""
        try:
            response = self.http_client.post(
                self._collection(repository),
                json=webhook.model_dump(),
                timeout=self._timeout(),
            )
        except httpx.HTTPError as e:
            raise WebhookCreateError(str(e), repository=repository, webhook=webhook.name) from e

        if response.status_code != httpx.codes.CREATED:
            raise WebhookCreateError(
                f"unexpected response from docker hub: {response.text}",
                repository=repository,
                webhook=webhook.name,
                status_code=response.status_code,
            )


def get_token(
    username: str,
    password: str,
    otp_prompt: Callable[[], str] | None = None,
    hub_url: str = DEFAULT_HUB_URL,
    http_client: httpx.Client | None = None,
) -> str:
    """
    Log in to Docker Hub and return a bearer token.

    Accounts with two-factor authentication answer the first login with a
    401 and a ``login_2fa_token``; ``otp_prompt`` is then asked for the
    one-time code, which is exchanged for the token.
    """
    owns_client = http_client is None
    if http_client is None:
        http_client = httpx.Client(base_url=hub_url, timeout=DEFAULT_REQUEST_TIMEOUT)

    try:
        response = http_client.post(
            "/v2/users/login", json={"username": username, "password": password}
        )
        body = _json_or_empty(response)

        if response.status_code == httpx.codes.UNAUTHORIZED and body.get("login_2fa_token"):
            if otp_prompt is None:
                raise AuthenticationError("2FA required but no code prompt available")
            code = otp_prompt().strip()
            logger.debug("submitting 2FA code")
            response = http_client.post(
                "/v2/users/2fa-login",
                json={"login_2fa_token": body["login_2fa_token"], "code": code},
            )
            body = _json_or_empty(response)
    except httpx.HTTPError as e:
        raise AuthenticationError(f"unable to reach docker hub: {e}") from e
    finally:
        if owns_client:
            http_client.close()

    if not response.is_success:
        detail = body.get("detail") or response.text
        raise AuthenticationError(
            f"docker hub login failed: HTTP {response.status_code}: {detail}",
            status_code=response.status_code,
        )

    token = body.get("token")
    if not token:
        raise AuthenticationError("docker hub login returned no token")
    return token


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
