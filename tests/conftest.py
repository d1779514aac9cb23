"""
Pytest configuration and fixtures for flux-webhooks tests
"""

import os
import sys
from pathlib import Path

import pytest

# Add src to path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from flux_webhooks.dockerhub import (  # noqa: E402
    DockerHubWebhookModel,
    DockerHubWebhookWrapper,
    GetDockerHubWebhooksResponse,
)
from flux_webhooks.errors import WebhookCreateError  # noqa: E402
from flux_webhooks.kube import IMAGE_REPOSITORY, RECEIVER  # noqa: E402

BASE_URL = "https://flux.example.com"


def image_repository(name, namespace="flux-system", image="org/app"):
    return {
        "apiVersion": "image.toolkit.fluxcd.io/v1beta2",
        "kind": "ImageRepository",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"image": image, "interval": "5m"},
    }


def receiver(name, resources, namespace="flux-system", type_="dockerhub", path=None):
    obj = {
        "apiVersion": "notification.toolkit.fluxcd.io/v1",
        "kind": "Receiver",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"type": type_, "resources": resources},
        "status": {},
    }
    if path is not None:
        obj["status"]["webhookPath"] = path
    return obj


class FakeLister:
    """In-memory ResourceLister."""

    def __init__(self, repositories=None, receivers=None, fail_on=None):
        self.objects = {IMAGE_REPOSITORY: repositories or [], RECEIVER: receivers or []}
        self.fail_on = fail_on
        self.calls = []

    def list(self, kind, namespace=None):
        from flux_webhooks.errors import ClusterError

        self.calls.append((kind, namespace))
        if kind == self.fail_on:
            raise ClusterError(f"unable to list {kind.plural}: 403 Forbidden")
        return [
            obj for obj in self.objects[kind]
            if namespace is None or obj["metadata"]["namespace"] == namespace
        ]


class FakeWebhookService:
    """In-memory WebhookService that remembers what it created."""

    def __init__(self, existing=None, fail_names=(), count_override=None):
        self.webhooks = {repo: list(hooks) for repo, hooks in (existing or {}).items()}
        self.fail_names = set(fail_names)
        self.count_override = count_override
        self.created = []
        self.list_calls = []

    def list_webhooks(self, repository, page_size):
        self.list_calls.append((repository, page_size))
        results = self.webhooks.get(repository, [])
        count = self.count_override if self.count_override is not None else len(results)
        return GetDockerHubWebhooksResponse(count=count, results=results[:page_size])

    def create_webhook(self, repository, webhook):
        if webhook.name in self.fail_names:
            raise WebhookCreateError(
                "unexpected response from docker hub: boom",
                repository=repository,
                webhook=webhook.name,
            )
        self.created.append((repository, webhook))
        self.webhooks.setdefault(repository, []).append(webhook)


def remote_webhook(name, hook_url):
    return DockerHubWebhookWrapper(
        name=name, webhooks=[DockerHubWebhookModel(name=name, hook_url=hook_url)]
    )


@pytest.fixture
def clean_env():
    """Remove FLUXWH_* variables for the duration of a test."""
    original_env = os.environ.copy()
    for key in list(os.environ):
        if key.startswith("FLUXWH_"):
            del os.environ[key]

    yield os.environ

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def sample_cluster():
    """One image repository with an active dockerhub receiver pointing at it."""
    return FakeLister(
        repositories=[image_repository("app", namespace="ns", image="org/app")],
        receivers=[
            receiver(
                "trigger1",
                [{"kind": "ImageRepository", "name": "app"}],
                namespace="ns",
                path="/hooks/ns/trigger1",
            )
        ],
    )


# Markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (deselect with '-m \"not integration\"')"
    )
