#!/usr/bin/env python3
"""CLI for Flux receiver webhook management."""

import argparse
import json
import logging
import sys

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

from flux_webhooks.config import Deadline, WebhookConfig
from flux_webhooks.correlate import list_repository_receivers
from flux_webhooks.dockerhub import DockerHubClient, get_token
from flux_webhooks.errors import AuthenticationError, FluxWebhooksError
from flux_webhooks.kube import KubeResourceLister
from flux_webhooks.logging_config import setup_logging
from flux_webhooks.reconciler import WebhookReconciler, collect_desired_webhooks
from flux_webhooks.state import DesiredWebhook, ReconciliationResult

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


def print_webhooks(webhooks: dict[str, DesiredWebhook], format_type: str = "text") -> None:
    """Print the webhooks reconciliation would manage."""
    rows = [webhooks[key] for key in sorted(webhooks)]
    if format_type == "json":
        print(json.dumps([w.to_dict() for w in rows], indent=2))
        return

    table = Table(box=box.SIMPLE)
    table.add_column("Repository", style="cyan")
    table.add_column("Name")
    table.add_column("Path", style="dim")
    for webhook in rows:
        table.add_row(webhook.repository, webhook.name, webhook.path)
    console.print(table)


def print_results(results: dict, format_type: str = "text") -> None:
    """Print reconciliation results."""
    if format_type == "json":
        print(json.dumps(results, indent=2))
        return

    console.print("\n[bold]=== Reconciliation Results ===[/bold]")
    console.print(f"Dry run: {results['dry_run']}")

    if results["created"]:
        console.print("Created:")
        for item in results["created"]:
            console.print(f"  [green]✓[/green] {item['repository']} {item['name']}")

    if results["failed"]:
        console.print("Failed:")
        for item in results["failed"]:
            console.print(f"  [red]✗[/red] {item['repository']} {item['name']}: {escape(item['reason'])}")

    if results["skipped"]:
        console.print("Would create:")
        for item in results["skipped"]:
            console.print(f"  → {item['repository']} {item['name']} ({item['hook_url']})")

    console.print(f"Already present: {len(results['existing'])}")


def ask_otp() -> str:
    """Ask the operator for a 2FA code."""
    if not sys.stdin.isatty():
        raise AuthenticationError("2FA required but stdin is not a terminal")
    return Prompt.ask("2FA required, please provide the 6 digit code", console=err_console)


def build_config(args: argparse.Namespace) -> WebhookConfig:
    return WebhookConfig(
        hub_username=getattr(args, "hub_username", None) or "",
        hub_password=getattr(args, "hub_password", None) or "",
        receiver_base_url=getattr(args, "receiver_base_url", None) or "",
        page_size=getattr(args, "page_size", None),
        timeout=args.timeout,
        dry_run=getattr(args, "dry_run", False),
        namespace=args.namespace,
        kubeconfig=args.kubeconfig,
        context=args.context,
        log_level=args.log_level or "",
        log_json=True if args.log_json else None,
    )


def cmd_list(args: argparse.Namespace, config: WebhookConfig) -> int:
    """List the webhooks that would be created."""
    config.validate(require_hub=False)
    deadline = Deadline(config.timeout)

    lister = KubeResourceLister.from_kubeconfig(config.kubeconfig, config.context, deadline=deadline)
    webhooks = list_repository_receivers(lister, namespace=config.namespace)
    print_webhooks(webhooks, args.format)
    return 0


def cmd_create(args: argparse.Namespace, config: WebhookConfig) -> int:
    """Create missing Docker Hub webhooks for Flux receivers."""
    config.validate()
    deadline = Deadline(config.timeout)

    lister = KubeResourceLister.from_kubeconfig(config.kubeconfig, config.context, deadline=deadline)
    desired = collect_desired_webhooks(config, lister)

    if not desired:
        logger.info("no receivers reference a docker hub repository")
        result = ReconciliationResult(dry_run=config.dry_run)
    else:
        token = get_token(config.hub_username, config.hub_password, otp_prompt=ask_otp, hub_url=config.hub_url)
        with DockerHubClient(token, hub_url=config.hub_url, deadline=deadline) as service:
            reconciler = WebhookReconciler(service, page_size=config.page_size, dry_run=config.dry_run)
            result = reconciler.create_missing_webhooks(config.receiver_base_url, desired)

    if result.failed_count:
        logger.warning("some webhooks could not be created", extra={"count": result.failed_count})
    print_results(result.to_dict(), args.format)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fluxwh",
        description="Helper tool to automate the creation of flux webhooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fluxwh dockerhub list                               # Show webhooks derived from receivers
  fluxwh dockerhub create --hub-username me \\
      --hub-password secret \\
      --receiver-base-url https://flux.example.com    # Create missing webhooks
  fluxwh dockerhub create ... --dry-run               # Only report what would be created
        """,
    )
    parser.add_argument("--log-level", default=None, help="Log level (debug, info, warn, error)")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON")
    parser.add_argument("--kubeconfig", default=None, help="Path to the kubeconfig file")
    parser.add_argument("--context", default=None, help="The kubeconfig context to use")
    parser.add_argument(
        "-n", "--namespace", default=None, help="Only consider objects in this namespace"
    )
    parser.add_argument(
        "--timeout", type=float, default=None, help="Deadline for the whole run in seconds (default: 360)"
    )
    parser.add_argument(
        "--format", "-f", choices=["text", "json"], default="text", help="Output format"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    dockerhub_parser = subparsers.add_parser("dockerhub", help="Manage Docker Hub webhooks")
    dockerhub_sub = dockerhub_parser.add_subparsers(dest="action", required=True)

    # list command
    list_parser = dockerhub_sub.add_parser(
        "list", help="List the webhooks which will be created"
    )
    list_parser.set_defaults(func=cmd_list)

    # create command
    create_parser = dockerhub_sub.add_parser(
        "create", help="Create webhooks from receivers pointing to Docker Hub repositories"
    )
    create_parser.add_argument("--hub-username", help="Docker Hub username")
    create_parser.add_argument("--hub-password", help="Docker Hub password")
    create_parser.add_argument("--receiver-base-url", help="Flux webhook receiver base url")
    create_parser.add_argument(
        "--page-size", type=int, default=None, help="Webhooks fetched per repository (default: 100)"
    )
    create_parser.add_argument(
        "--dry-run", action="store_true", help="Report missing webhooks without creating them"
    )
    create_parser.set_defaults(func=cmd_create)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args)
        setup_logging(config.log_level, json_format=config.log_json)
        return args.func(args, config)
    except FluxWebhooksError as e:
        err_console.print(f"[red]Error:[/red] {escape(e.message)}", highlight=False)
        return 1


if __name__ == "__main__":
    sys.exit(main())
