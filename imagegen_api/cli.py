"""Operator CLI for limiter maintenance.

Operator-only; never exposed over the network.

Usage:
    imagegen-admin clear usage [IDENTIFIER]
    imagegen-admin clear rate [IDENTIFIER]
    imagegen-admin clear all
    imagegen-admin ping
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from typer.core import TyperGroup

from imagegen_api.adapters.store.base import AbstractKeyValueStore
from imagegen_api.adapters.store.factory import create_store
from imagegen_api.core.config import settings
from imagegen_api.core.logging import configure_logging
from imagegen_api.services import maintenance

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AdminGroup(TyperGroup):
    """Treats an unknown command as a ``clear`` target (``imagegen-admin usage``)."""

    def resolve_command(self, ctx, args):
        if args and args[0] not in self.commands:
            args = ["clear", *args]
        return super().resolve_command(ctx, args)


app = typer.Typer(cls=AdminGroup, help="Maintenance commands for the rate limit and usage stores")

CLEAR_USAGE_HELP = """Invalid target. Please use 'usage', 'rate', or 'all'.
Optionally provide an identifier as the next argument to delete a specific key.

Examples:
  imagegen-admin clear usage
  imagegen-admin clear rate your-fingerprint-id
  imagegen-admin clear all"""


@app.callback(invoke_without_command=True)
def root(ctx: typer.Context) -> None:
    """Maintenance commands for the rate limit and usage stores."""
    if ctx.invoked_subcommand is None:
        typer.echo(CLEAR_USAGE_HELP)


def _run(action: Callable[[AbstractKeyValueStore], Awaitable[T]]) -> T:
    """Run an async maintenance action against a fresh store client."""

    async def runner() -> T:
        store = create_store()
        try:
            return await action(store)
        finally:
            await store.close()

    try:
        return asyncio.run(runner())
    except Exception as exc:
        logger.error("cli.command_failed", extra={"error_type": type(exc).__name__, "error_msg": str(exc)})
        typer.echo(f"An error occurred: {exc}", err=True)
        raise typer.Exit(1) from exc


def _report(result: maintenance.ClearResult, prefix: str, identifier: str | None) -> None:
    if identifier:
        if result.found:
            typer.echo(f"Deleted key: {result.pattern}")
        else:
            typer.echo(f'No key found for identifier "{identifier}" with prefix "{prefix}"')
        return

    if result.found:
        typer.echo(f'Deleted {result.deleted} keys with prefix "{prefix}"')
    else:
        typer.echo(f'No keys found with prefix "{prefix}" to delete.')


@app.command()
def clear(
    target: Optional[str] = typer.Argument(None, help="usage, rate or all"),
    identifier: Optional[str] = typer.Argument(None, help="Only clear this identifier's key"),
) -> None:
    """Clear usage counters, rate limit windows, or the whole store.

    Example:
        imagegen-admin clear rate your-fingerprint-id
    """
    prefixes = {
        "usage": settings.app.usage_limit_prefix,
        "rate": settings.app.rate_limit_prefix,
    }

    if target == "all":
        typer.echo("Flushing the entire store database...")
        _run(maintenance.flush_all)
        typer.echo("All keys have been deleted from the store database.")
        return

    prefix = prefixes.get(target or "")
    if prefix is None:
        typer.echo(CLEAR_USAGE_HELP)
        return

    if not identifier:
        typer.echo(f"Scanning for keys with pattern: {prefix}:*")

    result = _run(lambda store: maintenance.clear_by_prefix(store, prefix, identifier))
    _report(result, prefix, identifier)


@app.command()
def ping() -> None:
    """Write a keepalive timestamp to the store."""
    timestamp = _run(maintenance.ping)
    typer.echo(f"Store ping successful. Timestamp set to: {timestamp}")


def main() -> None:
    configure_logging(settings.log)
    app()


if __name__ == "__main__":
    main()
