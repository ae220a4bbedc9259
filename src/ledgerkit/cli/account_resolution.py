"""Resolve ledger account arguments given on the command line."""

from __future__ import annotations

import click
from ledgerkit.domain.account import AccountService
from ledgerkit.utils.account_resolver import resolve_account


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str | int
) -> int:
    """Resolve an account code or ID, or exit with a CLI error."""
    try:
        return resolve_account(account_service, account)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)


def resolve_optional_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str | None
) -> int | None:
    """Like resolve_account_or_exit, but an omitted option stays None.

    Used for filters and links such as --account and --clearing-account.
    """
    if account is None:
        return None
    return resolve_account_or_exit(ctx, account_service, account)
