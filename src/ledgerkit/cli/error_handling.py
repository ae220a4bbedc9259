"""CLI error handling helpers."""

import click

from ledgerkit.domain.errors import (
    AuthorizationError,
    DomainError,
    UnbalancedEntryError,
    UncategorizedTransactionError,
)


def echo_domain_error(error: DomainError | ValueError, prefix: str = "") -> None:
    """Write a domain error, with a hint for the kinds a user can act on, to stderr."""
    click.echo(f"Error: {prefix}{error}", err=True)
    if isinstance(error, UnbalancedEntryError):
        click.echo(f"Difference (debits - credits): {error.delta}", err=True)
    elif isinstance(error, UncategorizedTransactionError):
        click.echo("Hint: pass --category or add a bank rule for this merchant.", err=True)
    elif isinstance(error, AuthorizationError):
        click.echo("Hint: this command needs --role admin.", err=True)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    echo_domain_error(error)
    ctx.exit(1)
