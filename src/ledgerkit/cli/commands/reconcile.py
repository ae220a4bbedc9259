"""Reconcile command."""

import click
from ledgerkit.cli.error_handling import echo_domain_error, handle_domain_error
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.reconciliation import ReconciliationService


@click.command("reconcile")
@click.argument("transaction_ids", type=int, nargs=-1, required=True)
@click.option("--category", help="Expense category overriding rules and keywords")
@click.pass_context
def reconcile(ctx, transaction_ids: tuple[int, ...], category: str | None):
    """Reconcile bank transactions into the journal.

    The category is taken from --category, then the transaction's stored
    category, then the first matching bank rule, then merchant keywords.

    Examples:
        ledgerkit reconcile 12
        ledgerkit reconcile 12 13 --category "Office Supplies"
    """
    db = ctx.obj["db"]
    service = ReconciliationService(db)

    failed = 0
    for transaction_id in transaction_ids:
        try:
            txn = service.reconcile(transaction_id, explicit_category=category)
            click.echo(
                f"Reconciled transaction {txn.id} as '{txn.category}' (entry {txn.journal_entry_id})"
            )
        except DomainError as e:
            if len(transaction_ids) == 1:
                handle_domain_error(ctx, e)
            echo_domain_error(e, prefix=f"transaction {transaction_id}: ")
            failed += 1

    if failed:
        ctx.exit(1)


def register_commands(cli):
    """Register reconcile command with main CLI."""
    cli.add_command(reconcile)
