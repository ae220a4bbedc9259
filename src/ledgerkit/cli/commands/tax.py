"""Tax configuration commands."""

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.tax import TaxService
from ledgerkit.utils.money import parse_amount


@click.group()
def tax_group():
    """Manage tax configurations."""
    pass


@tax_group.command("create")
@click.argument("name")
@click.option("--rate", required=True, help="Rate as a fraction (e.g. 0.21)")
@click.option("--liability", required=True, help="Liability account (code or ID)")
@click.option("--expense", required=True, help="Expense account (code or ID)")
@click.option("--jurisdiction", default="", help="Jurisdiction (e.g. Federal)")
@click.pass_context
def create_tax_config(ctx, name: str, rate: str, liability: str, expense: str, jurisdiction: str):
    """Create a tax configuration.

    Examples:
        ledgerkit --role admin tax create "Corporate Tax" --rate 0.21 --liability 2100 --expense 8000
    """
    db = ctx.obj["db"]
    service = TaxService(db)
    account_service = AccountService(db)

    try:
        config = service.create_tax_config(
            ctx.obj["principal"],
            name=name,
            rate=rate,
            liability_account_id=resolve_account_or_exit(ctx, account_service, liability),
            expense_account_id=resolve_account_or_exit(ctx, account_service, expense),
            jurisdiction=jurisdiction,
        )
        click.echo(f"Created tax config '{config.name}' (ID: {config.id}, rate {config.rate})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@tax_group.command("update")
@click.argument("tax_config_id", type=int)
@click.option("--name", help="New name")
@click.option("--rate", help="New rate as a fraction")
@click.option("--liability", help="Liability account (code or ID)")
@click.option("--expense", help="Expense account (code or ID)")
@click.option("--jurisdiction", help="Jurisdiction")
@click.pass_context
def update_tax_config(
    ctx,
    tax_config_id: int,
    name: str | None,
    rate: str | None,
    liability: str | None,
    expense: str | None,
    jurisdiction: str | None,
):
    """Update a tax configuration."""
    db = ctx.obj["db"]
    service = TaxService(db)
    account_service = AccountService(db)

    changes = {}
    if name is not None:
        changes["name"] = name
    if rate is not None:
        changes["rate"] = rate
    if jurisdiction is not None:
        changes["jurisdiction"] = jurisdiction
    if liability is not None:
        changes["liability_account_id"] = resolve_account_or_exit(ctx, account_service, liability)
    if expense is not None:
        changes["expense_account_id"] = resolve_account_or_exit(ctx, account_service, expense)
    if not changes:
        click.echo("Nothing to update.")
        return

    try:
        config = service.update_tax_config(ctx.obj["principal"], tax_config_id, changes)
        click.echo(f"Updated tax config '{config.name}' (rate {config.rate})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@tax_group.command("list")
@click.pass_context
def list_tax_configs(ctx):
    """List tax configurations."""
    db = ctx.obj["db"]
    service = TaxService(db)
    account_service = AccountService(db)

    configs = service.list_tax_configs()
    if not configs:
        click.echo("No tax configs found.")
        return

    for config in configs:
        liability = account_service.get_account(config.liability_account_id)
        expense = account_service.get_account(config.expense_account_id)
        click.echo(
            f"ID: {config.id:3d} | {config.name:20s} | {config.rate} | "
            f"Dr {expense.code} / Cr {liability.code} | {config.jurisdiction or '-'}"
        )


@tax_group.command("compute")
@click.argument("tax_config_id", type=int)
@click.argument("amount")
@click.pass_context
def compute_tax(ctx, tax_config_id: int, amount: str):
    """Show the tax lines for a taxable AMOUNT without posting them."""
    db = ctx.obj["db"]
    service = TaxService(db)
    account_service = AccountService(db)

    try:
        lines = service.compute_tax_lines(tax_config_id, parse_amount(amount))
    except ValueError as e:
        handle_domain_error(ctx, e)

    expense = account_service.get_account(lines.expense_line.account_id)
    liability = account_service.get_account(lines.liability_line.account_id)
    click.echo(f"Tax: {lines.tax_amount:,.2f}")
    click.echo(f"  Dr {expense.code} {expense.name}: {lines.expense_line.debit:,.2f}")
    click.echo(f"  Cr {liability.code} {liability.name}: {lines.liability_line.credit:,.2f}")


def register_commands(cli):
    """Register tax commands with main CLI."""
    cli.add_command(tax_group, name="tax")
