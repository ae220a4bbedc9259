"""Expense category commands."""

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.category import ExpenseCategoryService
from ledgerkit.domain.errors import DomainError


@click.group()
def category_group():
    """Manage expense categories."""
    pass


@category_group.command("create")
@click.argument("name")
@click.argument("account", metavar="ACCOUNT")
@click.option("--keyword", "keywords", multiple=True, help="Merchant keyword; repeat for several")
@click.option("--not-deductible", is_flag=True, help="Expenses are not tax deductible")
@click.option("--tax-config", "tax_config_id", type=int, help="Tax config applied when reconciling")
@click.pass_context
def create_category(
    ctx,
    name: str,
    account: str,
    keywords: tuple[str, ...],
    not_deductible: bool,
    tax_config_id: int | None,
):
    """Create an expense category booked against ACCOUNT (code or ID).

    Examples:
        ledgerkit --role admin category create "Meals & Ent" 6400 --keyword starbucks --keyword cafe
    """
    db = ctx.obj["db"]
    service = ExpenseCategoryService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        category = service.create_category(
            ctx.obj["principal"],
            name=name,
            gl_account_id=account_id,
            tax_deductible=not not_deductible,
            keywords=keywords,
            tax_config_id=tax_config_id,
        )
        click.echo(f"Created category '{category.name}' (ID: {category.id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@category_group.command("list")
@click.pass_context
def list_categories(ctx):
    """List expense categories."""
    db = ctx.obj["db"]
    service = ExpenseCategoryService(db)
    account_service = AccountService(db)

    categories = service.list_categories()
    if not categories:
        click.echo("No categories found. Run 'ledgerkit init-ledger' to seed defaults.")
        return

    for cat in categories:
        acc = account_service.get_account(cat.gl_account_id)
        flags = []
        if cat.tax_deductible:
            flags.append("deductible")
        if cat.tax_config_id is not None:
            flags.append(f"tax config {cat.tax_config_id}")
        keywords = ", ".join(cat.keywords) or "-"
        click.echo(f"{cat.name:20s} | {acc.code} {acc.name:22s} | {', '.join(flags) or '-':24s} | {keywords}")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
