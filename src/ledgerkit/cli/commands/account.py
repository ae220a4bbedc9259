"""Account management commands."""

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import AccountType, NormalBalance
from ledgerkit.domain.errors import DomainError


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("create")
@click.argument("code", metavar="CODE")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    type=click.Choice([t.value for t in AccountType], case_sensitive=False),
    required=True,
    help="Account type",
)
@click.option("--category", default="", help="Grouping label (e.g. 'Current Assets')")
@click.option(
    "--normal-balance",
    type=click.Choice([b.value for b in NormalBalance]),
    help="Normal balance side (defaults to debit for assets and expenses, credit otherwise)",
)
@click.option("--description", help="Account description")
@click.pass_context
def create_account(
    ctx,
    code: str,
    name: str,
    account_type: str,
    category: str,
    normal_balance: str | None,
    description: str | None,
):
    """Create a new account with a zero balance.

    Requires the admin role.

    Examples:
        ledgerkit --role admin account create 1000 "Business Checking" --type Asset
        ledgerkit --role admin account create 2100 "Tax Payable" --type Liability --category "Current Liabilities"
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    account_type = next(t for t in AccountType if t.value.lower() == account_type.lower())
    if normal_balance is None:
        debit_side = account_type in (AccountType.ASSET, AccountType.EXPENSE)
        normal_balance = NormalBalance.DEBIT if debit_side else NormalBalance.CREDIT

    try:
        account = service.create_account(
            ctx.obj["principal"],
            code=code,
            name=name,
            account_type=account_type,
            category=category,
            normal_balance=normal_balance,
            description=description,
        )
        click.echo(f"Created account {account.code} '{account.name}' (ID: {account.id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.option(
    "--type",
    "account_type",
    type=click.Choice([t.value for t in AccountType], case_sensitive=False),
    help="Only show accounts of this type",
)
@click.option("--all", "include_archived", is_flag=True, help="Include archived accounts")
@click.pass_context
def list_accounts(ctx, account_type: str | None, include_archived: bool):
    """List accounts with their balances."""
    db = ctx.obj["db"]
    service = AccountService(db)

    if account_type is not None:
        account_type = next(t for t in AccountType if t.value.lower() == account_type.lower())
    accounts = service.list_accounts(account_type=account_type, include_archived=include_archived)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 78)
    for acc in accounts:
        status = " (archived)" if acc.status.value == "archived" else ""
        click.echo(
            f"{acc.code:6s} | {acc.name:28s} | {acc.account_type.value:9s} | {acc.balance:>14,.2f}{status}"
        )


@account_group.command("show")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def show_account(ctx, account: str) -> None:
    """Show one account.

    ACCOUNT can be an account code or ID.
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)
    acc = service.get_account(account_id)

    click.echo(f"Account {acc.code}: {acc.name}")
    click.echo(f"  Type:           {acc.account_type.value}")
    click.echo(f"  Category:       {acc.category or '-'}")
    click.echo(f"  Normal balance: {acc.normal_balance.value}")
    click.echo(f"  Balance:        {acc.balance:,.2f}")
    click.echo(f"  Status:         {acc.status.value}")
    if acc.description:
        click.echo(f"  Description:    {acc.description}")


@account_group.command("archive")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def archive_account(ctx, account: str) -> None:
    """Archive an account so it accepts no new postings."""
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        acc = service.archive_account(ctx.obj["principal"], account_id)
        click.echo(f"Archived account {acc.code} '{acc.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("activate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def activate_account(ctx, account: str) -> None:
    """Return an archived account to active use."""
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        acc = service.activate_account(ctx.obj["principal"], account_id)
        click.echo(f"Activated account {acc.code} '{acc.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account code or ID.

    The account can only be deleted if no journal entry has ever been
    posted to it. Archive it instead to keep its history.

    Examples:
        ledgerkit --role admin account delete 6500
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)
    acc = service.get_account(account_id)

    if not yes and not click.confirm(f"Are you sure you want to delete account {acc.code} '{acc.name}'?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(ctx.obj["principal"], account_id)
        click.echo(f"Deleted account {acc.code} '{acc.name}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("verify")
@click.pass_context
def verify_balances(ctx) -> None:
    """Recompute balances from posted entries and report drift."""
    db = ctx.obj["db"]
    service = AccountService(db)

    drifted = service.verify_balances()
    if not drifted:
        click.echo("All account balances match posted activity.")
        return

    for acc, expected in drifted:
        click.echo(f"{acc.code} {acc.name}: stored {acc.balance:,.2f}, expected {expected:,.2f}")
    ctx.exit(1)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
