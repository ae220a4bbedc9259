"""Bank account and bank feed commands."""

import csv
from pathlib import Path

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit, resolve_optional_account_or_exit
from ledgerkit.cli.date_filters import parse_date_option, resolve_cli_date_range
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.bank import BankLedgerService
from ledgerkit.domain.entities import (
    BankAccountStatus,
    BankAccountType,
    BankTransactionStatus,
    FeedRecord,
)
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.rules import BankRuleService
from ledgerkit.utils.date_parser import parse_date
from ledgerkit.utils.money import parse_amount

FEED_COLUMNS = ("date", "merchant", "amount")


@click.group()
def bank_group():
    """Manage bank accounts and their transactions."""
    pass


@bank_group.command("connect")
@click.argument("institution")
@click.argument("name")
@click.argument("account_number")
@click.option(
    "--type",
    "account_type",
    type=click.Choice([t.value for t in BankAccountType]),
    default=BankAccountType.CHECKING.value,
    show_default=True,
    help="Bank account type",
)
@click.option("--owner", help="Owner id (defaults to the current user)")
@click.option("--clearing-account", help="Ledger account (code or ID) the bank account reconciles against")
@click.option("--balance", default="0", help="Balance reported by the bank")
@click.pass_context
def connect_bank_account(
    ctx,
    institution: str,
    name: str,
    account_number: str,
    account_type: str,
    owner: str | None,
    clearing_account: str | None,
    balance: str,
):
    """Connect a bank account; only the last four digits are stored.

    Examples:
        ledgerkit bank connect "Chase" "Operating" 000123456789 --clearing-account 1000
        ledgerkit --user adv-1 bank connect "Amex" "Card" 3782-8224-6310-005 --type "Credit Card"
    """
    db = ctx.obj["db"]
    service = BankLedgerService(db)

    gl_account_id = resolve_optional_account_or_exit(ctx, AccountService(db), clearing_account)

    try:
        bank_account = service.connect_bank_account(
            owner_id=owner or ctx.obj["principal"].user_id,
            institution_name=institution,
            name=name,
            account_number=account_number,
            account_type=account_type,
            balance=parse_amount(balance),
            gl_account_id=gl_account_id,
        )
        click.echo(
            f"Connected bank account '{bank_account.name}' {bank_account.masked_number} (ID: {bank_account.id})"
        )
    except ValueError as e:
        handle_domain_error(ctx, e)


@bank_group.command("list")
@click.option("--owner", help="Only bank accounts of this owner")
@click.pass_context
def list_bank_accounts(ctx, owner: str | None):
    """List bank accounts."""
    db = ctx.obj["db"]
    service = BankLedgerService(db)

    bank_accounts = service.list_bank_accounts(owner_id=owner)
    if not bank_accounts:
        click.echo("No bank accounts found.")
        return

    click.echo("\nBank accounts:")
    click.echo("-" * 78)
    for acc in bank_accounts:
        synced = acc.last_synced_at.strftime("%Y-%m-%d %H:%M") if acc.last_synced_at else "never"
        click.echo(
            f"ID: {acc.id:3d} | {acc.institution_name:12s} | {acc.name:16s} | {acc.masked_number} | "
            f"{acc.owner_id:10s} | {acc.balance:>12,.2f} | {acc.status.value} | synced {synced}"
        )


@bank_group.command("update")
@click.argument("bank_account_id", type=int)
@click.option("--name", help="New display name")
@click.option("--status", type=click.Choice([s.value for s in BankAccountStatus]), help="Connection status")
@click.option("--clearing-account", help="Ledger account (code or ID) the bank account reconciles against")
@click.option("--balance", help="Balance reported by the bank")
@click.pass_context
def update_bank_account(
    ctx,
    bank_account_id: int,
    name: str | None,
    status: str | None,
    clearing_account: str | None,
    balance: str | None,
):
    """Update a bank account."""
    db = ctx.obj["db"]
    service = BankLedgerService(db)

    changes = {}
    if name is not None:
        changes["name"] = name
    if status is not None:
        changes["status"] = status
    if clearing_account is not None:
        changes["gl_account_id"] = resolve_account_or_exit(ctx, AccountService(db), clearing_account)

    try:
        if balance is not None:
            changes["balance"] = parse_amount(balance)
        if not changes:
            click.echo("Nothing to update.")
            return
        service.update_bank_account(bank_account_id, changes)
        click.echo(f"Updated bank account {bank_account_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@bank_group.command("add-transaction")
@click.argument("bank_account_id", type=int)
@click.option("--date", "txn_date", default="today", help="Transaction date")
@click.option("--merchant", required=True, help="Merchant name")
@click.option("--amount", required=True, help="Signed amount; negative is money out (e.g. -6.25)")
@click.option("--description", help="Description")
@click.option("--external-id", help="Id assigned by the bank feed")
@click.option(
    "--status",
    type=click.Choice([BankTransactionStatus.PENDING.value, BankTransactionStatus.POSTED.value]),
    default=BankTransactionStatus.PENDING.value,
    show_default=True,
)
@click.pass_context
def add_transaction(
    ctx,
    bank_account_id: int,
    txn_date: str,
    merchant: str,
    amount: str,
    description: str | None,
    external_id: str | None,
    status: str,
):
    """Record a single bank transaction."""
    db = ctx.obj["db"]
    service = BankLedgerService(db)

    try:
        txn = service.record_transaction(
            bank_account_id,
            date=parse_date_option(ctx, txn_date, "date"),
            merchant=merchant,
            amount=parse_amount(amount),
            description=description,
            external_id=external_id,
            status=status,
        )
        click.echo(f"Recorded transaction {txn.id}: {txn.merchant} {txn.amount:,.2f}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def _read_feed_file(csv_file: Path) -> list[FeedRecord]:
    """Read feed records from a CSV file with date, merchant and amount columns.

    Cells that do not parse are passed through unchanged so that the
    import reports them per record.
    """
    records = []
    with open(csv_file, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        missing = [col for col in FEED_COLUMNS if col not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"CSV file is missing column(s): {', '.join(missing)}")

        for row in reader:
            raw_date, raw_amount = row["date"] or "", row["amount"] or ""
            try:
                txn_date = parse_date(raw_date)
            except ValueError:
                txn_date = raw_date
            try:
                amount = parse_amount(raw_amount)
            except ValueError:
                amount = raw_amount
            records.append(
                FeedRecord(
                    date=txn_date,
                    merchant=row["merchant"],
                    amount=amount,
                    description=row.get("description") or None,
                    external_id=row.get("external_id") or None,
                )
            )
    return records


@bank_group.command("import")
@click.argument("bank_account_id", type=int)
@click.argument("csv_file", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def import_feed(ctx, bank_account_id: int, csv_file: Path):
    """Import a bank feed export.

    The CSV needs date, merchant and amount columns; description and
    external_id are optional. Rows whose external_id was imported before
    are skipped.

    Examples:
        ledgerkit bank import 1 feed.csv
    """
    db = ctx.obj["db"]
    service = BankLedgerService(db)

    try:
        records = _read_feed_file(csv_file)
        result = service.import_feed(bank_account_id, records)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Imported {len(result['imported'])} transaction(s), skipped {result['skipped']} duplicate(s).")
    if result["errors"]:
        click.echo(f"{len(result['errors'])} record(s) rejected:", err=True)
        for error in result["errors"]:
            click.echo(f"  {error}", err=True)


@bank_group.command("transactions")
@click.option("--account", "bank_account_id", type=int, help="Bank account ID")
@click.option("--owner", help="Only transactions of this owner's bank accounts")
@click.option("--status", type=click.Choice([s.value for s in BankTransactionStatus]))
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'yesterday')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.pass_context
def list_transactions(
    ctx,
    bank_account_id: int | None,
    owner: str | None,
    status: str | None,
    start_date: str | None,
    end_date: str | None,
):
    """List bank transactions, newest first."""
    db = ctx.obj["db"]
    service = BankLedgerService(db)

    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date)
    transactions = service.list_transactions(
        bank_account_id=bank_account_id,
        status=status,
        start_date=start,
        end_date=end,
        owner_id=owner,
    )
    if not transactions:
        click.echo("No transactions found.")
        return

    for txn in transactions:
        category = txn.category or "-"
        if txn.is_rule_match:
            category += " (rule)"
        entry = f" | entry {txn.journal_entry_id}" if txn.journal_entry_id else ""
        click.echo(
            f"{txn.id:5d} | {txn.date} | {txn.merchant[:28]:28s} | {txn.amount:>10,.2f} | "
            f"{txn.status.value:10s} | {category}{entry}"
        )


@bank_group.command("update-transaction")
@click.argument("transaction_id", type=int)
@click.option("--date", "txn_date", help="Transaction date")
@click.option("--merchant", help="Merchant name")
@click.option("--description", help="Description")
@click.option("--amount", help="Signed amount")
@click.option(
    "--status",
    type=click.Choice([BankTransactionStatus.PENDING.value, BankTransactionStatus.POSTED.value]),
)
@click.option("--category", help="Expense category name")
@click.option("--receipt", help="Receipt reference")
@click.pass_context
def update_transaction(
    ctx,
    transaction_id: int,
    txn_date: str | None,
    merchant: str | None,
    description: str | None,
    amount: str | None,
    status: str | None,
    category: str | None,
    receipt: str | None,
):
    """Update a bank transaction.

    Amount, date and status cannot change once it is reconciled.
    """
    db = ctx.obj["db"]
    service = BankLedgerService(db)

    changes = {}
    if txn_date is not None:
        changes["date"] = parse_date_option(ctx, txn_date, "date")
    for key, value in (
        ("merchant", merchant),
        ("description", description),
        ("status", status),
        ("category", category),
        ("receipt_reference", receipt),
    ):
        if value is not None:
            changes[key] = value

    try:
        if amount is not None:
            changes["amount"] = parse_amount(amount)
        if not changes:
            click.echo("Nothing to update.")
            return
        service.update_transaction(transaction_id, changes)
        click.echo(f"Updated transaction {transaction_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@bank_group.command("apply-rules")
@click.argument("bank_account_id", type=int)
@click.pass_context
def apply_rules(ctx, bank_account_id: int):
    """Suggest categories for uncategorized transactions using bank rules."""
    db = ctx.obj["db"]

    try:
        BankLedgerService(db).get_bank_account(bank_account_id)
        suggested = BankRuleService(db).apply_rules(bank_account_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Categorized {suggested} transaction(s).")


def register_commands(cli):
    """Register bank commands with main CLI."""
    cli.add_command(bank_group, name="bank")
