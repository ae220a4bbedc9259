"""Journal entry commands."""

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit, resolve_optional_account_or_exit
from ledgerkit.cli.date_filters import parse_date_option, resolve_cli_date_range
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.compensation import CompensationService
from ledgerkit.domain.entities import EntryStatus, JournalEntry, JournalLineInput
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.journal import JournalService
from ledgerkit.utils.money import ZERO, parse_amount


@click.group()
def journal_group():
    """Post, void and browse journal entries."""
    pass


def _parse_line(ctx, account_service: AccountService, raw: str) -> JournalLineInput:
    """Parse ACCOUNT:DEBIT:CREDIT[:MEMO] into a line input."""
    parts = raw.split(":", 3)
    if len(parts) < 3:
        click.echo(f"Error: Invalid line '{raw}'. Expected ACCOUNT:DEBIT:CREDIT[:MEMO]", err=True)
        ctx.exit(1)

    account_id = resolve_account_or_exit(ctx, account_service, parts[0])
    try:
        debit = parse_amount(parts[1]) if parts[1].strip() else ZERO
        credit = parse_amount(parts[2]) if parts[2].strip() else ZERO
    except ValueError as e:
        click.echo(f"Error: Invalid amount in line '{raw}': {e}", err=True)
        ctx.exit(1)

    memo = parts[3] if len(parts) == 4 and parts[3] else None
    return JournalLineInput(account_id=account_id, debit=debit, credit=credit, memo=memo)


def _echo_entry(db, entry: JournalEntry) -> None:
    account_service = AccountService(db)
    status = entry.status.value.upper()
    click.echo(f"Entry {entry.id} | {entry.date} | {status} | {entry.description}")
    if entry.reference:
        click.echo(f"  Reference: {entry.reference}")
    if entry.reversal_of_id:
        click.echo(f"  Reverses entry {entry.reversal_of_id}")
    if entry.reversed_by_id:
        click.echo(f"  Reversed by entry {entry.reversed_by_id}")
    for line in entry.lines:
        acc = account_service.get_account(line.account_id)
        debit = f"{line.debit:,.2f}" if line.debit else ""
        credit = f"{line.credit:,.2f}" if line.credit else ""
        memo = f"  {line.memo}" if line.memo else ""
        click.echo(f"  {acc.code:6s} {acc.name:28s} {debit:>12s} {credit:>12s}{memo}")
    click.echo(f"  {'Total':35s} {entry.total_debit:>12,.2f} {entry.total_credit:>12,.2f}")


@journal_group.command("post")
@click.option("--date", "entry_date", default="today", help="Entry date (YYYY-MM-DD or 'today', 'yesterday')")
@click.option("--description", required=True, help="Entry description")
@click.option("--reference", help="External reference (invoice or check number)")
@click.option(
    "--line",
    "lines",
    multiple=True,
    required=True,
    help="Line as ACCOUNT:DEBIT:CREDIT[:MEMO]; repeat for each line",
)
@click.option("--draft", is_flag=True, help="Save as a draft without touching balances")
@click.pass_context
def post_entry(ctx, entry_date: str, description: str, reference: str | None, lines: tuple[str, ...], draft: bool):
    """Post a manual journal entry.

    Total debits must equal total credits.

    Examples:
        ledgerkit journal post --description "Owner investment" --line 1000:5000: --line 3100::5000
        ledgerkit journal post --description "Rent" --line "6100:1200::March" --line 1000::1200 --draft
    """
    db = ctx.obj["db"]
    service = JournalService(db)
    account_service = AccountService(db)

    posted_date = parse_date_option(ctx, entry_date, "date")
    line_inputs = [_parse_line(ctx, account_service, raw) for raw in lines]

    try:
        if draft:
            entry = service.create_draft(posted_date, description, line_inputs, reference=reference)
            click.echo(f"Saved draft entry {entry.id}")
        else:
            entry = service.post_entry(posted_date, description, line_inputs, reference=reference)
            click.echo(f"Posted entry {entry.id} ({entry.total_debit:,.2f})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("post-draft")
@click.argument("entry_id", type=int)
@click.pass_context
def post_draft(ctx, entry_id: int):
    """Post a draft entry."""
    db = ctx.obj["db"]
    service = JournalService(db)

    try:
        entry = service.post_draft(entry_id)
        click.echo(f"Posted entry {entry.id} ({entry.total_debit:,.2f})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("void")
@click.argument("entry_id", type=int)
@click.option("--date", "void_date", help="Date of the reversing entry (defaults to the original date)")
@click.pass_context
def void_entry(ctx, entry_id: int, void_date: str | None):
    """Void an entry by posting its reversal."""
    db = ctx.obj["db"]
    service = JournalService(db)

    try:
        entry = service.void_entry(entry_id, void_date=parse_date_option(ctx, void_date, "date"))
        click.echo(f"Voided entry {entry.id} (reversal: {entry.reversed_by_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("show")
@click.argument("entry_id", type=int)
@click.pass_context
def show_entry(ctx, entry_id: int):
    """Show an entry with its lines."""
    db = ctx.obj["db"]
    service = JournalService(db)

    try:
        entry = service.get_entry(entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    _echo_entry(db, entry)


@journal_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'yesterday')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.option("--status", type=click.Choice([s.value for s in EntryStatus]), help="Only entries with this status")
@click.option("--account", help="Only entries touching this account (code or ID)")
@click.option("--limit", type=int, default=50, show_default=True, help="Maximum number of entries")
@click.option("--verbose", "-v", is_flag=True, help="Show lines")
@click.pass_context
def list_entries(
    ctx,
    start_date: str | None,
    end_date: str | None,
    status: str | None,
    account: str | None,
    limit: int,
    verbose: bool,
):
    """List journal entries, newest first."""
    db = ctx.obj["db"]
    service = JournalService(db)

    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date)
    account_id = resolve_optional_account_or_exit(ctx, AccountService(db), account)

    shown = 0
    for entry in service.list_entries(start_date=start, end_date=end, status=status, account_id=account_id):
        if shown >= limit:
            break
        if verbose:
            _echo_entry(db, entry)
        else:
            click.echo(
                f"{entry.id:5d} | {entry.date} | {entry.status.value:6s} | "
                f"{entry.total_debit:>12,.2f} | {entry.description}"
            )
        shown += 1

    if shown == 0:
        click.echo("No journal entries found.")


@journal_group.command("record-deal")
@click.argument("advisor_id")
@click.argument("revenue")
@click.option("--rate", "commission_rate", default="0", help="Commission rate as a fraction (e.g. 0.5)")
@click.option("--description", required=True, help="Deal description")
@click.option("--date", "deal_date", default="today", help="Entry date")
@click.pass_context
def record_deal(ctx, advisor_id: str, revenue: str, commission_rate: str, description: str, deal_date: str):
    """Book revenue from a closed deal and the advisor's commission."""
    db = ctx.obj["db"]
    service = CompensationService(db)

    try:
        entry = service.record_deal(
            revenue=parse_amount(revenue),
            advisor_id=advisor_id,
            commission_rate=commission_rate,
            description=description,
            date=parse_date_option(ctx, deal_date, "date"),
        )
        click.echo(f"Posted entry {entry.id} ({entry.reference})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@journal_group.command("pay-advisor")
@click.argument("advisor_id")
@click.argument("amount")
@click.option("--name", "advisor_name", help="Advisor display name")
@click.option("--date", "payout_date", default="today", help="Entry date")
@click.pass_context
def pay_advisor(ctx, advisor_id: str, amount: str, advisor_name: str | None, payout_date: str):
    """Pay out commission owed to an advisor."""
    db = ctx.obj["db"]
    service = CompensationService(db)

    try:
        entry = service.pay_advisor(
            advisor_id,
            parse_amount(amount),
            advisor_name=advisor_name,
            date=parse_date_option(ctx, payout_date, "date"),
        )
        click.echo(f"Posted entry {entry.id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")
