"""Report commands."""

import click
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.compensation import CompensationService
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.tax import TaxService


@click.group()
def report_group():
    """Financial reports."""
    pass


@report_group.command("financials")
@click.pass_context
def financials(ctx):
    """Show totals by account type and net income."""
    db = ctx.obj["db"]
    summary = AccountService(db).calculate_financials()

    click.echo("\nFinancial summary:")
    click.echo("-" * 40)
    click.echo(f"{'Total assets':20s} {summary.total_assets:>18,.2f}")
    click.echo(f"{'Total liabilities':20s} {summary.total_liabilities:>18,.2f}")
    click.echo(f"{'Total equity':20s} {summary.total_equity:>18,.2f}")
    click.echo(f"{'Revenue':20s} {summary.total_revenue:>18,.2f}")
    click.echo(f"{'Expenses':20s} {summary.total_expenses:>18,.2f}")
    click.echo("-" * 40)
    click.echo(f"{'Net income':20s} {summary.net_income:>18,.2f}")


@report_group.command("advisor-balance")
@click.argument("advisor_id")
@click.pass_context
def advisor_balance(ctx, advisor_id: str):
    """Show the commission owed to an advisor."""
    db = ctx.obj["db"]

    try:
        balance = CompensationService(db).advisor_balance(advisor_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Commission owed to {advisor_id}: {balance:,.2f}")


@report_group.command("estimate-tax")
@click.argument("advisor_id")
@click.argument("tax_config_id", type=int)
@click.pass_context
def estimate_tax(ctx, advisor_id: str, tax_config_id: int):
    """Estimate an advisor's tax from payouts and deductible expenses."""
    db = ctx.obj["db"]

    try:
        estimate = TaxService(db).estimate_tax(advisor_id, tax_config_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Taxable income: {estimate.taxable_income:,.2f}")
    click.echo(f"Estimated tax:  {estimate.estimated_tax:,.2f} (rate {estimate.rate})")


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
