"""Main CLI entry point."""

import click
from ledgerkit.database.factories import create_sqlite_database
from ledgerkit.domain.entities import FIRM_OWNER, Principal, Role
from ledgerkit.logging_config import configure_logging

# Import and register all commands at module level
from ledgerkit.cli.commands import (
    account,
    bank,
    category,
    init_ledger,
    journal,
    reconcile,
    report,
    rule,
    tax,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERKIT_DB_PATH environment variable)",
    envvar="LEDGERKIT_DB_PATH",
)
@click.option(
    "--user",
    default=FIRM_OWNER,
    show_default=True,
    envvar="LEDGERKIT_USER",
    help="Id of the user issuing the command",
)
@click.option(
    "--role",
    type=click.Choice([role.value for role in Role]),
    default=Role.ADVISOR.value,
    show_default=True,
    envvar="LEDGERKIT_ROLE",
    help="Role of the user issuing the command",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="LEDGERKIT_LOG_LEVEL",
    help="Level of the JSON log written to stderr",
)
@click.pass_context
def cli(ctx, db_path: str | None, user: str, role: str, log_level: str):
    """Ledgerkit - double-entry ledger and bank reconciliation.

    Keep a chart of accounts, post balanced journal entries, ingest bank
    feed transactions and reconcile them into the ledger through rules
    and expense categories.
    """
    ctx.ensure_object(dict)
    configure_logging(log_level)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.obj["principal"] = Principal(user_id=user, role=Role(role))
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
journal.register_commands(cli)
bank.register_commands(cli)
rule.register_commands(cli)
category.register_commands(cli)
tax.register_commands(cli)
report.register_commands(cli)
reconcile.register_commands(cli)
init_ledger.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
