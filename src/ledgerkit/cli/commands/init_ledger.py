"""Initialize the ledger with a standard chart of accounts."""

import click
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.category import ExpenseCategoryService
from ledgerkit.domain.entities import FIRM_OWNER, Principal
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.rules import BankRuleService
from ledgerkit.domain.tax import TaxService

# (code, name, type, category, normal balance)
INITIAL_ACCOUNTS = [
    # Assets
    ("1000", "Business Checking", "Asset", "Cash & Equivalents", "debit"),
    ("1100", "Accounts Receivable", "Asset", "Current Assets", "debit"),
    ("1200", "Undeposited Funds", "Asset", "Current Assets", "debit"),
    # Liabilities
    ("2000", "Accounts Payable", "Liability", "Current Liabilities", "credit"),
    ("2100", "Tax Payable", "Liability", "Current Liabilities", "credit"),
    ("2200", "Commissions Payable", "Liability", "Current Liabilities", "credit"),
    ("2300", "Corporate Credit Card", "Liability", "Current Liabilities", "credit"),
    # Equity
    ("3000", "Retained Earnings", "Equity", "Equity", "credit"),
    ("3100", "Owner Investment", "Equity", "Equity", "credit"),
    # Revenue
    ("4000", "Insurance Commissions", "Revenue", "Revenue", "credit"),
    ("4100", "Real Estate Fees", "Revenue", "Revenue", "credit"),
    # Expenses
    ("5000", "Advisor Commission Exp", "Expense", "Cost of Goods Sold", "debit"),
    ("6100", "Rent Expense", "Expense", "Operating Expenses", "debit"),
    ("6200", "Marketing Expense", "Expense", "Operating Expenses", "debit"),
    ("6300", "Software & CRM", "Expense", "Operating Expenses", "debit"),
    ("6400", "Travel & Meals", "Expense", "Operating Expenses", "debit"),
    ("6500", "Office Supplies", "Expense", "Operating Expenses", "debit"),
    ("8000", "Income Tax Expense", "Expense", "Tax", "debit"),
]

# (name, account code, tax deductible, keywords)
INITIAL_CATEGORIES = [
    ("Office Supplies", "6500", True, ["staples", "office depot", "amazon", "paper", "usps"]),
    ("Travel", "6400", True, ["uber", "delta", "marriott", "airbnb", "hotel", "flight", "shell", "exxon"]),
    ("Meals & Ent", "6400", True, ["starbucks", "restaurant", "cafe", "diner", "grill"]),
    ("Software/CRM", "6300", True, ["adobe", "salesforce", "slack", "zoom", "google", "aws"]),
    ("Marketing", "6200", True, ["facebook ads", "google ads", "linkedin", "print"]),
    ("Rent", "6100", True, ["property management", "lease"]),
    ("Revenue/Income", "4000", False, ["deposit", "payment", "commission"]),
]

# (name, rate, liability code, expense code, jurisdiction)
INITIAL_TAX_CONFIG = ("Corporate Tax", "0.21", "2100", "8000", "Federal")

# (name, merchant keyword, category)
INITIAL_RULES = [
    ("Coffee Shops", "Starbucks", "Meals & Ent"),
    ("Software Subs", "Adobe", "Software/CRM"),
]


def seed_ledger(db, principal: Principal) -> dict[str, int]:
    """Create the default accounts, categories, tax config and rules.

    Returns:
        Number of objects created per kind
    """
    account_service = AccountService(db)
    created = {"accounts": 0, "categories": 0, "tax_configs": 0, "rules": 0}

    for code, name, account_type, category, normal_balance in INITIAL_ACCOUNTS:
        account_service.create_account(principal, code, name, account_type, category, normal_balance)
        created["accounts"] += 1

    category_service = ExpenseCategoryService(db)
    for name, code, deductible, keywords in INITIAL_CATEGORIES:
        category_service.create_category(
            principal,
            name=name,
            gl_account_id=account_service.get_account_by_code(code).id,
            tax_deductible=deductible,
            keywords=keywords,
        )
        created["categories"] += 1

    name, rate, liability_code, expense_code, jurisdiction = INITIAL_TAX_CONFIG
    TaxService(db).create_tax_config(
        principal,
        name=name,
        rate=rate,
        liability_account_id=account_service.get_account_by_code(liability_code).id,
        expense_account_id=account_service.get_account_by_code(expense_code).id,
        jurisdiction=jurisdiction,
    )
    created["tax_configs"] += 1

    rule_service = BankRuleService(db)
    for name, keyword, category in INITIAL_RULES:
        rule_service.create_rule(
            principal,
            name=name,
            conditions=[{"field": "merchant", "operator": "contains", "value": keyword}],
            assign_category=category,
            owner_id=FIRM_OWNER,
        )
        created["rules"] += 1

    return created


@click.command("init-ledger")
@click.pass_context
def init_ledger(ctx):
    """Initialize the database with the standard chart of accounts.

    Also creates the default expense categories, the corporate tax config
    and two starter bank rules. Requires the admin role.
    """
    db = ctx.obj["db"]

    if AccountService(db).list_accounts(include_archived=True):
        click.echo("Accounts already exist. Nothing to do.")
        return

    click.echo("Creating standard chart of accounts...")
    try:
        created = seed_ledger(db, ctx.obj["principal"])
    except DomainError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    click.echo(
        f"Created {created['accounts']} accounts, {created['categories']} categories, "
        f"{created['tax_configs']} tax config and {created['rules']} rules."
    )


def register_commands(cli):
    """Register init-ledger command with main CLI."""
    cli.add_command(init_ledger)
