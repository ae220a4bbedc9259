"""Shared pytest fixtures for ledgerkit tests."""

import os
import tempfile
from datetime import date
from pathlib import Path

import pytest

from ledgerkit.database.factories import create_sqlite_database
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.bank import BankLedgerService
from ledgerkit.domain.category import ExpenseCategoryService
from ledgerkit.domain.entities import FIRM_OWNER, Principal, Role
from ledgerkit.domain.journal import JournalService
from ledgerkit.domain.reconciliation import ReconciliationService
from ledgerkit.domain.rules import BankRuleService
from ledgerkit.domain.tax import TaxService
from ledgerkit.logging_config import reset_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    """Drop handlers installed by CLI invocations."""
    yield
    reset_logging()


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def admin():
    """An administrator principal."""
    return Principal(user_id="admin-1", role=Role.ADMIN)


@pytest.fixture
def advisor():
    """An advisor principal."""
    return Principal(user_id="adv-1", role=Role.ADVISOR)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def journal_service(temp_db):
    """Create a JournalService with a temporary database."""
    return JournalService(temp_db)


@pytest.fixture
def tax_service(temp_db):
    """Create a TaxService with a temporary database."""
    return TaxService(temp_db)


@pytest.fixture
def bank_service(temp_db):
    """Create a BankLedgerService with a temporary database."""
    return BankLedgerService(temp_db)


@pytest.fixture
def category_service(temp_db):
    """Create an ExpenseCategoryService with a temporary database."""
    return ExpenseCategoryService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    """Create a BankRuleService with a temporary database."""
    return BankRuleService(temp_db)


@pytest.fixture
def reconciliation_service(temp_db):
    """Create a ReconciliationService with a temporary database."""
    return ReconciliationService(temp_db)


@pytest.fixture
def two_accounts(account_service, admin):
    """A1 (Bank - Checking, asset) and A2 (Office Supplies, expense), both debit-normal."""
    a1 = account_service.create_account(admin, "A1", "Bank - Checking", "Asset", "Current Assets", "debit")
    a2 = account_service.create_account(admin, "A2", "Office Supplies", "Expense", "Operating Expenses", "debit")
    return a1, a2


@pytest.fixture
def seeded_ledger(temp_db, admin):
    """Standard chart of accounts, categories, tax config and rules."""
    from ledgerkit.cli.commands.init_ledger import seed_ledger

    seed_ledger(temp_db, admin)
    return temp_db


@pytest.fixture
def company_bank(seeded_ledger, bank_service, account_service):
    """The firm's checking account, reconciling against 1000 Business Checking."""
    return bank_service.connect_bank_account(
        owner_id=FIRM_OWNER,
        institution_name="Chase",
        name="Operating",
        account_number="000123454021",
        account_type="Checking",
        gl_account_id=account_service.get_account_by_code("1000").id,
    )


@pytest.fixture
def starbucks_txn(company_bank, bank_service):
    """STARBUCKS #4021 for -6.25."""
    return bank_service.record_transaction(
        company_bank.id,
        date=date(2024, 3, 4),
        merchant="STARBUCKS #4021",
        amount="-6.25",
    )


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"
