"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Iterator, Mapping, Optional, Sequence
from datetime import date
from decimal import Decimal

# Import entities directly, the domain services import this module
from ledgerkit.domain.entities import (
    Account,
    AccountStatus,
    AccountType,
    BankAccount,
    BankRule,
    BankTransaction,
    EntryStatus,
    ExpenseCategory,
    JournalEntry,
    JournalLineInput,
    RuleCondition,
    TaxConfig,
)


class Database(ABC):
    """Abstract database interface for ledgerkit.

    Every write method is atomic: it either commits completely or raises
    and leaves no trace. Postings are serialized so that no two postings
    interleave their balance updates.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def reconciliation_guard(self, transaction_id: int) -> AbstractContextManager[None]:
        """Serialize reconciliation workflows for one bank transaction."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        code: str,
        name: str,
        account_type: str,
        category: str,
        normal_balance: str,
        description: Optional[str] = None,
    ) -> int:
        """Create a ledger account with a zero balance. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_code(self, code: str) -> Optional[Account]:
        """Get account by code."""
        pass

    @abstractmethod
    def list_accounts(
        self, account_type: Optional[AccountType] = None, status: Optional[AccountStatus] = None
    ) -> list[Account]:
        """List accounts ordered by code."""
        pass

    @abstractmethod
    def update_account_status(self, account_id: int, status: AccountStatus) -> None:
        """Change account status."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account that has no journal lines."""
        pass

    @abstractmethod
    def get_account_line_count(self, account_id: int) -> int:
        """Count journal lines of non-draft entries against an account."""
        pass

    @abstractmethod
    def get_account_line_totals(self, account_id: int) -> tuple[Decimal, Decimal]:
        """Sum (debit, credit) of lines of non-draft entries against an account."""
        pass

    @abstractmethod
    def get_advisor_line_totals(self, account_id: int, advisor_id: str) -> tuple[Decimal, Decimal]:
        """Sum (debit, credit) of non-draft lines attributed to an advisor on an account."""
        pass

    # Journal operations
    @abstractmethod
    def create_journal_entry(
        self,
        date: date,
        description: str,
        lines: Sequence[JournalLineInput],
        reference: Optional[str] = None,
        status: EntryStatus = EntryStatus.POSTED,
    ) -> int:
        """Insert an entry; a posted entry applies its balance deltas in the same transaction."""
        pass

    @abstractmethod
    def post_draft_entry(self, entry_id: int) -> None:
        """Move a draft entry to posted and apply its balance deltas atomically."""
        pass

    @abstractmethod
    def void_journal_entry(self, entry_id: int, void_date: date, description: str) -> int:
        """Post the reversing entry and mark the original void. Returns the reversal ID."""
        pass

    @abstractmethod
    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]:
        """Get journal entry with its lines."""
        pass

    @abstractmethod
    def iter_journal_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[EntryStatus] = None,
        account_id: Optional[int] = None,
        reference: Optional[str] = None,
        batch_size: int = 100,
    ) -> Iterator[JournalEntry]:
        """Yield entries ordered by date descending, fetched in batches."""
        pass

    # Tax config operations
    @abstractmethod
    def create_tax_config(
        self,
        name: str,
        rate: Decimal,
        liability_account_id: int,
        expense_account_id: int,
        jurisdiction: str,
    ) -> int:
        """Create a tax config. Returns tax config ID."""
        pass

    @abstractmethod
    def get_tax_config(self, tax_config_id: int) -> Optional[TaxConfig]:
        """Get tax config by ID."""
        pass

    @abstractmethod
    def list_tax_configs(self) -> list[TaxConfig]:
        """List tax configs."""
        pass

    @abstractmethod
    def update_tax_config(self, tax_config_id: int, changes: Mapping[str, Any]) -> None:
        """Apply already validated field changes to a tax config."""
        pass

    # Bank account operations
    @abstractmethod
    def create_bank_account(
        self,
        owner_id: str,
        institution_name: str,
        name: str,
        masked_number: str,
        account_type: str,
        balance: Decimal,
        gl_account_id: Optional[int] = None,
    ) -> int:
        """Create a bank account. Returns bank account ID."""
        pass

    @abstractmethod
    def get_bank_account(self, bank_account_id: int) -> Optional[BankAccount]:
        """Get bank account by ID."""
        pass

    @abstractmethod
    def list_bank_accounts(self, owner_id: Optional[str] = None) -> list[BankAccount]:
        """List bank accounts, optionally filtered by owner."""
        pass

    @abstractmethod
    def update_bank_account(self, bank_account_id: int, changes: Mapping[str, Any]) -> None:
        """Apply already validated field changes to a bank account."""
        pass

    # Bank transaction operations
    @abstractmethod
    def create_bank_transaction(
        self,
        bank_account_id: int,
        date: date,
        merchant: str,
        amount: Decimal,
        status: str,
        description: Optional[str] = None,
        external_id: Optional[str] = None,
    ) -> int:
        """Create a bank transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def get_bank_transaction(self, transaction_id: int) -> Optional[BankTransaction]:
        """Get bank transaction by ID."""
        pass

    @abstractmethod
    def bank_transaction_exists(self, bank_account_id: int, external_id: str) -> bool:
        """Check if a feed record with this external id was already stored."""
        pass

    @abstractmethod
    def update_bank_transaction(self, transaction_id: int, changes: Mapping[str, Any]) -> None:
        """Apply field changes; amount and date are refused once reconciled."""
        pass

    @abstractmethod
    def mark_bank_transaction_reconciled(
        self,
        transaction_id: int,
        category: str,
        journal_entry_id: int,
        matched_rule_id: Optional[int] = None,
        expected_amount: Optional[Decimal] = None,
        expected_date: Optional[date] = None,
    ) -> None:
        """Transition a transaction to reconciled.

        Fails if it already is, or if its amount or date no longer match
        the expected values the journal entry was posted from.
        """
        pass

    @abstractmethod
    def list_bank_transactions(
        self,
        bank_account_id: Optional[int] = None,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        bank_account_ids: Optional[Sequence[int]] = None,
    ) -> list[BankTransaction]:
        """List bank transactions ordered by date descending."""
        pass

    # Expense category operations
    @abstractmethod
    def create_expense_category(
        self,
        name: str,
        gl_account_id: int,
        tax_deductible: bool,
        keywords: Sequence[str],
        tax_config_id: Optional[int] = None,
    ) -> int:
        """Create an expense category. Returns category ID."""
        pass

    @abstractmethod
    def get_expense_category(self, category_id: int) -> Optional[ExpenseCategory]:
        """Get expense category by ID."""
        pass

    @abstractmethod
    def get_expense_category_by_name(self, name: str) -> Optional[ExpenseCategory]:
        """Get expense category by name."""
        pass

    @abstractmethod
    def list_expense_categories(self) -> list[ExpenseCategory]:
        """List expense categories in creation order."""
        pass

    # Bank rule operations
    @abstractmethod
    def create_bank_rule(
        self,
        owner_id: str,
        name: str,
        conditions: Sequence[RuleCondition],
        assign_category: str,
        priority: Optional[int] = None,
    ) -> int:
        """Create a rule, appended after the last rule when priority is None."""
        pass

    @abstractmethod
    def get_bank_rule(self, rule_id: int) -> Optional[BankRule]:
        """Get bank rule by ID."""
        pass

    @abstractmethod
    def list_bank_rules(self, owner_ids: Optional[Sequence[str]] = None) -> list[BankRule]:
        """List rules ordered by priority."""
        pass

    @abstractmethod
    def update_bank_rule(self, rule_id: int, changes: Mapping[str, Any]) -> None:
        """Apply already validated field changes to a rule."""
        pass

    @abstractmethod
    def delete_bank_rule(self, rule_id: int) -> None:
        """Delete a rule and clear references from transactions."""
        pass
