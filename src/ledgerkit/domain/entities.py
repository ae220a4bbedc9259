"""Domain model entities for ledgerkit.

These are pure data classes representing business concepts, independent of
database schema. Enumerations use string values so they persist and print
without translation tables.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


FIRM_OWNER = "company"


class AccountType(str, Enum):
    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    EXPENSE = "Expense"


class NormalBalance(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class EntryStatus(str, Enum):
    DRAFT = "draft"
    POSTED = "posted"
    VOID = "void"


class BankAccountType(str, Enum):
    CHECKING = "Checking"
    SAVINGS = "Savings"
    CREDIT_CARD = "Credit Card"


class BankAccountStatus(str, Enum):
    ACTIVE = "active"
    ERROR = "error"
    DISCONNECTED = "disconnected"


class BankTransactionStatus(str, Enum):
    PENDING = "pending"
    POSTED = "posted"
    RECONCILED = "reconciled"


class RuleField(str, Enum):
    MERCHANT = "merchant"
    AMOUNT = "amount"
    DESCRIPTION = "description"


class RuleOperator(str, Enum):
    CONTAINS = "contains"
    EQUALS = "equals"
    GREATER_THAN = "greater_than"


class Role(str, Enum):
    ADMIN = "admin"
    ADVISOR = "advisor"
    CLIENT = "client"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller supplied by the CRM layer."""

    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class Account:
    """General ledger account with its running balance."""

    id: int
    code: str
    name: str
    account_type: AccountType
    category: str
    normal_balance: NormalBalance
    balance: Decimal
    status: AccountStatus
    description: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class JournalLineInput:
    """Line of an entry that has not been posted yet."""

    account_id: int
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    memo: Optional[str] = None
    advisor_id: Optional[str] = None


@dataclass(frozen=True)
class JournalLine:
    """Persisted journal line."""

    id: int
    entry_id: int
    line_number: int
    account_id: int
    debit: Decimal
    credit: Decimal
    memo: Optional[str]
    advisor_id: Optional[str]


@dataclass(frozen=True)
class JournalEntry:
    """Journal entry with its ordered lines."""

    id: int
    date: date
    description: str
    reference: Optional[str]
    status: EntryStatus
    created_at: datetime
    lines: tuple[JournalLine, ...] = ()
    reversal_of_id: Optional[int] = None
    reversed_by_id: Optional[int] = None

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0"))


@dataclass(frozen=True)
class TaxConfig:
    """Tax rate and the accounts it accrues to."""

    id: int
    name: str
    rate: Decimal
    liability_account_id: int
    expense_account_id: int
    jurisdiction: str
    created_at: datetime


@dataclass(frozen=True)
class TaxLines:
    """Line inputs produced by the tax calculator."""

    tax_amount: Decimal
    liability_line: JournalLineInput
    expense_line: JournalLineInput


@dataclass(frozen=True)
class BankAccount:
    """Mirror of an account held at an external financial institution."""

    id: int
    owner_id: str
    institution_name: str
    name: str
    masked_number: str
    account_type: BankAccountType
    balance: Decimal
    last_synced_at: Optional[datetime]
    status: BankAccountStatus
    gl_account_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class BankTransaction:
    """Raw transaction delivered by a bank feed."""

    id: int
    bank_account_id: int
    date: date
    merchant: str
    amount: Decimal
    status: BankTransactionStatus
    description: Optional[str] = None
    external_id: Optional[str] = None
    category: Optional[str] = None
    receipt_reference: Optional[str] = None
    journal_entry_id: Optional[int] = None
    is_rule_match: bool = False
    matched_rule_id: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class FeedRecord:
    """Already-parsed record delivered by an external bank feed."""

    date: date
    merchant: str
    amount: Decimal
    description: Optional[str] = None
    external_id: Optional[str] = None


@dataclass(frozen=True)
class RuleCondition:
    field: RuleField
    operator: RuleOperator
    value: str


@dataclass(frozen=True)
class BankRule:
    """User-defined matching rule; priority gives its place in the list."""

    id: int
    owner_id: str
    name: str
    conditions: tuple[RuleCondition, ...]
    assign_category: str
    priority: int
    created_at: datetime


@dataclass(frozen=True)
class ExpenseCategory:
    """Category linked to a general ledger account."""

    id: int
    name: str
    gl_account_id: int
    tax_deductible: bool
    keywords: tuple[str, ...] = field(default_factory=tuple)
    tax_config_id: Optional[int] = None


@dataclass(frozen=True)
class FinancialSummary:
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal


@dataclass(frozen=True)
class TaxEstimate:
    taxable_income: Decimal
    estimated_tax: Decimal
    rate: Decimal
