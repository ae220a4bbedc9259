"""Account registry domain service."""

from decimal import Decimal
from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.authorization import require_admin
from ledgerkit.domain.balances import balance_delta
from ledgerkit.domain.entities import (
    Account as AccountEntity,
    AccountStatus,
    AccountType,
    FinancialSummary,
    NormalBalance,
    Principal,
)
from ledgerkit.domain.errors import (
    DuplicateCodeError,
    NotFoundError,
    ValidationError,
    account_code_not_found,
    account_not_found,
    duplicate_account_code,
)
from ledgerkit.logging_config import get_logger

logger = get_logger(__name__)


def _coerce_enum(enum_type, value, label: str):
    try:
        return enum_type(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_type)
        raise ValidationError(f"Invalid {label} '{value}'. Expected one of: {choices}")


class AccountService:
    """Service for the chart of accounts.

    Balances are read-only here; they change only when the journal posts.
    """

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_account(
        self,
        principal: Principal,
        code: str,
        name: str,
        account_type: AccountType | str,
        category: str,
        normal_balance: NormalBalance | str,
        description: Optional[str] = None,
    ) -> AccountEntity:
        """Create a new account with a zero balance.

        Args:
            principal: Caller; must be an administrator
            code: Unique human-readable code (e.g. "1000")
            name: Account name
            account_type: Asset, Liability, Equity, Revenue or Expense
            category: Free-form grouping label
            normal_balance: "debit" or "credit"; fixed for the account's lifetime
            description: Optional description

        Returns:
            The created account

        Raises:
            AuthorizationError: If the caller is not an administrator
            DuplicateCodeError: If the code is already used
            ValidationError: If a field is empty or not a valid choice
        """
        require_admin(principal, "create accounts")

        code = (code or "").strip()
        name = (name or "").strip()
        if not code:
            raise ValidationError("Account code is required")
        if not name:
            raise ValidationError("Account name is required")
        account_type = _coerce_enum(AccountType, account_type, "account type")
        normal_balance = _coerce_enum(NormalBalance, normal_balance, "normal balance")

        if self.db.get_account_by_code(code) is not None:
            raise DuplicateCodeError(duplicate_account_code(code))

        account_id = self.db.create_account(
            code=code,
            name=name,
            account_type=account_type.value,
            category=category or "",
            normal_balance=normal_balance.value,
            description=description,
        )
        logger.info("Account created", extra={"account_id": account_id, "code": code})
        return self.get_account(account_id)

    def get_account(self, account_id: int) -> AccountEntity:
        """Get account by ID.

        Raises:
            NotFoundError: If the account does not exist
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def find_account_by_code(self, code: str) -> Optional[AccountEntity]:
        """Get account by code, or None."""
        return self.db.get_account_by_code(code)

    def get_account_by_code(self, code: str) -> AccountEntity:
        """Get account by code.

        Raises:
            NotFoundError: If no account has this code
        """
        account = self.db.get_account_by_code(code)
        if account is None:
            raise NotFoundError(account_code_not_found(code))
        return account

    def list_accounts(
        self,
        account_type: Optional[AccountType | str] = None,
        include_archived: bool = False,
    ) -> list[AccountEntity]:
        """List accounts with their balances, ordered by code."""
        if account_type is not None:
            account_type = _coerce_enum(AccountType, account_type, "account type")
        status = None if include_archived else AccountStatus.ACTIVE
        return self.db.list_accounts(account_type=account_type, status=status)

    def archive_account(self, principal: Principal, account_id: int) -> AccountEntity:
        """Archive an account so it accepts no new postings."""
        require_admin(principal, "archive accounts")
        self.get_account(account_id)
        self.db.update_account_status(account_id, AccountStatus.ARCHIVED)
        logger.info("Account archived", extra={"account_id": account_id})
        return self.get_account(account_id)

    def activate_account(self, principal: Principal, account_id: int) -> AccountEntity:
        """Return an archived account to active use."""
        require_admin(principal, "activate accounts")
        self.get_account(account_id)
        self.db.update_account_status(account_id, AccountStatus.ACTIVE)
        return self.get_account(account_id)

    def delete_account(self, principal: Principal, account_id: int) -> None:
        """Delete an account that has never been posted to.

        Raises:
            DependencyError: If any journal line references the account
        """
        require_admin(principal, "delete accounts")
        self.get_account(account_id)
        self.db.delete_account(account_id)
        logger.info("Account deleted", extra={"account_id": account_id})

    def calculate_financials(self) -> FinancialSummary:
        """Total balances by account type; net income is revenue minus expenses."""
        totals = {account_type: Decimal("0.00") for account_type in AccountType}
        for account in self.db.list_accounts():
            totals[account.account_type] += account.balance

        return FinancialSummary(
            total_assets=totals[AccountType.ASSET],
            total_liabilities=totals[AccountType.LIABILITY],
            total_equity=totals[AccountType.EQUITY],
            total_revenue=totals[AccountType.REVENUE],
            total_expenses=totals[AccountType.EXPENSE],
            net_income=totals[AccountType.REVENUE] - totals[AccountType.EXPENSE],
        )

    def verify_balances(self) -> list[tuple[AccountEntity, Decimal]]:
        """Recompute balances from posted lines.

        Returns:
            (account, expected balance) for every account whose stored
            balance differs; empty when the ledger is consistent
        """
        drifted = []
        for account in self.db.list_accounts():
            debit, credit = self.db.get_account_line_totals(account.id)
            expected = balance_delta(account.normal_balance, debit, credit)
            if expected != account.balance:
                logger.error(
                    "Account balance drifted from posted activity",
                    extra={"account_id": account.id, "balance": account.balance, "expected": expected},
                )
                drifted.append((account, expected))
        return drifted
