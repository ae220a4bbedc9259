"""Advisor compensation postings.

Deals and payouts are ordinary journal entries; the advisor is attributed
on the commission lines so balances per advisor can be derived from the
ledger.
"""

from dataclasses import dataclass
from datetime import date as date_type
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import Account as AccountEntity, JournalEntry as JournalEntryEntity, JournalLineInput
from ledgerkit.domain.errors import ValidationError, account_code_not_found
from ledgerkit.domain.journal import JournalService
from ledgerkit.utils.money import round_money, to_money


@dataclass(frozen=True)
class CompensationAccounts:
    """Account codes used by compensation postings."""

    receivable: str = "1100"
    revenue: str = "4000"
    commission_expense: str = "5000"
    commissions_payable: str = "2200"
    cash: str = "1000"


class CompensationService:
    """Service for recording deals and advisor payouts."""

    def __init__(self, db: Database, accounts: Optional[CompensationAccounts] = None):
        """Initialize compensation service.

        Args:
            db: Database instance
            accounts: Account codes to post against
        """
        self.db = db
        self.accounts = accounts or CompensationAccounts()
        self.journal = JournalService(db)

    def _account(self, code: str) -> AccountEntity:
        account = self.db.get_account_by_code(code)
        if account is None:
            raise ValidationError(account_code_not_found(code))
        return account

    @staticmethod
    def _positive(value: Decimal | str, label: str) -> Decimal:
        try:
            amount = to_money(value)
        except ValueError as e:
            raise ValidationError(f"Invalid {label}: {e}")
        if amount <= 0:
            raise ValidationError(f"{label.capitalize()} must be positive")
        return amount

    def record_deal(
        self,
        revenue: Decimal | str,
        advisor_id: str,
        commission_rate: Decimal | str,
        description: str,
        date: Optional[date_type] = None,
    ) -> JournalEntryEntity:
        """Book revenue from a closed deal and the advisor's commission.

        Revenue is debited to receivables and credited to revenue. When the
        commission is positive, commission expense is debited and
        commissions payable credited, both attributed to the advisor.
        """
        amount = self._positive(revenue, "revenue")
        try:
            rate = Decimal(str(commission_rate))
        except ArithmeticError:
            raise ValidationError(f"Invalid commission rate '{commission_rate}'")
        if not rate.is_finite() or rate < 0 or rate > 1:
            raise ValidationError("Commission rate must be between 0 and 1")
        if not (advisor_id or "").strip():
            raise ValidationError("Advisor is required")

        commission = round_money(amount * rate)
        lines = [
            JournalLineInput(account_id=self._account(self.accounts.receivable).id, debit=amount),
            JournalLineInput(account_id=self._account(self.accounts.revenue).id, credit=amount),
        ]
        if commission > 0:
            memo = f"Commission for {advisor_id}"
            lines += [
                JournalLineInput(
                    account_id=self._account(self.accounts.commission_expense).id,
                    debit=commission,
                    memo=memo,
                    advisor_id=advisor_id,
                ),
                JournalLineInput(
                    account_id=self._account(self.accounts.commissions_payable).id,
                    credit=commission,
                    memo=memo,
                    advisor_id=advisor_id,
                ),
            ]

        return self.journal.post_entry(
            date=date or date_type.today(),
            description=f"Deal Closed: {description}",
            lines=lines,
            reference=f"DEAL-{uuid4().hex[:12].upper()}",
        )

    def pay_advisor(
        self,
        advisor_id: str,
        amount: Decimal | str,
        advisor_name: Optional[str] = None,
        date: Optional[date_type] = None,
    ) -> JournalEntryEntity:
        """Pay out commission: debit commissions payable, credit cash."""
        payout = self._positive(amount, "payout amount")
        if not (advisor_id or "").strip():
            raise ValidationError("Advisor is required")
        return self.journal.post_entry(
            date=date or date_type.today(),
            description=f"Commission Payout: {advisor_name or advisor_id}",
            lines=[
                JournalLineInput(
                    account_id=self._account(self.accounts.commissions_payable).id,
                    debit=payout,
                    advisor_id=advisor_id,
                ),
                JournalLineInput(account_id=self._account(self.accounts.cash).id, credit=payout),
            ],
        )

    def advisor_balance(self, advisor_id: str) -> Decimal:
        """Commission owed to the advisor: attributed credits less debits on payables."""
        payable = self._account(self.accounts.commissions_payable)
        debit, credit = self.db.get_advisor_line_totals(payable.id, advisor_id)
        return credit - debit
