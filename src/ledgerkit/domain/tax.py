"""Tax calculator domain service."""

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.authorization import require_admin
from ledgerkit.domain.entities import (
    AccountType,
    BankTransactionStatus,
    JournalLineInput,
    Principal,
    TaxConfig as TaxConfigEntity,
    TaxEstimate,
    TaxLines,
)
from ledgerkit.domain.errors import (
    UnknownTaxConfigError,
    ValidationError,
    account_code_not_found,
    account_not_found,
    tax_config_not_found,
    unknown_fields,
)
from ledgerkit.logging_config import get_logger
from ledgerkit.utils.money import ZERO, round_money, to_money

logger = get_logger(__name__)

TAX_CONFIG_UPDATE_FIELDS = frozenset(
    {"name", "rate", "jurisdiction", "liability_account_id", "expense_account_id"}
)
# Rates are stored as NUMERIC(9, 6)
RATE_QUANTUM = Decimal("0.000001")


def _parse_rate(rate: Decimal | str | int | float) -> Decimal:
    if isinstance(rate, float):
        rate = repr(rate)
    try:
        value = Decimal(rate)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid tax rate '{rate}'")
    if not value.is_finite() or value < 0 or value >= 1:
        raise ValidationError(f"Tax rate must be a fraction between 0 and 1, got {rate}")
    if value != value.quantize(RATE_QUANTUM):
        raise ValidationError(f"Tax rate {rate} has more than six decimal places")
    return value


class TaxService:
    """Service for tax configurations and tax line computation."""

    def __init__(self, db: Database):
        """Initialize tax service.

        Args:
            db: Database instance
        """
        self.db = db

    def _check_account(self, account_id: int, expected: AccountType, role: str) -> None:
        account = self.db.get_account(account_id)
        if account is None:
            raise ValidationError(f"{role} {account_not_found(account_id)}")
        if account.account_type != expected:
            raise ValidationError(
                f"{role} {account.code} must be a {expected.value} account, "
                f"not {account.account_type.value}"
            )

    def create_tax_config(
        self,
        principal: Principal,
        name: str,
        rate: Decimal | str,
        liability_account_id: int,
        expense_account_id: int,
        jurisdiction: str = "",
    ) -> TaxConfigEntity:
        """Create a tax configuration.

        Raises:
            AuthorizationError: If the caller is not an administrator
            ValidationError: If the rate is outside [0, 1) or the accounts
                are missing or of the wrong type
        """
        require_admin(principal, "change tax configuration")
        name = (name or "").strip()
        if not name:
            raise ValidationError("Tax config name is required")
        rate = _parse_rate(rate)
        self._check_account(liability_account_id, AccountType.LIABILITY, "Liability account")
        self._check_account(expense_account_id, AccountType.EXPENSE, "Expense account")

        tax_config_id = self.db.create_tax_config(
            name=name,
            rate=rate,
            liability_account_id=liability_account_id,
            expense_account_id=expense_account_id,
            jurisdiction=jurisdiction or "",
        )
        logger.info("Tax config created", extra={"tax_config_id": tax_config_id, "rate": rate})
        return self.get_tax_config(tax_config_id)

    def update_tax_config(
        self, principal: Principal, tax_config_id: int, changes: Mapping[str, Any]
    ) -> TaxConfigEntity:
        """Update selected fields of a tax configuration.

        Only name, rate, jurisdiction, liability_account_id and
        expense_account_id can be changed.
        """
        require_admin(principal, "change tax configuration")
        self.get_tax_config(tax_config_id)

        unknown = [key for key in changes if key not in TAX_CONFIG_UPDATE_FIELDS]
        if unknown:
            raise ValidationError(unknown_fields("tax config", unknown))

        validated = dict(changes)
        if "rate" in validated:
            validated["rate"] = _parse_rate(validated["rate"])
        if "name" in validated:
            validated["name"] = (validated["name"] or "").strip()
            if not validated["name"]:
                raise ValidationError("Tax config name is required")
        if "liability_account_id" in validated:
            self._check_account(validated["liability_account_id"], AccountType.LIABILITY, "Liability account")
        if "expense_account_id" in validated:
            self._check_account(validated["expense_account_id"], AccountType.EXPENSE, "Expense account")

        self.db.update_tax_config(tax_config_id, validated)
        logger.info("Tax config updated", extra={"tax_config_id": tax_config_id, "fields": sorted(validated)})
        return self.get_tax_config(tax_config_id)

    def get_tax_config(self, tax_config_id: int) -> TaxConfigEntity:
        """Get tax config by ID.

        Raises:
            UnknownTaxConfigError: If the id does not resolve
        """
        config = self.db.get_tax_config(tax_config_id)
        if config is None:
            raise UnknownTaxConfigError(tax_config_not_found(tax_config_id))
        return config

    def list_tax_configs(self) -> list[TaxConfigEntity]:
        return self.db.list_tax_configs()

    def compute_tax_lines(
        self, tax_config_id: int, base_amount: Decimal | str, memo: Optional[str] = None
    ) -> TaxLines:
        """Compute the liability and expense lines for a taxable amount.

        The tax is ``base_amount * rate`` rounded half-up to cents. The two
        lines balance each other, so they can be appended to any balanced
        entry. Nothing is posted here.

        Raises:
            UnknownTaxConfigError: If the id does not resolve
            ValidationError: If the base amount is malformed
        """
        config = self.get_tax_config(tax_config_id)
        try:
            base = abs(to_money(base_amount))
        except ValueError as e:
            raise ValidationError(f"Invalid taxable amount: {e}")

        tax_amount = round_money(base * config.rate)
        if memo is None:
            memo = f"{config.name} ({config.jurisdiction})" if config.jurisdiction else config.name
        return TaxLines(
            tax_amount=tax_amount,
            liability_line=JournalLineInput(
                account_id=config.liability_account_id, credit=tax_amount, memo=memo
            ),
            expense_line=JournalLineInput(
                account_id=config.expense_account_id, debit=tax_amount, memo=memo
            ),
        )

    def estimate_tax(
        self,
        advisor_id: str,
        tax_config_id: int,
        commissions_payable_code: str = "2200",
    ) -> TaxEstimate:
        """Estimate an advisor's tax from the ledger and their bank feeds.

        Taxable income is the commission paid out to the advisor (debits to
        the commissions payable account attributed to them) less the
        tax-deductible reconciled expenses on the advisor's own bank
        accounts, floored at zero.
        """
        config = self.get_tax_config(tax_config_id)
        payable = self.db.get_account_by_code(commissions_payable_code)
        if payable is None:
            raise ValidationError(account_code_not_found(commissions_payable_code))

        paid_out, _ = self.db.get_advisor_line_totals(payable.id, advisor_id)

        deductible_names = {
            category.name for category in self.db.list_expense_categories() if category.tax_deductible
        }
        bank_account_ids = [acc.id for acc in self.db.list_bank_accounts(owner_id=advisor_id)]
        deductible = ZERO
        if bank_account_ids:
            for txn in self.db.list_bank_transactions(
                bank_account_ids=bank_account_ids, status=BankTransactionStatus.RECONCILED
            ):
                if txn.category in deductible_names:
                    deductible += abs(txn.amount)

        taxable_income = max(ZERO, paid_out - deductible)
        return TaxEstimate(
            taxable_income=taxable_income,
            estimated_tax=round_money(taxable_income * config.rate),
            rate=config.rate,
        )
