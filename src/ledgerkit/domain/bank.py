"""Bank ledger domain service.

Bank accounts and their feed transactions live in their own identity
space; they reach the general ledger only through reconciliation.
"""

import re
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Sequence

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    BankAccount as BankAccountEntity,
    BankAccountStatus,
    BankAccountType,
    BankTransaction as BankTransactionEntity,
    BankTransactionStatus,
    FeedRecord,
)
from ledgerkit.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    bank_account_not_found,
    bank_transaction_not_found,
    unknown_fields,
)
from ledgerkit.logging_config import get_logger
from ledgerkit.utils.money import to_money

logger = get_logger(__name__)

TRANSACTION_UPDATE_FIELDS = frozenset(
    {"date", "merchant", "description", "amount", "status", "category", "receipt_reference"}
)
BANK_ACCOUNT_UPDATE_FIELDS = frozenset(
    {"name", "balance", "last_synced_at", "status", "gl_account_id"}
)
_FEED_STATUSES = (BankTransactionStatus.PENDING, BankTransactionStatus.POSTED)


def mask_account_number(account_number: str) -> str:
    """Keep only the last four digits of an account number."""
    digits = re.sub(r"\D", "", account_number or "")
    if len(digits) < 4:
        raise ValidationError("Account number must contain at least four digits")
    return f"****{digits[-4:]}"


def _check_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if not isinstance(value, date):
        raise ValidationError(f"Invalid transaction date {value!r}")
    return value


def _check_amount(value: Any) -> Decimal:
    try:
        return to_money(value)
    except ValueError as e:
        raise ValidationError(f"Invalid transaction amount: {e}")


def _check_merchant(value: Any) -> str:
    merchant = value.strip() if isinstance(value, str) else ""
    if not merchant:
        raise ValidationError("Transaction merchant is required")
    return merchant


def _feed_status(value: Any) -> BankTransactionStatus:
    try:
        status = BankTransactionStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid transaction status '{value}'")
    if status not in _FEED_STATUSES:
        raise ValidationError("Only reconciliation can mark a transaction reconciled")
    return status


def _as_feed_record(record: FeedRecord | Sequence[Any] | Mapping[str, Any]) -> FeedRecord:
    if isinstance(record, FeedRecord):
        return record
    if isinstance(record, Mapping):
        return FeedRecord(
            date=record.get("date"),
            merchant=record.get("merchant"),
            amount=record.get("amount"),
            description=record.get("description"),
            external_id=record.get("external_id"),
        )
    if not 3 <= len(record) <= 5:
        raise ValidationError("Feed record must be (date, merchant, amount[, description[, external_id]])")
    return FeedRecord(*record)


class BankLedgerService:
    """Service for bank accounts and their raw transactions."""

    def __init__(self, db: Database):
        """Initialize bank ledger service.

        Args:
            db: Database instance
        """
        self.db = db

    # Bank accounts
    def connect_bank_account(
        self,
        owner_id: str,
        institution_name: str,
        name: str,
        account_number: str,
        account_type: BankAccountType | str,
        balance: Decimal | str = "0",
        gl_account_id: Optional[int] = None,
    ) -> BankAccountEntity:
        """Register an external bank account.

        Args:
            owner_id: Advisor id, or "company" for the firm
            institution_name: Bank name
            name: Display name
            account_number: Full or partial number; only the last four
                digits are stored
            account_type: Checking, Savings or Credit Card
            balance: Last known balance reported by the bank
            gl_account_id: Ledger account used as the clearing account when
                this account's transactions are reconciled
        """
        if not (owner_id or "").strip():
            raise ValidationError("Bank account owner is required")
        if not (name or "").strip() or not (institution_name or "").strip():
            raise ValidationError("Bank account name and institution are required")
        try:
            account_type = BankAccountType(account_type)
        except ValueError:
            raise ValidationError(f"Invalid bank account type '{account_type}'")
        if gl_account_id is not None and self.db.get_account(gl_account_id) is None:
            raise ValidationError(account_not_found(gl_account_id))

        bank_account_id = self.db.create_bank_account(
            owner_id=owner_id.strip(),
            institution_name=institution_name.strip(),
            name=name.strip(),
            masked_number=mask_account_number(account_number),
            account_type=account_type.value,
            balance=_check_amount(balance),
            gl_account_id=gl_account_id,
        )
        logger.info("Bank account connected", extra={"bank_account_id": bank_account_id, "owner_id": owner_id})
        return self.get_bank_account(bank_account_id)

    def get_bank_account(self, bank_account_id: int) -> BankAccountEntity:
        """Get bank account by ID.

        Raises:
            NotFoundError: If the bank account does not exist
        """
        bank_account = self.db.get_bank_account(bank_account_id)
        if bank_account is None:
            raise NotFoundError(bank_account_not_found(bank_account_id))
        return bank_account

    def list_bank_accounts(self, owner_id: Optional[str] = None) -> list[BankAccountEntity]:
        return self.db.list_bank_accounts(owner_id=owner_id)

    def update_bank_account(self, bank_account_id: int, changes: Mapping[str, Any]) -> BankAccountEntity:
        """Update name, balance, last_synced_at, status or gl_account_id."""
        self.get_bank_account(bank_account_id)
        unknown = [key for key in changes if key not in BANK_ACCOUNT_UPDATE_FIELDS]
        if unknown:
            raise ValidationError(unknown_fields("bank account", unknown))

        validated = dict(changes)
        if "balance" in validated:
            validated["balance"] = _check_amount(validated["balance"])
        if "status" in validated:
            try:
                validated["status"] = BankAccountStatus(validated["status"])
            except ValueError:
                raise ValidationError(f"Invalid bank account status '{validated['status']}'")
        if validated.get("gl_account_id") is not None:
            if self.db.get_account(validated["gl_account_id"]) is None:
                raise ValidationError(account_not_found(validated["gl_account_id"]))
        if "name" in validated and not (validated["name"] or "").strip():
            raise ValidationError("Bank account name is required")

        self.db.update_bank_account(bank_account_id, validated)
        return self.get_bank_account(bank_account_id)

    # Transactions
    def record_transaction(
        self,
        bank_account_id: int,
        date: date,
        merchant: str,
        amount: Decimal | str,
        description: Optional[str] = None,
        external_id: Optional[str] = None,
        status: BankTransactionStatus | str = BankTransactionStatus.PENDING,
    ) -> BankTransactionEntity:
        """Store a transaction delivered by a bank feed.

        Malformed input is rejected here and never reaches the journal.

        Raises:
            NotFoundError: If the bank account does not exist
            ValidationError: If the date, merchant, amount or status is invalid
            ConflictError: If the external id was already stored for this account
        """
        bank_account = self.get_bank_account(bank_account_id)
        if bank_account.status == BankAccountStatus.DISCONNECTED:
            raise ValidationError(f"Bank account {bank_account_id} is disconnected")

        transaction_id = self.db.create_bank_transaction(
            bank_account_id=bank_account_id,
            date=_check_date(date),
            merchant=_check_merchant(merchant),
            amount=_check_amount(amount),
            status=_feed_status(status).value,
            description=description,
            external_id=external_id,
        )
        return self.get_transaction(transaction_id)

    def import_feed(
        self,
        bank_account_id: int,
        records: Iterable[FeedRecord | Sequence[Any] | Mapping[str, Any]],
    ) -> dict[str, Any]:
        """Ingest a batch of already-parsed feed records.

        Returns:
            Dict with import statistics:
            - imported: IDs of stored transactions
            - skipped: number of records whose external id was seen before
            - errors: list of error messages for rejected records
        """
        self.get_bank_account(bank_account_id)

        imported: list[int] = []
        skipped = 0
        problems: list[str] = []
        for number, raw in enumerate(records, start=1):
            try:
                record = _as_feed_record(raw)
                if record.external_id is not None and self.db.bank_transaction_exists(
                    bank_account_id, record.external_id
                ):
                    raise ConflictError(f"Bank transaction '{record.external_id}' was imported before")
                txn = self.record_transaction(
                    bank_account_id=bank_account_id,
                    date=record.date,
                    merchant=record.merchant,
                    amount=record.amount,
                    description=record.description,
                    external_id=record.external_id,
                )
                imported.append(txn.id)
            except ConflictError as e:
                logger.warning(
                    "Skipped duplicate bank feed record",
                    extra={"bank_account_id": bank_account_id, "record": number, "reason": str(e)},
                )
                skipped += 1
            except ValidationError as e:
                logger.warning(
                    "Rejected bank feed record",
                    extra={"bank_account_id": bank_account_id, "record": number, "reason": str(e)},
                )
                problems.append(f"Record {number}: {e}")

        self.db.update_bank_account(bank_account_id, {"last_synced_at": datetime.now(UTC)})
        logger.info(
            "Bank feed imported",
            extra={
                "bank_account_id": bank_account_id,
                "imported": len(imported),
                "skipped": skipped,
                "errors": len(problems),
            },
        )
        return {"imported": imported, "skipped": skipped, "errors": problems}

    def get_transaction(self, transaction_id: int) -> BankTransactionEntity:
        """Get bank transaction by ID.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        txn = self.db.get_bank_transaction(transaction_id)
        if txn is None:
            raise NotFoundError(bank_transaction_not_found(transaction_id))
        return txn

    def update_transaction(self, transaction_id: int, changes: Mapping[str, Any]) -> BankTransactionEntity:
        """Update a transaction.

        Only date, merchant, description, amount, status (pending or
        posted), category and receipt_reference may change. Amount, date
        and status are frozen once the transaction is reconciled.

        Raises:
            ValidationError: On unknown fields or invalid values
            AlreadyReconciledError: On a frozen field of a reconciled transaction
        """
        self.get_transaction(transaction_id)
        unknown = [key for key in changes if key not in TRANSACTION_UPDATE_FIELDS]
        if unknown:
            raise ValidationError(unknown_fields("bank transaction", unknown))

        validated = dict(changes)
        if "date" in validated:
            validated["date"] = _check_date(validated["date"])
        if "merchant" in validated:
            validated["merchant"] = _check_merchant(validated["merchant"])
        if "amount" in validated:
            validated["amount"] = _check_amount(validated["amount"])
        if "status" in validated:
            validated["status"] = _feed_status(validated["status"])
        if "category" in validated:
            # A manual category replaces any rule suggestion
            validated["is_rule_match"] = False
            validated["matched_rule_id"] = None

        with self.db.reconciliation_guard(transaction_id):
            self.db.update_bank_transaction(transaction_id, validated)
        return self.get_transaction(transaction_id)

    def list_transactions(
        self,
        bank_account_id: Optional[int] = None,
        status: Optional[BankTransactionStatus | str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        owner_id: Optional[str] = None,
    ) -> list[BankTransactionEntity]:
        """List transactions ordered by date descending."""
        if status is not None:
            try:
                status = BankTransactionStatus(status)
            except ValueError:
                raise ValidationError(f"Invalid transaction status '{status}'")

        bank_account_ids = None
        if owner_id is not None:
            bank_account_ids = [acc.id for acc in self.db.list_bank_accounts(owner_id=owner_id)]
            if not bank_account_ids:
                return []

        return self.db.list_bank_transactions(
            bank_account_id=bank_account_id,
            status=status,
            start_date=start_date,
            end_date=end_date,
            bank_account_ids=bank_account_ids,
        )

    def mark_reconciled(
        self,
        transaction_id: int,
        category: str,
        journal_entry_id: int,
        matched_rule_id: Optional[int] = None,
        expected_amount: Optional[Decimal] = None,
        expected_date: Optional[date] = None,
    ) -> BankTransactionEntity:
        """Mark a transaction reconciled against a journal entry.

        Raises:
            AlreadyReconciledError: If it was reconciled before
            ConflictError: If its amount or date differ from the expected ones
        """
        self.db.mark_bank_transaction_reconciled(
            transaction_id,
            category=category,
            journal_entry_id=journal_entry_id,
            matched_rule_id=matched_rule_id,
            expected_amount=expected_amount,
            expected_date=expected_date,
        )
        return self.get_transaction(transaction_id)
