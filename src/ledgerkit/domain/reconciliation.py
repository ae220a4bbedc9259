"""Reconciliation of bank transactions into the journal.

A bank transaction becomes a posted journal entry in one workflow:

1. resolve the category (explicit, stored, rule, keyword fallback);
2. build a balanced entry against the category's account and the bank
   account's clearing account, plus tax lines for tax-relevant categories;
3. post the entry;
4. mark the transaction reconciled with the entry id.

If posting fails nothing has changed. If marking fails after a successful
post, the entry is voided so the ledger does not keep an orphan posting.
"""

from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.bank import BankLedgerService
from ledgerkit.domain.category import ExpenseCategoryService
from ledgerkit.domain.entities import (
    BankTransaction as BankTransactionEntity,
    BankTransactionStatus,
    ExpenseCategory as ExpenseCategoryEntity,
    JournalLineInput,
)
from ledgerkit.domain.errors import (
    AlreadyReconciledError,
    DomainError,
    InvalidLineError,
    UncategorizedTransactionError,
    ValidationError,
    already_reconciled,
    category_not_found,
)
from ledgerkit.domain.journal import JournalService
from ledgerkit.domain.rules import BankRuleService
from ledgerkit.domain.tax import TaxService
from ledgerkit.logging_config import get_logger

logger = get_logger(__name__)


class ReconciliationService:
    """Turns categorized bank transactions into posted journal entries."""

    def __init__(self, db: Database):
        """Initialize reconciliation service.

        Args:
            db: Database instance
        """
        self.db = db
        self.bank = BankLedgerService(db)
        self.categories = ExpenseCategoryService(db)
        self.rules = BankRuleService(db)
        self.journal = JournalService(db)
        self.tax = TaxService(db)

    def resolve_category(
        self, txn: BankTransactionEntity, explicit_category: Optional[str] = None
    ) -> tuple[ExpenseCategoryEntity, Optional[int]]:
        """Pick the category for a transaction.

        Returns:
            (category, id of the rule that decided it or None)

        Raises:
            ValidationError: If an explicit or stored category does not exist
            UncategorizedTransactionError: If nothing categorizes the transaction
        """
        name = explicit_category or txn.category
        if name:
            category = self.db.get_expense_category_by_name(name)
            if category is None:
                raise ValidationError(category_not_found(name))
            rule_id = txn.matched_rule_id if not explicit_category and txn.is_rule_match else None
            return category, rule_id

        rule = self.rules.suggest_category(txn)
        if rule is not None:
            category = self.db.get_expense_category_by_name(rule.assign_category)
            if category is None:
                raise ValidationError(category_not_found(rule.assign_category))
            return category, rule.id

        category = self.categories.match_keywords(txn.merchant)
        if category is not None:
            return category, None

        raise UncategorizedTransactionError(
            f"Bank transaction {txn.id} ({txn.merchant}) has no category; supply one explicitly"
        )

    def build_lines(
        self, txn: BankTransactionEntity, category: ExpenseCategoryEntity
    ) -> list[JournalLineInput]:
        """Build the balanced lines for a transaction.

        An outflow debits the category account and credits the clearing
        account; an inflow does the reverse.
        """
        bank_account = self.bank.get_bank_account(txn.bank_account_id)
        if bank_account.gl_account_id is None:
            raise InvalidLineError(
                f"Bank account {bank_account.id} has no clearing account to reconcile against"
            )
        if txn.amount == 0:
            raise InvalidLineError(f"Bank transaction {txn.id} has a zero amount")

        amount = abs(txn.amount)
        memo = txn.description or txn.merchant
        if txn.amount < 0:
            lines = [
                JournalLineInput(account_id=category.gl_account_id, debit=amount, memo=memo),
                JournalLineInput(account_id=bank_account.gl_account_id, credit=amount, memo=memo),
            ]
        else:
            lines = [
                JournalLineInput(account_id=bank_account.gl_account_id, debit=amount, memo=memo),
                JournalLineInput(account_id=category.gl_account_id, credit=amount, memo=memo),
            ]

        if category.tax_config_id is not None:
            tax = self.tax.compute_tax_lines(category.tax_config_id, amount)
            if tax.tax_amount > 0:
                lines += [tax.expense_line, tax.liability_line]
        return lines

    def reconcile(
        self, transaction_id: int, explicit_category: Optional[str] = None
    ) -> BankTransactionEntity:
        """Reconcile a bank transaction into the journal.

        Args:
            transaction_id: Bank transaction ID
            explicit_category: Category name overriding rules and keywords

        Returns:
            The reconciled transaction, linked to its journal entry

        Raises:
            NotFoundError: If the transaction does not exist
            AlreadyReconciledError: If it was reconciled before
            UncategorizedTransactionError: If no category can be resolved
            InvalidLineError, UnbalancedEntryError: If posting fails
        """
        with self.db.reconciliation_guard(transaction_id):
            txn = self.bank.get_transaction(transaction_id)
            if txn.status == BankTransactionStatus.RECONCILED:
                raise AlreadyReconciledError(already_reconciled(transaction_id))

            category, rule_id = self.resolve_category(txn, explicit_category)
            entry = self.journal.post_entry(
                date=txn.date,
                description=f"{txn.merchant} ({category.name})",
                lines=self.build_lines(txn, category),
                reference=f"BANK-{txn.id}",
            )

            try:
                reconciled = self.bank.mark_reconciled(
                    transaction_id,
                    category=category.name,
                    journal_entry_id=entry.id,
                    matched_rule_id=rule_id,
                    expected_amount=txn.amount,
                    expected_date=txn.date,
                )
            except DomainError:
                logger.error(
                    "Marking reconciled failed after posting; voiding entry",
                    extra={"transaction_id": transaction_id, "entry_id": entry.id},
                )
                self.journal.void_entry(entry.id)
                raise

        logger.info(
            "Bank transaction reconciled",
            extra={
                "transaction_id": transaction_id,
                "entry_id": entry.id,
                "category": category.name,
                "rule_id": rule_id,
            },
        )
        return reconciled

