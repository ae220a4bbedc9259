"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, including the translation of
string columns into domain enumerations.
"""

from ledgerkit.domain import entities as domain
from ledgerkit.database.models import (
    Account as ORMAccount,
    JournalEntry as ORMJournalEntry,
    JournalLine as ORMJournalLine,
    TaxConfig as ORMTaxConfig,
    BankAccount as ORMBankAccount,
    BankTransaction as ORMBankTransaction,
    ExpenseCategory as ORMExpenseCategory,
    BankRule as ORMBankRule,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        code=orm_account.code,
        name=orm_account.name,
        account_type=domain.AccountType(orm_account.account_type),
        category=orm_account.category,
        normal_balance=domain.NormalBalance(orm_account.normal_balance),
        balance=orm_account.balance,
        status=domain.AccountStatus(orm_account.status),
        description=orm_account.description,
        created_at=orm_account.created_at,
    )


def journal_line_to_domain(orm_line: ORMJournalLine) -> domain.JournalLine:
    """Convert SQLAlchemy JournalLine model to domain JournalLine entity."""
    return domain.JournalLine(
        id=orm_line.id,
        entry_id=orm_line.entry_id,
        line_number=orm_line.line_number,
        account_id=orm_line.account_id,
        debit=orm_line.debit,
        credit=orm_line.credit,
        memo=orm_line.memo,
        advisor_id=orm_line.advisor_id,
    )


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model to domain JournalEntry entity."""
    return domain.JournalEntry(
        id=orm_entry.id,
        date=orm_entry.date,
        description=orm_entry.description,
        reference=orm_entry.reference,
        status=domain.EntryStatus(orm_entry.status),
        created_at=orm_entry.created_at,
        lines=tuple(journal_line_to_domain(line) for line in orm_entry.lines),
        reversal_of_id=orm_entry.reversal_of_id,
        reversed_by_id=orm_entry.reversed_by_id,
    )


def tax_config_to_domain(orm_config: ORMTaxConfig) -> domain.TaxConfig:
    """Convert SQLAlchemy TaxConfig model to domain TaxConfig entity."""
    return domain.TaxConfig(
        id=orm_config.id,
        name=orm_config.name,
        rate=orm_config.rate,
        liability_account_id=orm_config.liability_account_id,
        expense_account_id=orm_config.expense_account_id,
        jurisdiction=orm_config.jurisdiction,
        created_at=orm_config.created_at,
    )


def bank_account_to_domain(orm_account: ORMBankAccount) -> domain.BankAccount:
    """Convert SQLAlchemy BankAccount model to domain BankAccount entity."""
    return domain.BankAccount(
        id=orm_account.id,
        owner_id=orm_account.owner_id,
        institution_name=orm_account.institution_name,
        name=orm_account.name,
        masked_number=orm_account.masked_number,
        account_type=domain.BankAccountType(orm_account.account_type),
        balance=orm_account.balance,
        last_synced_at=orm_account.last_synced_at,
        status=domain.BankAccountStatus(orm_account.status),
        gl_account_id=orm_account.gl_account_id,
        created_at=orm_account.created_at,
    )


def bank_transaction_to_domain(orm_txn: ORMBankTransaction) -> domain.BankTransaction:
    """Convert SQLAlchemy BankTransaction model to domain BankTransaction entity."""
    return domain.BankTransaction(
        id=orm_txn.id,
        bank_account_id=orm_txn.bank_account_id,
        date=orm_txn.date,
        merchant=orm_txn.merchant,
        amount=orm_txn.amount,
        status=domain.BankTransactionStatus(orm_txn.status),
        description=orm_txn.description,
        external_id=orm_txn.external_id,
        category=orm_txn.category,
        receipt_reference=orm_txn.receipt_reference,
        journal_entry_id=orm_txn.journal_entry_id,
        is_rule_match=orm_txn.is_rule_match,
        matched_rule_id=orm_txn.matched_rule_id,
        created_at=orm_txn.created_at,
    )


def expense_category_to_domain(orm_category: ORMExpenseCategory) -> domain.ExpenseCategory:
    """Convert SQLAlchemy ExpenseCategory model to domain ExpenseCategory entity."""
    return domain.ExpenseCategory(
        id=orm_category.id,
        name=orm_category.name,
        gl_account_id=orm_category.gl_account_id,
        tax_deductible=orm_category.tax_deductible,
        keywords=tuple(orm_category.keywords or ()),
        tax_config_id=orm_category.tax_config_id,
    )


def rule_conditions_to_rows(conditions: tuple[domain.RuleCondition, ...]) -> list[dict[str, str]]:
    """Serialize rule conditions for the JSON column."""
    return [
        {"field": c.field.value, "operator": c.operator.value, "value": c.value}
        for c in conditions
    ]


def bank_rule_to_domain(orm_rule: ORMBankRule) -> domain.BankRule:
    """Convert SQLAlchemy BankRule model to domain BankRule entity."""
    return domain.BankRule(
        id=orm_rule.id,
        owner_id=orm_rule.owner_id,
        name=orm_rule.name,
        conditions=tuple(
            domain.RuleCondition(
                field=domain.RuleField(row["field"]),
                operator=domain.RuleOperator(row["operator"]),
                value=row["value"],
            )
            for row in orm_rule.conditions or ()
        ),
        assign_category=orm_rule.assign_category,
        priority=orm_rule.priority,
        created_at=orm_rule.created_at,
    )
