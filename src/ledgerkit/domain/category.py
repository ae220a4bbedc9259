"""Expense category domain service."""

from typing import Iterable, Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.authorization import require_admin
from ledgerkit.domain.entities import ExpenseCategory as ExpenseCategoryEntity, Principal
from ledgerkit.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    category_not_found,
    tax_config_not_found,
)


class ExpenseCategoryService:
    """Service for managing expense categories.

    A category maps a bank transaction to the ledger account it is booked
    against. Categories linked to a tax config are tax-relevant: their
    reconciliations also book the computed tax.
    """

    def __init__(self, db: Database):
        """Initialize expense category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(
        self,
        principal: Principal,
        name: str,
        gl_account_id: int,
        tax_deductible: bool = True,
        keywords: Iterable[str] = (),
        tax_config_id: Optional[int] = None,
    ) -> ExpenseCategoryEntity:
        """Create an expense category.

        Args:
            principal: Caller; must be an administrator
            name: Unique category name (e.g. "Meals & Ent")
            gl_account_id: Ledger account the category books against
            tax_deductible: Whether expenses count against taxable income
            keywords: Merchant keywords used when no rule matches
            tax_config_id: Optional tax config applied on reconciliation

        Returns:
            The created category

        Raises:
            ValidationError: If the name is empty or the account or tax
                config does not exist
            ConflictError: If the name is already used
        """
        require_admin(principal, "create expense categories")
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        if self.db.get_account(gl_account_id) is None:
            raise ValidationError(account_not_found(gl_account_id))
        if tax_config_id is not None and self.db.get_tax_config(tax_config_id) is None:
            raise ValidationError(tax_config_not_found(tax_config_id))

        cleaned = [keyword.strip().lower() for keyword in keywords if keyword and keyword.strip()]
        category_id = self.db.create_expense_category(
            name=name,
            gl_account_id=gl_account_id,
            tax_deductible=tax_deductible,
            keywords=cleaned,
            tax_config_id=tax_config_id,
        )
        return self.db.get_expense_category(category_id)

    def get_category_by_name(self, name: str) -> ExpenseCategoryEntity:
        """Get category by name.

        Raises:
            NotFoundError: If no category has this name
        """
        category = self.db.get_expense_category_by_name(name)
        if category is None:
            raise NotFoundError(category_not_found(name))
        return category

    def list_categories(self) -> list[ExpenseCategoryEntity]:
        return self.db.list_expense_categories()

    def match_keywords(self, merchant: str) -> Optional[ExpenseCategoryEntity]:
        """Find the first category with a keyword contained in the merchant name."""
        merchant = (merchant or "").lower()
        for category in self.db.list_expense_categories():
            if any(keyword in merchant for keyword in category.keywords):
                return category
        return None
