"""Bank rule engine and rule management.

Rules are evaluated in list order. A rule matches when all of its
conditions hold; the first matching rule decides the category, so the
persisted priority is part of the outcome.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional, Sequence

from ledgerkit.database.base import Database
from ledgerkit.domain.authorization import require_owner_or_admin
from ledgerkit.domain.entities import (
    FIRM_OWNER,
    BankRule as BankRuleEntity,
    BankTransaction as BankTransactionEntity,
    BankTransactionStatus,
    Principal,
    RuleCondition,
    RuleField,
    RuleOperator,
)
from ledgerkit.domain.errors import (
    NotFoundError,
    ValidationError,
    category_not_found,
    rule_not_found,
    unknown_fields,
)
from ledgerkit.logging_config import get_logger

logger = get_logger(__name__)

RULE_UPDATE_FIELDS = frozenset({"name", "conditions", "assign_category", "priority"})
_TEXT_FIELDS = (RuleField.MERCHANT, RuleField.DESCRIPTION)


def _decimal(value: Any) -> Optional[Decimal]:
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def parse_condition(condition: RuleCondition | Mapping[str, Any]) -> RuleCondition:
    """Validate one condition.

    Raises:
        ValidationError: On an unknown field or operator, an operator that
            does not apply to the field, or a non-numeric amount value
    """
    if isinstance(condition, Mapping):
        raw_field = condition.get("field")
        raw_operator = condition.get("operator")
        value = condition.get("value")
    else:
        raw_field, raw_operator, value = condition.field, condition.operator, condition.value

    try:
        field = RuleField(raw_field)
    except ValueError:
        raise ValidationError(f"Invalid rule field '{raw_field}'")
    try:
        operator = RuleOperator(raw_operator)
    except ValueError:
        raise ValidationError(f"Invalid rule operator '{raw_operator}'")

    value = "" if value is None else str(value).strip()
    if not value:
        raise ValidationError("Rule condition value is required")
    if field == RuleField.AMOUNT:
        if operator == RuleOperator.CONTAINS:
            raise ValidationError("The contains operator does not apply to amount")
        if _decimal(value) is None:
            raise ValidationError(f"Amount condition value '{value}' is not a number")
    elif operator == RuleOperator.GREATER_THAN:
        raise ValidationError(f"The greater_than operator only applies to amount, not {field.value}")

    return RuleCondition(field=field, operator=operator, value=value)


def condition_matches(condition: RuleCondition, transaction: BankTransactionEntity) -> bool:
    """Evaluate one condition against a transaction."""
    if condition.field == RuleField.AMOUNT:
        expected = _decimal(condition.value)
        if expected is None:
            return False
        if condition.operator == RuleOperator.EQUALS:
            return transaction.amount == expected
        if condition.operator == RuleOperator.GREATER_THAN:
            return transaction.amount > expected
        return False

    text = transaction.merchant if condition.field == RuleField.MERCHANT else transaction.description
    text = (text or "").lower()
    needle = condition.value.lower()
    if condition.operator == RuleOperator.CONTAINS:
        return needle in text
    if condition.operator == RuleOperator.EQUALS:
        return text == needle
    return False


def rule_matches(rule: BankRuleEntity, transaction: BankTransactionEntity) -> bool:
    """A rule matches when every condition holds; a rule without conditions never matches."""
    if not rule.conditions:
        return False
    return all(condition_matches(condition, transaction) for condition in rule.conditions)


def find_matching_rule(
    transaction: BankTransactionEntity, rules: Iterable[BankRuleEntity]
) -> Optional[BankRuleEntity]:
    """Return the first rule, in the given order, that matches."""
    for rule in rules:
        if rule_matches(rule, transaction):
            return rule
    return None


def evaluate(transaction: BankTransactionEntity, rules: Iterable[BankRuleEntity]) -> Optional[str]:
    """Return the category of the first fully matching rule, or None."""
    rule = find_matching_rule(transaction, rules)
    return rule.assign_category if rule is not None else None


class BankRuleService:
    """Service for defining and applying bank rules."""

    def __init__(self, db: Database):
        """Initialize bank rule service.

        Args:
            db: Database instance
        """
        self.db = db

    def _check_category(self, category: str) -> str:
        category = (category or "").strip()
        if not category:
            raise ValidationError("Rule category is required")
        if self.db.get_expense_category_by_name(category) is None:
            raise ValidationError(category_not_found(category))
        return category

    @staticmethod
    def _parse_conditions(conditions: Sequence[RuleCondition | Mapping[str, Any]]) -> list[RuleCondition]:
        if not conditions:
            raise ValidationError("A rule needs at least one condition")
        return [parse_condition(condition) for condition in conditions]

    def create_rule(
        self,
        principal: Principal,
        name: str,
        conditions: Sequence[RuleCondition | Mapping[str, Any]],
        assign_category: str,
        owner_id: Optional[str] = None,
        priority: Optional[int] = None,
    ) -> BankRuleEntity:
        """Create a bank rule.

        Args:
            principal: Caller
            name: Rule name
            conditions: All must hold for the rule to match
            assign_category: Expense category name assigned on match
            owner_id: Owner of the rule, defaults to the caller; the firm's
                rules are owned by "company"
            priority: Position in evaluation order; appended when omitted

        Raises:
            AuthorizationError: If a non-admin creates a rule for someone else
            ValidationError: If a condition or the category is invalid
        """
        owner_id = owner_id or principal.user_id
        require_owner_or_admin(principal, owner_id, "create rules")
        name = (name or "").strip()
        if not name:
            raise ValidationError("Rule name is required")

        rule_id = self.db.create_bank_rule(
            owner_id=owner_id,
            name=name,
            conditions=self._parse_conditions(conditions),
            assign_category=self._check_category(assign_category),
            priority=priority,
        )
        logger.info("Bank rule created", extra={"rule_id": rule_id, "owner_id": owner_id})
        return self.get_rule(rule_id)

    def get_rule(self, rule_id: int) -> BankRuleEntity:
        """Get rule by ID.

        Raises:
            NotFoundError: If the rule does not exist
        """
        rule = self.db.get_bank_rule(rule_id)
        if rule is None:
            raise NotFoundError(rule_not_found(rule_id))
        return rule

    def update_rule(self, principal: Principal, rule_id: int, changes: Mapping[str, Any]) -> BankRuleEntity:
        """Update name, conditions, assign_category or priority of a rule."""
        rule = self.get_rule(rule_id)
        require_owner_or_admin(principal, rule.owner_id, "update rules")
        unknown = [key for key in changes if key not in RULE_UPDATE_FIELDS]
        if unknown:
            raise ValidationError(unknown_fields("bank rule", unknown))

        validated = dict(changes)
        if "conditions" in validated:
            validated["conditions"] = self._parse_conditions(validated["conditions"])
        if "assign_category" in validated:
            validated["assign_category"] = self._check_category(validated["assign_category"])
        if "name" in validated:
            validated["name"] = (validated["name"] or "").strip()
            if not validated["name"]:
                raise ValidationError("Rule name is required")
        if "priority" in validated and not isinstance(validated["priority"], int):
            raise ValidationError("Rule priority must be an integer")

        self.db.update_bank_rule(rule_id, validated)
        logger.info("Bank rule updated", extra={"rule_id": rule_id, "fields": sorted(validated)})
        return self.get_rule(rule_id)

    def delete_rule(self, principal: Principal, rule_id: int) -> None:
        rule = self.get_rule(rule_id)
        require_owner_or_admin(principal, rule.owner_id, "delete rules")
        self.db.delete_bank_rule(rule_id)
        logger.info("Bank rule deleted", extra={"rule_id": rule_id})

    def list_rules(self, owner_id: Optional[str] = None) -> list[BankRuleEntity]:
        """List rules in evaluation order, optionally for one owner."""
        owner_ids = [owner_id] if owner_id is not None else None
        return self.db.list_bank_rules(owner_ids=owner_ids)

    def rules_for_transaction(self, transaction: BankTransactionEntity) -> list[BankRuleEntity]:
        """Rules that apply to a transaction: the firm's plus its bank account owner's."""
        bank_account = self.db.get_bank_account(transaction.bank_account_id)
        owner_ids = [FIRM_OWNER]
        if bank_account is not None and bank_account.owner_id != FIRM_OWNER:
            owner_ids.append(bank_account.owner_id)
        return self.db.list_bank_rules(owner_ids=owner_ids)

    def suggest_category(self, transaction: BankTransactionEntity) -> Optional[BankRuleEntity]:
        """Return the first rule that matches the transaction, or None."""
        return find_matching_rule(transaction, self.rules_for_transaction(transaction))

    def apply_rules(self, bank_account_id: int) -> int:
        """Store rule suggestions on the account's unreconciled, uncategorized transactions.

        Returns:
            Number of transactions that received a suggestion
        """
        suggested = 0
        for txn in self.db.list_bank_transactions(bank_account_id=bank_account_id):
            if txn.status == BankTransactionStatus.RECONCILED or txn.category:
                continue
            rule = self.suggest_category(txn)
            if rule is None:
                continue
            self.db.update_bank_transaction(
                txn.id,
                {"category": rule.assign_category, "is_rule_match": True, "matched_rule_id": rule.id},
            )
            suggested += 1
        logger.info("Bank rules applied", extra={"bank_account_id": bank_account_id, "suggested": suggested})
        return suggested
