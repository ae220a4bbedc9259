"""Bank rule commands."""

import click
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.rules import BankRuleService


@click.group()
def rule_group():
    """Manage bank categorization rules."""
    pass


def _parse_conditions(ctx, conditions: tuple[str, ...]) -> list[dict[str, str]]:
    """Parse FIELD:OPERATOR:VALUE strings."""
    parsed = []
    for raw in conditions:
        parts = raw.split(":", 2)
        if len(parts) != 3:
            click.echo(f"Error: Invalid condition '{raw}'. Expected FIELD:OPERATOR:VALUE", err=True)
            ctx.exit(1)
        parsed.append({"field": parts[0].strip(), "operator": parts[1].strip(), "value": parts[2]})
    return parsed


@rule_group.command("create")
@click.argument("name")
@click.option("--category", required=True, help="Expense category assigned on match")
@click.option(
    "--condition",
    "conditions",
    multiple=True,
    required=True,
    help="Condition as FIELD:OPERATOR:VALUE (e.g. merchant:contains:starbucks); all must match",
)
@click.option("--owner", help="Rule owner (defaults to the current user; 'company' for firm rules)")
@click.option("--priority", type=int, help="Evaluation position (defaults to last)")
@click.pass_context
def create_rule(ctx, name: str, category: str, conditions: tuple[str, ...], owner: str | None, priority: int | None):
    """Create a bank rule.

    Fields are merchant, description and amount; operators are contains,
    equals and greater_than.

    Examples:
        ledgerkit rule create "Coffee Shops" --category "Meals & Ent" --condition merchant:contains:starbucks
        ledgerkit rule create "Big SaaS" --category "Software/CRM" --condition merchant:contains:adobe --condition amount:greater_than:-100
    """
    db = ctx.obj["db"]
    service = BankRuleService(db)

    try:
        rule = service.create_rule(
            ctx.obj["principal"],
            name=name,
            conditions=_parse_conditions(ctx, conditions),
            assign_category=category,
            owner_id=owner,
            priority=priority,
        )
        click.echo(f"Created rule '{rule.name}' (ID: {rule.id}, priority {rule.priority})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@rule_group.command("list")
@click.option("--owner", help="Only rules of this owner")
@click.pass_context
def list_rules(ctx, owner: str | None):
    """List rules in evaluation order."""
    db = ctx.obj["db"]
    service = BankRuleService(db)

    rules = service.list_rules(owner_id=owner)
    if not rules:
        click.echo("No rules found.")
        return

    for rule in rules:
        conditions = " AND ".join(f"{c.field.value} {c.operator.value} '{c.value}'" for c in rule.conditions)
        click.echo(
            f"{rule.priority:3d}. [{rule.id}] {rule.name} ({rule.owner_id}): {conditions} -> {rule.assign_category}"
        )


@rule_group.command("update")
@click.argument("rule_id", type=int)
@click.option("--name", help="New rule name")
@click.option("--category", help="New category")
@click.option("--condition", "conditions", multiple=True, help="Replace conditions (FIELD:OPERATOR:VALUE)")
@click.option("--priority", type=int, help="New evaluation position")
@click.pass_context
def update_rule(ctx, rule_id: int, name: str | None, category: str | None, conditions: tuple[str, ...], priority: int | None):
    """Update a bank rule."""
    db = ctx.obj["db"]
    service = BankRuleService(db)

    changes = {}
    if name is not None:
        changes["name"] = name
    if category is not None:
        changes["assign_category"] = category
    if conditions:
        changes["conditions"] = _parse_conditions(ctx, conditions)
    if priority is not None:
        changes["priority"] = priority
    if not changes:
        click.echo("Nothing to update.")
        return

    try:
        service.update_rule(ctx.obj["principal"], rule_id, changes)
        click.echo(f"Updated rule {rule_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@rule_group.command("delete")
@click.argument("rule_id", type=int)
@click.pass_context
def delete_rule(ctx, rule_id: int):
    """Delete a bank rule."""
    db = ctx.obj["db"]
    service = BankRuleService(db)

    try:
        service.delete_rule(ctx.obj["principal"], rule_id)
        click.echo(f"Deleted rule {rule_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
