"""Budget commands."""

from datetime import date

import click
from orgledger.cli.error_handling import handle_domain_error
from orgledger.cli.parsing import amount_or_exit, money
from orgledger.cli.posting_display import echo_postings
from orgledger.domain.account import AccountService
from orgledger.domain.budget import BudgetService
from orgledger.domain.entities import Budget


@click.group()
def budget_group():
    """Set spending limits for expense categories."""
    pass


def echo_budget_line(ctx: click.Context, budget: Budget) -> None:
    flag = " OVER" if budget.is_over_budget else ""
    click.echo(
        f"{budget.period:8s} {budget.category[:20]:20s} {money(ctx, budget.budgeted):>14s} "
        f"{money(ctx, budget.spent):>14s} {money(ctx, budget.remaining):>14s} "
        f"{budget.percent_used:>6}%{flag}  {budget.id}"
    )


@budget_group.command("add")
@click.argument("category")
@click.argument("amount")
@click.option("--period", help="YYYY, YYYY-MM or YYYY-Qn; defaults to the current month")
@click.pass_context
def add_budget(ctx, category: str, amount: str, period: str | None):
    """Budget AMOUNT for an expense CATEGORY.

    Examples:
        orgledger budget add Utilities 500 --period 2024-03
        orgledger budget add Utilities 1,500 --period 2024-Q2
    """
    db = ctx.obj["db"]
    service = BudgetService(db)
    minor = amount_or_exit(ctx, amount)
    period = period or date.today().strftime("%Y-%m")

    try:
        budget_id = service.create_budget(category=category, period=period, budgeted=minor)
    except ValueError as e:
        handle_domain_error(ctx, e)
    budget = service.require_budget(budget_id)
    click.echo(f"Created budget for {category} in {budget.period}: {money(ctx, minor)} (ID: {budget_id})")


@budget_group.command("list")
@click.option("--period", help="Only budgets for this period")
@click.option("--category", help="Only budgets for this category")
@click.pass_context
def list_budgets(ctx, period: str | None, category: str | None):
    """List budgets with spending so far."""
    db = ctx.obj["db"]

    try:
        budgets = BudgetService(db).list_budgets(period=period, category=category)
    except ValueError as e:
        handle_domain_error(ctx, e)
    if not budgets:
        click.echo("No budgets found.")
        return

    click.echo(
        f"\n{'Period':8s} {'Category':20s} {'Budgeted':>14s} {'Spent':>14s} {'Remaining':>14s}   Used"
    )
    click.echo("-" * 110)
    for budget in budgets:
        echo_budget_line(ctx, budget)
    click.echo("-" * 110)

    total_budgeted = sum(b.budgeted for b in budgets)
    total_spent = sum(b.spent for b in budgets)
    click.echo(f"Total budgeted: {money(ctx, total_budgeted)}")
    click.echo(f"Total spent: {money(ctx, total_spent)}")
    click.echo(f"Remaining: {money(ctx, total_budgeted - total_spent)}")


@budget_group.command("show")
@click.argument("budget_id")
@click.pass_context
def show_budget(ctx, budget_id: str):
    """Show a budget and the expenses counted against it."""
    db = ctx.obj["db"]
    service = BudgetService(db)

    try:
        budget = service.require_budget(budget_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Budget {budget.id}: {budget.category}, {budget.period}")
    click.echo(f"  Budgeted:  {money(ctx, budget.budgeted)}")
    click.echo(f"  Spent:     {money(ctx, budget.spent)} ({budget.percent_used}%)")
    click.echo(f"  Remaining: {money(ctx, budget.remaining)}")
    if budget.is_over_budget:
        click.echo("  Over budget")

    postings = service.postings(budget_id)
    if postings:
        account_names = {a.id: a.name for a in AccountService(db).list_accounts()}
        echo_postings(ctx, postings, account_names)


@budget_group.command("edit")
@click.argument("budget_id")
@click.option("--amount", help="New budgeted amount")
@click.option("--category", help="New expense category")
@click.option("--period", help="New period")
@click.pass_context
def edit_budget(ctx, budget_id: str, amount: str | None, category: str | None, period: str | None):
    """Change a budget's amount, category or period."""
    db = ctx.obj["db"]
    if amount is None and category is None and period is None:
        click.echo("Error: Nothing to change. Use --amount, --category or --period.", err=True)
        ctx.exit(1)
    minor = amount_or_exit(ctx, amount) if amount is not None else None

    try:
        budget = BudgetService(db).update_budget(
            budget_id, category=category, period=period, budgeted=minor
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated budget {budget.id}")
    echo_budget_line(ctx, budget)


@budget_group.command("delete")
@click.argument("budget_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_budget(ctx, budget_id: str, yes: bool):
    """Delete a budget. Postings are not affected."""
    db = ctx.obj["db"]
    service = BudgetService(db)
    budget = service.get_budget(budget_id)
    if budget is None:
        click.echo(f"Error: Budget {budget_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Delete the {budget.period} budget for {budget.category}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_budget(budget_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted budget {budget_id}")


def register_commands(cli):
    """Register budget commands with main CLI."""
    cli.add_command(budget_group, name="budget")
