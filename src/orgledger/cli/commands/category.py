"""Category management commands."""

import click
from orgledger.cli.error_handling import handle_domain_error
from orgledger.domain.category import CategoryService, is_default_category
from orgledger.domain.entities import CategoryType

CATEGORY_TYPES = [t.value for t in CategoryType]


@click.group()
def category_group():
    """Manage income, expense and liability categories."""
    pass


@category_group.command("list")
@click.option("--type", "category_type", type=click.Choice(CATEGORY_TYPES), help="Only list one type")
@click.pass_context
def list_categories(ctx, category_type: str | None):
    """List categories grouped by type."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    categories = service.list_categories(category_type=category_type)
    if not categories:
        click.echo("No categories found. Run 'orgledger category init' to create the default categories.")
        return

    current_type = None
    for cat in categories:
        if cat.category_type != current_type:
            current_type = cat.category_type
            click.echo(f"\n{current_type.value.capitalize()}:")
        flags = []
        if is_default_category(cat.name, cat.category_type):
            flags.append("default")
        if cat.track_members:
            flags.append("tracks members")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        click.echo(f"  {cat.name}{suffix} (ID: {cat.id})")


@category_group.command("add")
@click.argument("name")
@click.option(
    "--type",
    "category_type",
    type=click.Choice(CATEGORY_TYPES),
    default=CategoryType.EXPENSE.value,
    show_default=True,
    help="Category type",
)
@click.option("--description", help="Category description")
@click.option("--track-members", is_flag=True, help="Record the contributing member (income only)")
@click.pass_context
def add_category(ctx, name: str, category_type: str, description: str | None, track_members: bool):
    """Create a new category."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    try:
        category_id = service.create_category(
            name=name,
            category_type=category_type,
            description=description,
            track_members=track_members,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created {category_type} category '{name}' (ID: {category_id})")


@category_group.command("rename")
@click.argument("category_id")
@click.argument("new_name")
@click.pass_context
def rename_category(ctx, category_id: str, new_name: str):
    """Rename a category. Default categories cannot be renamed."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    try:
        service.update_category(category_id, name=new_name)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Renamed category {category_id} to '{new_name}'")


@category_group.command("delete")
@click.argument("category_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_category(ctx, category_id: str, yes: bool):
    """Delete an unused category."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    category = service.get_category(category_id)
    if category is None:
        click.echo(f"Error: Category {category_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Delete category '{category.name}'?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_category(category_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted category '{category.name}'")


@category_group.command("init")
@click.pass_context
def init_categories(ctx):
    """Create the default system categories."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    created = service.init_default_categories()
    if created:
        click.echo(f"Created {created} default categor{'ies' if created != 1 else 'y'}.")
    else:
        click.echo("Default categories already exist.")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
