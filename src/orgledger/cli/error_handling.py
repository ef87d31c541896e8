"""CLI error handling helpers."""

import logging

import click

from orgledger.domain.errors import DomainError, PartialCommitError

logger = logging.getLogger(__name__)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure.

    A partial commit also gets its step detail logged; the user sees one message.
    """
    if isinstance(error, PartialCommitError):
        logger.error(
            "%s: completed %s, failed at %s, rolled back: %s",
            error.recipe,
            ", ".join(error.completed_steps),
            error.failed_step,
            error.rolled_back,
        )
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)
