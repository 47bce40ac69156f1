"""Flask CLI commands for role seeding and revocation-store maintenance."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from tokenauth.models.role import RoleType
from tokenauth.services.wiring import components
from tokenauth.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("tokenauth.services.tokens").setLevel(level)
    LOGGER.setLevel(level)


def seed_roles() -> dict[str, int]:
    """Create every missing :class:`RoleType`. :returns: created/existing counters."""
    summary = {"created": 0, "existing": 0}
    with SQLAlchemyUnitOfWork() as uow:
        for name in RoleType:
            _, created = uow.roles.ensure(name)
            summary["created" if created else "existing"] += 1
    return summary


@click.group("tokens")
@click.option("--verbose", is_flag=True, help="Enable verbose logging.")
def tokens_cli(verbose: bool) -> None:
    """Role seeding and token revocation maintenance."""
    _configure_logging(verbose)


@tokens_cli.command("seed-roles")
@with_appcontext
def seed_roles_command() -> None:
    """Create the CUSTOMER, SELLER and ADMIN roles when missing."""
    try:
        summary = seed_roles()
    except SQLAlchemyError as exc:
        raise click.ClickException(f"Seeding roles failed: {exc}") from exc
    click.echo(f"roles  created={summary['created']:>2}  existing={summary['existing']:>2}")


@tokens_cli.command("purge-revocations")
@with_appcontext
def purge_revocations_command() -> None:
    """Delete expired rows from the durable revocation tables."""
    try:
        counts = components().revocations.purge_expired()
    except SQLAlchemyError as exc:
        raise click.ClickException(f"Purge failed: {exc}") from exc
    click.echo(f"purged  tokens={counts.tokens}  users={counts.users}")


@tokens_cli.command("rehydrate-cache")
@with_appcontext
def rehydrate_cache_command() -> None:
    """Copy live revocation rows back into Redis (after a cache flush)."""
    try:
        counts = components().revocations.rehydrate_cache()
    except (RedisError, SQLAlchemyError) as exc:
        raise click.ClickException(f"Rehydration failed: {exc}") from exc
    click.echo(f"rehydrated  tokens={counts.tokens}  users={counts.users}")
