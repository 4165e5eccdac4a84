"""CLI for finbutler: migrate the finance tables and serve the tools over MCP."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from finbutler import __version__
from finbutler.config import ConfigError, FinbutlerConfig, load_config

logger = logging.getLogger(__name__)

_config_dir_option = click.option(
    "--config-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory containing finbutler.toml",
)


def _load(config_dir: Path) -> FinbutlerConfig:
    from finbutler.core.logging import configure_logging

    try:
        config = load_config(config_dir)
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)
    configure_logging(
        level=config.logging.level,
        fmt=config.logging.format,
        log_root=config.logging.log_root,
        name=config.name,
    )
    return config


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """finbutler: conversational personal-finance tools."""


@cli.command("check-config")
@_config_dir_option
def check_config(config_dir: Path) -> None:
    """Validate finbutler.toml and print the effective settings."""
    try:
        config = load_config(config_dir)
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)
    click.echo(f"name: {config.name}")
    click.echo(f"default_currency: {config.default_currency}")
    click.echo(f"db: {config.db.name} (schema={config.db.schema or '<default>'})")
    click.echo(f"clarify_limit: {config.resolver.clarify_limit}")


@cli.command()
@_config_dir_option
def migrate(config_dir: Path) -> None:
    """Upgrade the finance tables to the latest revision."""
    from finbutler.db import Database
    from finbutler.migrations import run_migrations

    config = _load(config_dir)
    db = Database.from_env(config.db.name, schema=config.db.schema)
    asyncio.run(run_migrations(db.dsn, chain="all", schema=config.db.schema))
    click.echo("Migrations complete.")


@cli.command()
@_config_dir_option
@click.option("--user", "user_id", required=True, help="ID of the user the tools act for")
def serve(config_dir: Path, user_id: str) -> None:
    """Serve the finance tools over MCP stdio for a single user."""
    config = _load(config_dir)
    asyncio.run(_serve(config, user_id))


async def _serve(config: FinbutlerConfig, user_id: str) -> None:
    from fastmcp import FastMCP

    from finbutler.core.logging import set_user_context
    from finbutler.db import Database
    from finbutler.modules.finance import FinanceModule, FinanceModuleConfig

    db = Database.from_env(config.db.name, schema=config.db.schema)
    await db.connect()
    module = FinanceModule()
    module_config = FinanceModuleConfig(
        default_currency=config.default_currency,
        clarify_limit=config.resolver.clarify_limit,
    )
    mcp = FastMCP(config.name)
    try:
        await module.register_tools(mcp, module_config, db)
        await module.on_startup(module_config, db)
        set_user_context(user_id)
        logger.info("Serving finance tools for user %s", user_id)
        await mcp.run_async(transport="stdio")
    finally:
        await module.on_shutdown()
        await db.close()


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
