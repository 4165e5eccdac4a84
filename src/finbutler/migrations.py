"""Programmatic Alembic migration runner for finbutler.

Lets a host run the finance migrations at startup without shelling out to the
Alembic CLI. Each module with a ``migrations/`` folder owns one version chain,
named after the module and carried as its branch label.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
from pathlib import Path

from alembic.config import Config

from alembic import command

logger = logging.getLogger(__name__)

# Root of the alembic directory (sibling to src/)
ALEMBIC_DIR = Path(__file__).resolve().parent.parent.parent / "alembic"

# Root of the modules directory (src/finbutler/modules/)
MODULES_DIR = Path(__file__).resolve().parent / "modules"

_TARGET_SCHEMA_OPTION = "finbutler.target_schema"
_VERSION_TABLE_SCHEMA_OPTION = "version_table_schema"
_VALID_SCHEMA_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _has_migration_files(mig_dir: Path) -> bool:
    return mig_dir.is_dir() and any(
        f.suffix == ".py" and f.name != "__init__.py" for f in mig_dir.iterdir()
    )


def discover_chains() -> list[str]:
    """Return the sorted names of modules that ship at least one migration.

    Scans ``src/finbutler/modules/*/migrations/`` for ``.py`` files other than
    ``__init__.py``.
    """
    if not MODULES_DIR.is_dir():
        return []
    return [
        entry.name
        for entry in sorted(MODULES_DIR.iterdir())
        if entry.is_dir() and _has_migration_files(entry / "migrations")
    ]


def version_locations() -> list[str]:
    """Directories Alembic must scan so every known revision resolves."""
    return [str(MODULES_DIR / chain / "migrations") for chain in discover_chains()]


def _normalize_schema(schema: str | None) -> str | None:
    """Normalize and validate a schema name for migration execution."""
    if schema is None:
        return None
    normalized = schema.strip()
    if not normalized:
        return None
    if _VALID_SCHEMA_RE.fullmatch(normalized) is None:
        raise ValueError(f"Invalid migration schema name: {schema!r}")
    return normalized


def build_alembic_config(db_url: str, target_schema: str | None = None) -> Config:
    """Build an Alembic Config pointing at every module's version directory.

    Parameters
    ----------
    db_url:
        SQLAlchemy-compatible database URL.
    target_schema:
        Optional schema the tables (and ``alembic_version``) live in.
    """
    config = Config(str(ALEMBIC_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(ALEMBIC_DIR))
    # Config uses configparser interpolation, so '%' in URLs must be doubled.
    config.set_main_option("sqlalchemy.url", db_url.replace("%", "%%"))
    normalized_schema = _normalize_schema(target_schema)
    if normalized_schema is not None:
        config.set_main_option(_TARGET_SCHEMA_OPTION, normalized_schema)
        config.set_main_option(_VERSION_TABLE_SCHEMA_OPTION, normalized_schema)
    config.set_main_option("version_locations", os.pathsep.join(version_locations()))
    return config


def _upgrade_chain(config: Config, chain: str, schema: str | None) -> None:
    logger.info(
        "Running migration chain to head (chain=%s, schema=%s)",
        chain,
        schema or "<default>",
    )
    command.upgrade(config, f"{chain}@head")


async def run_migrations(db_url: str, chain: str = "finance", schema: str | None = None) -> None:
    """Upgrade *chain* (or every chain when ``"all"``) to head.

    Alembic's command API is synchronous, so the upgrade runs in a worker
    thread to keep the host's event loop responsive.
    """
    chains = discover_chains() if chain == "all" else [chain]
    unknown = [c for c in chains if c not in discover_chains()]
    if unknown:
        raise ValueError(f"Unknown migration chain(s): {', '.join(unknown)}")
    normalized_schema = _normalize_schema(schema)
    config = build_alembic_config(db_url, target_schema=normalized_schema)
    for resolved_chain in chains:
        await asyncio.to_thread(_upgrade_chain, config, resolved_chain, normalized_schema)
