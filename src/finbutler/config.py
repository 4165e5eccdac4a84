"""finbutler configuration loading and validation.

Reads finbutler.toml from a config directory, parses all sections, and returns
a validated FinbutlerConfig dataclass.
"""

from __future__ import annotations

import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "finbutler.toml"
DEFAULT_CURRENCY = "INR"
DEFAULT_CLARIFY_LIMIT = 5

# Pattern matching ${VAR_NAME}; supports alphanumeric + underscore variable names.
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_DB_SCHEMA_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_CURRENCY_PATTERN = re.compile(r"^[A-Za-z]{3}$")


class ConfigError(Exception):
    """Raised when finbutler configuration is missing, malformed, or invalid."""


@dataclass
class LoggingConfig:
    """Logging configuration from [finbutler.logging] section."""

    level: str = "INFO"
    format: str = "text"  # "text" or "json"
    log_root: str | None = None


@dataclass
class DbConfig:
    """Database target from [finbutler.db] section."""

    name: str = "finbutler"
    schema: str | None = None


@dataclass
class ResolverConfig:
    """Entity resolution tuning from [finbutler.resolver] section.

    ``clarify_limit`` caps how many candidates a clarification offers and how
    many rows a fuzzy lookup fetches.
    """

    clarify_limit: int = DEFAULT_CLARIFY_LIMIT


@dataclass
class FinbutlerConfig:
    """Top-level parsed configuration."""

    name: str = "finbutler"
    default_currency: str = DEFAULT_CURRENCY
    db: DbConfig = field(default_factory=DbConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)


def resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${VAR}`` references in strings, dicts and lists.

    Parameters
    ----------
    value:
        Parsed TOML value (any nesting of dict / list / scalar).

    Returns
    -------
    Any
        The same structure with every string reference substituted.

    Raises
    ------
    ConfigError
        If a referenced environment variable is not set.
    """
    if isinstance(value, str):
        return _resolve_string(value)
    if isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_env_vars(v) for v in value]
    return value


def _resolve_string(s: str) -> str:
    missing: list[str] = []

    def _replace(match: re.Match) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            missing.append(var)
            return match.group(0)
        return resolved

    result = _ENV_VAR_PATTERN.sub(_replace, s)
    if missing:
        raise ConfigError(
            f"Environment variable(s) not set: {', '.join(sorted(set(missing)))}"
        )
    return result


def _parse_db(section: dict[str, Any], name: str) -> DbConfig:
    db_name = str(section.get("name", name)).strip()
    if not db_name:
        raise ConfigError("finbutler.db.name must be a non-empty string")

    raw_schema = section.get("schema")
    if raw_schema is None:
        return DbConfig(name=db_name)
    if not isinstance(raw_schema, str):
        raise ConfigError("finbutler.db.schema must be a string when set")
    schema = raw_schema.strip()
    if _DB_SCHEMA_PATTERN.fullmatch(schema) is None:
        raise ConfigError(
            f"Invalid finbutler.db.schema: {raw_schema!r}. "
            "Expected a valid SQL identifier-style value."
        )
    return DbConfig(name=db_name, schema=schema)


def _parse_logging(section: dict[str, Any]) -> LoggingConfig:
    level = str(section.get("level", "INFO")).upper()
    fmt = str(section.get("format", "text")).lower()
    if fmt not in ("text", "json"):
        raise ConfigError(
            f"Invalid finbutler.logging.format: {fmt!r}. Expected 'text' or 'json'."
        )
    return LoggingConfig(level=level, format=fmt, log_root=section.get("log_root"))


def _parse_resolver(section: dict[str, Any]) -> ResolverConfig:
    raw = section.get("clarify_limit", DEFAULT_CLARIFY_LIMIT)
    try:
        limit = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"finbutler.resolver.clarify_limit must be an integer: {raw!r}") from exc
    if not 2 <= limit <= 20:
        raise ConfigError(
            f"Invalid finbutler.resolver.clarify_limit: {limit}. Must be between 2 and 20."
        )
    return ResolverConfig(clarify_limit=limit)


def load_config(config_dir: Path) -> FinbutlerConfig:
    """Load and validate ``finbutler.toml`` from *config_dir*.

    Parameters
    ----------
    config_dir:
        Directory containing ``finbutler.toml``.

    Returns
    -------
    FinbutlerConfig
        Fully parsed and validated configuration.

    Raises
    ------
    ConfigError
        If the file is missing, contains invalid TOML, or has invalid values.
    """
    toml_path = Path(config_dir) / CONFIG_FILENAME

    if not toml_path.exists():
        raise ConfigError(f"Config file not found: {toml_path}")

    try:
        data = tomllib.loads(toml_path.read_bytes().decode())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {toml_path}: {exc}") from exc

    data = resolve_env_vars(data)

    section = data.get("finbutler")
    if not isinstance(section, dict):
        raise ConfigError("Missing [finbutler] section in config")

    name = str(section.get("name", "finbutler")).strip() or "finbutler"

    currency = str(section.get("default_currency", DEFAULT_CURRENCY)).strip()
    if _CURRENCY_PATTERN.fullmatch(currency) is None:
        raise ConfigError(
            f"Invalid finbutler.default_currency: {currency!r}. Expected a 3-letter code."
        )

    return FinbutlerConfig(
        name=name,
        default_currency=currency.upper(),
        db=_parse_db(section.get("db", {}), name),
        logging=_parse_logging(section.get("logging", {})),
        resolver=_parse_resolver(section.get("resolver", {})),
    )
