from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..csvio.encoding import DEFAULT_ENCODINGS
from ..db.schedule_store import DEFAULT_TABLE

"""Config loader.

Responsibilities:
- Load YAML config (default config/import.yml)
- Validate against the bundled JSON schema (config_schema.json)
- Apply defaults for everything optional
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")

DEFAULT_CHUNK_SIZE = 10
DEFAULT_CHUNK_DELAY_SECONDS = 0.3
DEFAULT_PAGE_SIZE = 1000
DEFAULT_FETCH_RETRIES = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 1.0


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection fallback; environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    table: str = DEFAULT_TABLE
    encodings: tuple[str, ...] = DEFAULT_ENCODINGS
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_delay_seconds: float = DEFAULT_CHUNK_DELAY_SECONDS
    page_size: int = DEFAULT_PAGE_SIZE
    fetch_retries: int = DEFAULT_FETCH_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    database: DatabaseConfig = DatabaseConfig()


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing / not JSON, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def parse_config(data: dict[str, Any]) -> ImportConfig:
    _validate_config_schema(data)
    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(
        table=data.get("table", DEFAULT_TABLE),
        encodings=tuple(data.get("encodings", DEFAULT_ENCODINGS)),
        chunk_size=data.get("chunk_size", DEFAULT_CHUNK_SIZE),
        chunk_delay_seconds=data.get("chunk_delay_seconds", DEFAULT_CHUNK_DELAY_SECONDS),
        page_size=data.get("page_size", DEFAULT_PAGE_SIZE),
        fetch_retries=data.get("fetch_retries", DEFAULT_FETCH_RETRIES),
        retry_backoff_seconds=data.get("retry_backoff_seconds", DEFAULT_RETRY_BACKOFF_SECONDS),
        database=db,
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")
    return parse_config(data)
