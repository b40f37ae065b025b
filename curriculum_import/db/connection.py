from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv
from psycopg2.extensions import make_dsn

from ..config.loader import ConfigError, DatabaseConfig

"""PostgreSQL connection handling.

接続情報の解決優先順位:
    1. `.env` で読み込まれた環境変数 (override=True で既存の値を上書き)
    2. DATABASE_URL / PGDSN があれば DSN 全体をそのまま使用
    3. 個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    4. config/import.yml の database セクション

接続先がどこにも設定されていない場合は ConfigurationError (ダミー接続にはしない)。
"""

__all__ = [
    "ConfigurationError",
    "ConnectionCheck",
    "load_env_file",
    "resolve_dsn",
    "connect",
    "check_connection",
]

logger = logging.getLogger(__name__)


class ConfigurationError(ConfigError):
    """Raised when no database connection settings are available."""


@dataclass(frozen=True)
class ConnectionCheck:
    ok: bool
    error: str | None = None


def load_env_file(path: Path = Path(".env"), override: bool = True) -> None:
    """Load .env with python-dotenv; a missing file is not an error."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn

    host = os.getenv("PGHOST") or db_cfg.host
    if not host:
        raise ConfigurationError(
            "database is not configured (set DATABASE_URL / PGHOST or database.host in config)"
        )
    port = os.getenv("PGPORT") or (str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER") or db_cfg.user or "postgres"
    password = os.getenv("PGPASSWORD") or db_cfg.password or ""
    database = os.getenv("PGDATABASE") or db_cfg.database or "postgres"
    # 空白や引用符を含む値は make_dsn がクォートする
    return make_dsn(host=host, port=port, user=user, dbname=database, password=password or None)


@contextmanager
def connect(db_cfg: DatabaseConfig) -> Iterator[Any]:
    """Yield a psycopg2 connection (autocommit off); always closed on exit."""
    conn = psycopg2.connect(resolve_dsn(db_cfg))
    conn.autocommit = False
    try:
        yield conn
    finally:
        try:
            conn.close()
        except Exception:  # pragma: no cover
            logger.debug("connection close failed", exc_info=True)


def check_connection(db_cfg: DatabaseConfig) -> ConnectionCheck:
    """Try to connect and run ``SELECT 1``; failures are returned, not raised."""
    try:
        with connect(db_cfg) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
    except ConfigurationError as e:
        return ConnectionCheck(ok=False, error=str(e))
    except psycopg2.Error as e:
        return ConnectionCheck(ok=False, error=str(e).strip())
    return ConnectionCheck(ok=True)
