from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from ..models.config_models import DatabaseConfig

"""PostgreSQL connection helpers.

Connection settings are resolved in this order:
    1. DATABASE_URL / PGDSN (full DSN), ``.env`` values override the process env
    2. individual PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. the ``database`` section of config/import.yml (fills what is missing)
"""

logger = logging.getLogger(__name__)

__all__ = [
    "load_env_file",
    "resolve_dsn",
    "db_connection",
]


def load_env_file(path: Path, override: bool = True) -> bool:
    """Load ``.env`` with python-dotenv; returns True when the file was read."""
    if not path.exists():
        return False
    loaded = load_dotenv(dotenv_path=path, override=override)
    logger.debug("loaded env file %s", path)
    return bool(loaded)


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def db_connection(db_cfg: DatabaseConfig) -> Iterator[psycopg2.extensions.connection]:  # pragma: no cover
    """Open a psycopg2 connection; stores commit / roll back per record themselves."""
    conn = psycopg2.connect(resolve_dsn(db_cfg))
    conn.autocommit = False
    try:
        yield conn
    finally:
        conn.close()
