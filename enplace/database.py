"""SQLite storage: opening the recipe database and applying its schema."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Protocol, Tuple, Union
import os


class _MigrationLog(Protocol):
    def printf(self, format: str, *args: Any) -> None: ...


def _adapt_datetime(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.isoformat(" ", "microseconds")


def _convert_timestamp(raw: bytes) -> datetime:
    return datetime.fromisoformat(raw.decode("utf-8"))


# Timestamps are stored as fixed-width local-time text so they sort and
# compare correctly as strings.
sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_converter("TIMESTAMP", _convert_timestamp)


_INITIAL_SCHEMA = """
CREATE TABLE recipes (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    name             TEXT NOT NULL DEFAULT '',
    description      TEXT NOT NULL DEFAULT '',
    directions       TEXT NOT NULL DEFAULT '',
    preparation_time INTEGER,
    cooking_time     INTEGER,
    servings         INTEGER,
    serving_units    TEXT NOT NULL DEFAULT '',
    source_url       TEXT NOT NULL DEFAULT '',
    source_text      TEXT NOT NULL DEFAULT '',
    status           TEXT NOT NULL DEFAULT 'draft',
    created_at       TIMESTAMP NOT NULL,
    updated_at       TIMESTAMP NOT NULL
);

CREATE UNIQUE INDEX idx_recipes_source_url
    ON recipes (source_url COLLATE NOCASE)
    WHERE source_url != '';

CREATE INDEX idx_recipes_created_at ON recipes (created_at);

CREATE TABLE ingredients (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    name       TEXT NOT NULL UNIQUE,
    created_at TIMESTAMP
);

CREATE TABLE recipe_ingredients (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    recipe_id     INTEGER NOT NULL REFERENCES recipes (id) ON DELETE CASCADE,
    ingredient_id INTEGER NOT NULL REFERENCES ingredients (id),
    quantity      TEXT NOT NULL DEFAULT '',
    unit          TEXT NOT NULL DEFAULT '',
    descriptor    TEXT NOT NULL DEFAULT '',
    section       TEXT NOT NULL DEFAULT '',
    position      INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX idx_recipe_ingredients_recipe ON recipe_ingredients (recipe_id);

CREATE TABLE tags (
    id      INTEGER PRIMARY KEY AUTOINCREMENT,
    name    TEXT NOT NULL,
    context TEXT NOT NULL,
    UNIQUE (name, context)
);

CREATE TABLE recipe_tags (
    recipe_id INTEGER NOT NULL REFERENCES recipes (id) ON DELETE CASCADE,
    tag_id    INTEGER NOT NULL REFERENCES tags (id) ON DELETE CASCADE,
    PRIMARY KEY (recipe_id, tag_id)
);

CREATE TABLE ai_classifier_runs (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    recipe_id     INTEGER REFERENCES recipes (id) ON DELETE SET NULL,
    service_class TEXT NOT NULL DEFAULT '',
    adapter       TEXT NOT NULL DEFAULT '',
    ai_model      TEXT NOT NULL DEFAULT '',
    system_prompt TEXT NOT NULL DEFAULT '',
    user_prompt   TEXT NOT NULL DEFAULT '',
    raw_response  TEXT NOT NULL DEFAULT '',
    success       INTEGER NOT NULL DEFAULT 0,
    error_class   TEXT NOT NULL DEFAULT '',
    error_message TEXT NOT NULL DEFAULT '',
    started_at    TIMESTAMP,
    completed_at  TIMESTAMP,
    created_at    TIMESTAMP NOT NULL
);
"""

_MIGRATIONS: Tuple[Tuple[str, str], ...] = (
    ("00001_initial_schema.sql", _INITIAL_SCHEMA),
)


def _connect(target: str) -> sqlite3.Connection:
    conn = sqlite3.connect(
        target,
        detect_types=sqlite3.PARSE_DECLTYPES,
        isolation_level=None,
    )
    conn.row_factory = sqlite3.Row
    return conn


def _run_migrations(conn: sqlite3.Connection, logger: Optional[_MigrationLog]) -> None:
    current = conn.execute("PRAGMA user_version").fetchone()[0]
    applied = current
    for version, (name, sql) in enumerate(_MIGRATIONS, start=1):
        if version <= current:
            continue
        script = f"BEGIN;\n{sql}\nPRAGMA user_version = {version};\nCOMMIT;"
        try:
            conn.executescript(script)
        except sqlite3.Error:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            if logger is not None:
                logger.printf("FAIL %s", name)
            raise
        applied = version
        if logger is not None:
            logger.printf("OK   %s", name)
    if logger is None:
        return
    if applied == current:
        logger.printf("no migrations to run. current version: %d", current)
    else:
        logger.printf("successfully migrated database to version: %d", applied)


def _prepare(conn: sqlite3.Connection, logger: Optional[_MigrationLog]) -> None:
    conn.execute("PRAGMA foreign_keys = ON")
    _run_migrations(conn, logger)


def open_database(
    db_path: Union[str, "os.PathLike[str]"],
    logger: Optional[_MigrationLog] = None,
) -> sqlite3.Connection:
    """Open (or create) the database at ``db_path`` and apply pending migrations.

    ``logger`` receives migration progress; None keeps migrations silent.
    """
    path = Path(db_path)
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    conn = _connect(str(path))
    try:
        conn.execute("PRAGMA journal_mode = WAL")
        _prepare(conn, logger)
    except BaseException:
        conn.close()
        raise
    return conn


def open_memory() -> sqlite3.Connection:
    """Open a migrated in-memory database."""
    conn = _connect(":memory:")
    try:
        _prepare(conn, None)
    except BaseException:
        conn.close()
        raise
    return conn