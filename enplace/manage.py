"""Maintenance queries: tidying tags, ingredients, units and AI run records."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator, List, Optional

from enplace.models import AIClassifierRun


@dataclass
class TagWithCount:
    """A tag with the number of recipes that carry it."""

    id: int
    name: str
    context: str
    count: int


@dataclass
class IngredientWithCount:
    """An ingredient with the number of recipe lines that use it."""

    id: int
    name: str
    count: int


@dataclass
class UnitWithCount:
    """A distinct unit value with the number of recipe lines that use it."""

    name: str
    count: int


@dataclass
class AIRunSummary:
    """A lightweight view of one AI run.

    ``recipe_name`` is empty when the recipe has been deleted; ``duration_ms``
    is -1 while the run is incomplete.
    """

    id: int
    recipe_name: str
    service_class: str
    ai_model: str
    success: bool
    duration_ms: int
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: Optional[datetime]


@contextmanager
def _transaction(conn: sqlite3.Connection) -> Iterator[None]:
    """Run the body atomically, rolling back everything if it raises."""
    conn.execute("SAVEPOINT manage_tx")
    try:
        yield
    except BaseException:
        conn.execute("ROLLBACK TO SAVEPOINT manage_tx")
        conn.execute("RELEASE SAVEPOINT manage_tx")
        raise
    conn.execute("RELEASE SAVEPOINT manage_tx")


def _timestamp(value: object) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    return datetime.fromisoformat(str(value))


def _duration_ms(started: Optional[datetime], completed: Optional[datetime]) -> int:
    if started is None or completed is None:
        return -1
    delta = completed - started
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    if micros >= 0:
        return micros // 1000
    return -((-micros) // 1000)


# --- Tag management ---


def list_tags_by_context(conn: sqlite3.Connection, context: str) -> List[TagWithCount]:
    """Return every tag in ``context`` with its recipe count, sorted by name."""
    rows = conn.execute(
        """
        SELECT t.id, t.name, t.context,
               COUNT(rt.recipe_id) AS count
        FROM tags t
        LEFT JOIN recipe_tags rt ON rt.tag_id = t.id
        WHERE t.context = ?
        GROUP BY t.id, t.name, t.context
        ORDER BY t.name""",
        (context,),
    ).fetchall()
    return [
        TagWithCount(id=row["id"], name=row["name"], context=row["context"], count=row["count"])
        for row in rows
    ]


def rename_tag(conn: sqlite3.Connection, tag_id: int, new_name: str) -> None:
    """Change a tag's name in place."""
    conn.execute("UPDATE tags SET name = ? WHERE id = ?", (new_name, tag_id))


def merge_tag(conn: sqlite3.Connection, source_id: int, target_id: int) -> None:
    """Move every recipe link from the source tag to the target, then delete the source."""
    with _transaction(conn):
        conn.execute(
            """
            INSERT OR IGNORE INTO recipe_tags (recipe_id, tag_id)
            SELECT recipe_id, ? FROM recipe_tags WHERE tag_id = ?""",
            (target_id, source_id),
        )
        conn.execute("DELETE FROM recipe_tags WHERE tag_id = ?", (source_id,))
        conn.execute("DELETE FROM tags WHERE id = ?", (source_id,))


def delete_tag(conn: sqlite3.Connection, tag_id: int) -> None:
    """Delete a tag; its recipe links are removed with it."""
    conn.execute("DELETE FROM tags WHERE id = ?", (tag_id,))


# --- Ingredient management ---


def list_ingredients_with_count(
    conn: sqlite3.Connection, search: str = ""
) -> List[IngredientWithCount]:
    """Return ingredients with usage counts, alphabetically.

    A non-empty ``search`` keeps only names containing it, ignoring case.
    """
    sql = """
        SELECT i.id, i.name,
               COUNT(ri.id) AS count
        FROM ingredients i
        LEFT JOIN recipe_ingredients ri ON ri.ingredient_id = i.id
        {where}
        GROUP BY i.id, i.name
        ORDER BY i.name"""
    if search:
        escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        rows = conn.execute(
            sql.format(where="WHERE i.name LIKE ? ESCAPE '\\'"),
            (f"%{escaped}%",),
        ).fetchall()
    else:
        rows = conn.execute(sql.format(where="")).fetchall()
    return [
        IngredientWithCount(id=row["id"], name=row["name"], count=row["count"])
        for row in rows
    ]


def rename_ingredient(conn: sqlite3.Connection, ingredient_id: int, new_name: str) -> None:
    """Change an ingredient's name."""
    conn.execute("UPDATE ingredients SET name = ? WHERE id = ?", (new_name, ingredient_id))


def merge_ingredient(conn: sqlite3.Connection, source_id: int, target_id: int) -> None:
    """Point every recipe line at the target ingredient, then delete the source."""
    with _transaction(conn):
        conn.execute(
            "UPDATE recipe_ingredients SET ingredient_id = ? WHERE ingredient_id = ?",
            (target_id, source_id),
        )
        conn.execute("DELETE FROM ingredients WHERE id = ?", (source_id,))


# --- Unit management ---


def list_units_with_count(conn: sqlite3.Connection) -> List[UnitWithCount]:
    """Return every distinct non-empty unit with its usage count, alphabetically."""
    rows = conn.execute(
        """
        SELECT unit AS name, COUNT(*) AS count
        FROM recipe_ingredients
        WHERE unit != ''
        GROUP BY unit
        ORDER BY unit"""
    ).fetchall()
    return [UnitWithCount(name=row["name"], count=row["count"]) for row in rows]


def rename_unit(conn: sqlite3.Connection, old_name: str, new_name: str) -> None:
    """Replace ``old_name`` with ``new_name`` on every recipe line."""
    conn.execute(
        "UPDATE recipe_ingredients SET unit = ? WHERE unit = ?", (new_name, old_name)
    )


def merge_unit(conn: sqlite3.Connection, source_name: str, target_name: str) -> None:
    """Fold one unit into another; the same as renaming it."""
    rename_unit(conn, source_name, target_name)


# --- AI run management ---


def list_ai_run_summaries(conn: sqlite3.Connection) -> List[AIRunSummary]:
    """Return every AI run, newest first, with its recipe's name when it still exists."""
    rows = conn.execute(
        """
        SELECT a.id, COALESCE(r.name, '') AS recipe_name,
               a.service_class, a.ai_model, a.success,
               a.started_at, a.completed_at, a.created_at
        FROM ai_classifier_runs a
        LEFT JOIN recipes r ON r.id = a.recipe_id
        ORDER BY a.created_at DESC, a.id DESC"""
    ).fetchall()
    summaries = []
    for row in rows:
        started = _timestamp(row["started_at"])
        completed = _timestamp(row["completed_at"])
        summaries.append(
            AIRunSummary(
                id=row["id"],
                recipe_name=row["recipe_name"],
                service_class=row["service_class"],
                ai_model=row["ai_model"],
                success=bool(row["success"]),
                duration_ms=_duration_ms(started, completed),
                started_at=started,
                completed_at=completed,
                created_at=_timestamp(row["created_at"]),
            )
        )
    return summaries


def get_ai_run(conn: sqlite3.Connection, run_id: int) -> AIClassifierRun:
    """Return the full AI run record; raise LookupError if it does not exist."""
    row = conn.execute(
        "SELECT * FROM ai_classifier_runs WHERE id = ?", (run_id,)
    ).fetchone()
    if row is None:
        raise LookupError(f"AI run {run_id} not found")
    return AIClassifierRun(
        id=row["id"],
        recipe_id=row["recipe_id"],
        service_class=row["service_class"],
        adapter=row["adapter"],
        ai_model=row["ai_model"],
        system_prompt=row["system_prompt"],
        user_prompt=row["user_prompt"],
        raw_response=row["raw_response"],
        success=bool(row["success"]),
        error_class=row["error_class"],
        error_message=row["error_message"],
        started_at=_timestamp(row["started_at"]),
        completed_at=_timestamp(row["completed_at"]),
        created_at=_timestamp(row["created_at"]),
    )


def delete_ai_run(conn: sqlite3.Connection, run_id: int) -> None:
    """Delete one AI run."""
    conn.execute("DELETE FROM ai_classifier_runs WHERE id = ?", (run_id,))


def delete_ai_runs_older_than(conn: sqlite3.Connection, age: timedelta) -> int:
    """Delete AI runs created more than ``age`` ago and return how many went."""
    cutoff = datetime.now() - age
    cursor = conn.execute(
        "DELETE FROM ai_classifier_runs WHERE created_at < ?", (cutoff,)
    )
    return cursor.rowcount