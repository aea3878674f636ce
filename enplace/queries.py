"""Queries over recipes, ingredients, tags and AI run records."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from enplace.models import (
    TAG_CONTEXT_COOKING_METHODS,
    TAG_CONTEXT_COURSES,
    TAG_CONTEXT_CULTURAL_INFLUENCES,
    TAG_CONTEXT_DIETARY_RESTRICTIONS,
    AIClassifierRun,
    Recipe,
    RecipeIngredient,
    Tag,
)


@dataclass
class RecipeFilter:
    """Search and filter parameters for listing recipes.

    An empty ``status_filter`` matches every status.
    """

    query: str = ""
    courses: List[str] = field(default_factory=list)
    cooking_methods: List[str] = field(default_factory=list)
    cultural_influences: List[str] = field(default_factory=list)
    dietary_restrictions: List[str] = field(default_factory=list)
    status_filter: str = ""


def _recipe_from_row(row: sqlite3.Row) -> Recipe:
    return Recipe(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        directions=row["directions"],
        preparation_time=row["preparation_time"],
        cooking_time=row["cooking_time"],
        servings=row["servings"],
        serving_units=row["serving_units"],
        source_url=row["source_url"],
        source_text=row["source_text"],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _ingredient_from_row(row: sqlite3.Row) -> RecipeIngredient:
    return RecipeIngredient(
        id=row["id"],
        recipe_id=row["recipe_id"],
        ingredient_id=row["ingredient_id"],
        quantity=row["quantity"],
        unit=row["unit"],
        descriptor=row["descriptor"],
        section=row["section"],
        position=row["position"],
        ingredient_name=row["ingredient_name"],
    )


def _tag_from_row(row: sqlite3.Row) -> Tag:
    return Tag(id=row["id"], name=row["name"], context=row["context"])


def _normalize(name: str) -> str:
    return name.strip().lower()


# --- Recipes ---


def create_recipe(conn: sqlite3.Connection, recipe: Recipe) -> int:
    """Insert a new recipe and return its ID."""
    now = datetime.now()
    cursor = conn.execute(
        """
        INSERT INTO recipes (name, description, directions, preparation_time, cooking_time,
          servings, serving_units, source_url, source_text, status, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            recipe.name,
            recipe.description,
            recipe.directions,
            recipe.preparation_time,
            recipe.cooking_time,
            recipe.servings,
            recipe.serving_units,
            recipe.source_url,
            recipe.source_text,
            recipe.status,
            now,
            now,
        ),
    )
    return cursor.lastrowid


def update_recipe_status(conn: sqlite3.Connection, recipe_id: int, status: str) -> None:
    """Change only a recipe's status and update time."""
    conn.execute(
        "UPDATE recipes SET status = ?, updated_at = ? WHERE id = ?",
        (status, datetime.now(), recipe_id),
    )


def update_recipe_fields(conn: sqlite3.Connection, recipe: Recipe) -> None:
    """Write a recipe's editable fields back to its row."""
    conn.execute(
        """
        UPDATE recipes
        SET name = ?, description = ?, directions = ?,
            preparation_time = ?, cooking_time = ?,
            servings = ?, serving_units = ?,
            source_url = ?,
            status = ?, updated_at = ?
        WHERE id = ?""",
        (
            recipe.name,
            recipe.description,
            recipe.directions,
            recipe.preparation_time,
            recipe.cooking_time,
            recipe.servings,
            recipe.serving_units,
            recipe.source_url,
            recipe.status,
            datetime.now(),
            recipe.id,
        ),
    )


def delete_recipe(conn: sqlite3.Connection, recipe_id: int) -> None:
    """Remove a recipe; its ingredient lines and tag links go with it."""
    conn.execute("DELETE FROM recipes WHERE id = ?", (recipe_id,))


def get_recipe_by_url(conn: sqlite3.Connection, url: str) -> Optional[Recipe]:
    """Return the recipe whose source URL matches ``url`` case-insensitively, or None."""
    row = conn.execute(
        "SELECT * FROM recipes WHERE source_url = ? COLLATE NOCASE", (url,)
    ).fetchone()
    return _recipe_from_row(row) if row is not None else None


def get_recipe(conn: sqlite3.Connection, recipe_id: int) -> Recipe:
    """Return a recipe with its ingredients and tags; raise LookupError if absent."""
    row = conn.execute("SELECT * FROM recipes WHERE id = ?", (recipe_id,)).fetchone()
    if row is None:
        raise LookupError(f"recipe {recipe_id} not found")
    recipe = _recipe_from_row(row)
    recipe.ingredients = get_recipe_ingredients(conn, recipe_id)
    recipe.tags = get_recipe_tags(conn, recipe_id)
    return recipe


def list_recipes(conn: sqlite3.Connection, recipe_filter: RecipeFilter) -> List[Recipe]:
    """Return recipes matching the filter, newest first, with tags loaded.

    Tag filters are ANDed across contexts and ORed within one context.
    """
    conditions: List[str] = []
    args: List[object] = []

    if recipe_filter.status_filter:
        conditions.append("r.status = ?")
        args.append(recipe_filter.status_filter)

    if recipe_filter.query:
        conditions.append(
            """(
            r.name LIKE ? OR EXISTS (
                SELECT 1 FROM recipe_ingredients ri
                JOIN ingredients i ON i.id = ri.ingredient_id
                WHERE ri.recipe_id = r.id AND i.name LIKE ?
            )
        )"""
        )
        pattern = f"%{recipe_filter.query}%"
        args.extend((pattern, pattern))

    tag_filters: Dict[str, Iterable[str]] = {
        TAG_CONTEXT_COURSES: recipe_filter.courses,
        TAG_CONTEXT_COOKING_METHODS: recipe_filter.cooking_methods,
        TAG_CONTEXT_CULTURAL_INFLUENCES: recipe_filter.cultural_influences,
        TAG_CONTEXT_DIETARY_RESTRICTIONS: recipe_filter.dietary_restrictions,
    }
    for context, values in tag_filters.items():
        values = list(values)
        if not values:
            continue
        placeholders = ",".join("?" * len(values))
        conditions.append(
            f"""EXISTS (
            SELECT 1 FROM recipe_tags rt
            JOIN tags t ON t.id = rt.tag_id
            WHERE rt.recipe_id = r.id AND t.context = ? AND t.name IN ({placeholders})
        )"""
        )
        args.append(context)
        args.extend(values)

    where = "WHERE " + " AND ".join(conditions) if conditions else ""
    sql = f"SELECT r.* FROM recipes r {where} ORDER BY r.created_at DESC, r.id DESC"

    recipes = [_recipe_from_row(row) for row in conn.execute(sql, args).fetchall()]
    for recipe in recipes:
        recipe.tags = get_recipe_tags(conn, recipe.id)
    return recipes


# --- Ingredients & recipe ingredients ---


def find_or_create_ingredient(conn: sqlite3.Connection, name: str) -> int:
    """Return the ID of the ingredient with this (normalised) name, creating it if needed."""
    name = _normalize(name)
    row = conn.execute("SELECT id FROM ingredients WHERE name = ?", (name,)).fetchone()
    if row is not None:
        return row["id"]
    cursor = conn.execute(
        "INSERT INTO ingredients (name, created_at) VALUES (?, ?)",
        (name, datetime.now()),
    )
    return cursor.lastrowid


def insert_recipe_ingredient(conn: sqlite3.Connection, ingredient: RecipeIngredient) -> None:
    """Add one ingredient line to a recipe."""
    conn.execute(
        """
        INSERT INTO recipe_ingredients
          (recipe_id, ingredient_id, quantity, unit, descriptor, section, position)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (
            ingredient.recipe_id,
            ingredient.ingredient_id,
            ingredient.quantity,
            ingredient.unit,
            ingredient.descriptor,
            ingredient.section,
            ingredient.position,
        ),
    )


def delete_recipe_ingredients(conn: sqlite3.Connection, recipe_id: int) -> None:
    """Remove every ingredient line of a recipe."""
    conn.execute("DELETE FROM recipe_ingredients WHERE recipe_id = ?", (recipe_id,))


def get_recipe_ingredients(conn: sqlite3.Connection, recipe_id: int) -> List[RecipeIngredient]:
    """Return a recipe's ingredient lines ordered by section, then position."""
    rows = conn.execute(
        """
        SELECT ri.*, i.name AS ingredient_name
        FROM recipe_ingredients ri
        JOIN ingredients i ON i.id = ri.ingredient_id
        WHERE ri.recipe_id = ?
        ORDER BY ri.section, ri.position""",
        (recipe_id,),
    ).fetchall()
    return [_ingredient_from_row(row) for row in rows]


# --- Tags ---


def find_or_create_tag(conn: sqlite3.Connection, name: str, context: str) -> int:
    """Return the ID of the tag with this (normalised) name in ``context``, creating it if needed."""
    name = _normalize(name)
    row = conn.execute(
        "SELECT id FROM tags WHERE name = ? AND context = ?", (name, context)
    ).fetchone()
    if row is not None:
        return row["id"]
    cursor = conn.execute(
        "INSERT INTO tags (name, context) VALUES (?, ?)", (name, context)
    )
    return cursor.lastrowid


def attach_tag(conn: sqlite3.Connection, recipe_id: int, tag_id: int) -> None:
    """Link a tag to a recipe; linking twice is harmless."""
    conn.execute(
        "INSERT OR IGNORE INTO recipe_tags (recipe_id, tag_id) VALUES (?, ?)",
        (recipe_id, tag_id),
    )


def delete_recipe_tags(conn: sqlite3.Connection, recipe_id: int) -> None:
    """Unlink every tag from a recipe."""
    conn.execute("DELETE FROM recipe_tags WHERE recipe_id = ?", (recipe_id,))


def get_recipe_tags(conn: sqlite3.Connection, recipe_id: int) -> List[Tag]:
    """Return a recipe's tags ordered by context, then name."""
    rows = conn.execute(
        """
        SELECT t.*
        FROM tags t
        JOIN recipe_tags rt ON rt.tag_id = t.id
        WHERE rt.recipe_id = ?
        ORDER BY t.context, t.name""",
        (recipe_id,),
    ).fetchall()
    return [_tag_from_row(row) for row in rows]


def all_ingredient_names(conn: sqlite3.Connection) -> List[str]:
    """Return every ingredient name alphabetically."""
    rows = conn.execute("SELECT name FROM ingredients ORDER BY name").fetchall()
    return [row["name"] for row in rows]


def all_units(conn: sqlite3.Connection) -> List[str]:
    """Return every distinct non-empty unit in use, alphabetically."""
    rows = conn.execute(
        "SELECT DISTINCT unit FROM recipe_ingredients WHERE unit != '' ORDER BY unit"
    ).fetchall()
    return [row["unit"] for row in rows]


def save_recipe(
    conn: sqlite3.Connection, recipe: Recipe, tag_names: Dict[str, List[str]]
) -> None:
    """Create (id 0) or update a recipe, replacing its tags and ingredient lines.

    Ingredient lines are matched by ``ingredient_name``; lines without one are
    skipped. A new recipe's ID is written back to ``recipe.id``.
    """
    if recipe.id == 0:
        recipe.id = create_recipe(conn, recipe)
    else:
        update_recipe_fields(conn, recipe)

    delete_recipe_tags(conn, recipe.id)
    for context, names in tag_names.items():
        for name in names:
            if not name:
                continue
            attach_tag(conn, recipe.id, find_or_create_tag(conn, name, context))

    delete_recipe_ingredients(conn, recipe.id)
    for position, line in enumerate(recipe.ingredients):
        if not line.ingredient_name:
            continue
        ingredient_id = find_or_create_ingredient(conn, line.ingredient_name)
        insert_recipe_ingredient(
            conn,
            replace(
                line,
                recipe_id=recipe.id,
                ingredient_id=ingredient_id,
                position=position,
            ),
        )


def all_tags_by_context(conn: sqlite3.Connection, context: str) -> List[str]:
    """Return the names of tags in ``context`` that are attached to some recipe."""
    rows = conn.execute(
        """
        SELECT DISTINCT t.name
        FROM tags t
        JOIN recipe_tags rt ON rt.tag_id = t.id
        WHERE t.context = ?
        ORDER BY t.name""",
        (context,),
    ).fetchall()
    return [row["name"] for row in rows]


# --- AI classifier runs ---


def create_ai_run(conn: sqlite3.Connection, run: AIClassifierRun) -> int:
    """Insert an in-progress AI run record and return its ID."""
    now = datetime.now()
    cursor = conn.execute(
        """
        INSERT INTO ai_classifier_runs
          (recipe_id, service_class, adapter, ai_model,
           system_prompt, user_prompt, success, started_at, created_at)
        VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?)""",
        (
            run.recipe_id,
            run.service_class,
            run.adapter,
            run.ai_model,
            run.system_prompt,
            run.user_prompt,
            now,
            now,
        ),
    )
    return cursor.lastrowid


def complete_ai_run(conn: sqlite3.Connection, run_id: int, raw_response: str) -> None:
    """Mark an AI run as succeeded and store its raw response."""
    conn.execute(
        """
        UPDATE ai_classifier_runs
        SET success = 1, raw_response = ?, completed_at = ?
        WHERE id = ?""",
        (raw_response, datetime.now(), run_id),
    )


def fail_ai_run(
    conn: sqlite3.Connection, run_id: int, error_class: str, error_message: str
) -> None:
    """Mark an AI run as failed with error details."""
    conn.execute(
        """
        UPDATE ai_classifier_runs
        SET success = 0, error_class = ?, error_message = ?, completed_at = ?
        WHERE id = ?""",
        (error_class, error_message, datetime.now(), run_id),
    )