import sqlite3

import pytest

from enplace import queries as db
from enplace.database import open_memory
from enplace.models import (
    STATUS_DRAFT,
    STATUS_PROCESSING,
    STATUS_PUBLISHED,
    TAG_CONTEXT_COOKING_METHODS,
    TAG_CONTEXT_COURSES,
    TAG_CONTEXT_CULTURAL_INFLUENCES,
    AIClassifierRun,
    Recipe,
    RecipeIngredient,
)


@pytest.fixture
def d():
    conn = open_memory()
    yield conn
    conn.close()


def test_create_and_get_recipe(d):
    r = Recipe(
        name="Test Pasta",
        status=STATUS_DRAFT,
        source_url="https://example.com/pasta",
        source_text="",
    )
    recipe_id = db.create_recipe(d, r)
    assert recipe_id > 0

    got = db.get_recipe(d, recipe_id)
    assert got.name == r.name
    assert got.status == r.status
    assert got.source_url == r.source_url


def test_get_recipe_by_url_found(d):
    url = "https://example.com/pasta"
    recipe_id = db.create_recipe(d, Recipe(name="Pasta", status=STATUS_PUBLISHED, source_url=url))
    got = db.get_recipe_by_url(d, url)
    assert got is not None
    assert got.id == recipe_id


def test_get_recipe_by_url_case_insensitive(d):
    recipe_id = db.create_recipe(
        d, Recipe(name="Pasta", status=STATUS_PUBLISHED, source_url="https://EXAMPLE.COM/pasta")
    )
    got = db.get_recipe_by_url(d, "https://example.com/pasta")
    assert got is not None
    assert got.id == recipe_id


def test_get_recipe_by_url_not_found(d):
    assert db.get_recipe_by_url(d, "https://example.com/nonexistent") is None


def test_create_recipe_duplicate_url_rejected(d):
    url = "https://example.com/pasta"
    db.create_recipe(d, Recipe(name="Pasta", status=STATUS_PUBLISHED, source_url=url))
    with pytest.raises(sqlite3.IntegrityError):
        db.create_recipe(d, Recipe(name="Pasta 2", status=STATUS_PUBLISHED, source_url=url))


def test_create_recipe_duplicate_url_case_insensitive(d):
    db.create_recipe(
        d, Recipe(name="Pasta", status=STATUS_PUBLISHED, source_url="https://EXAMPLE.COM/pasta")
    )
    with pytest.raises(sqlite3.IntegrityError):
        db.create_recipe(
            d, Recipe(name="Pasta 2", status=STATUS_PUBLISHED, source_url="https://example.com/pasta")
        )


def test_create_recipe_empty_url_allows_duplicates(d):
    first = db.create_recipe(d, Recipe(name="Paste 1", status=STATUS_PUBLISHED, source_url=""))
    second = db.create_recipe(d, Recipe(name="Paste 2", status=STATUS_PUBLISHED, source_url=""))
    assert first > 0
    assert second > first


def test_get_recipe_not_found(d):
    with pytest.raises(LookupError):
        db.get_recipe(d, 99999)


def test_update_recipe_status(d):
    recipe_id = db.create_recipe(d, Recipe(name="Test", status=STATUS_DRAFT))
    db.update_recipe_status(d, recipe_id, STATUS_PROCESSING)
    assert db.get_recipe(d, recipe_id).status == STATUS_PROCESSING


def test_find_or_create_ingredient_idempotent(d):
    id1 = db.find_or_create_ingredient(d, "garlic")
    id2 = db.find_or_create_ingredient(d, "garlic")
    assert id1 == id2


def test_find_or_create_ingredient_normalizes(d):
    id1 = db.find_or_create_ingredient(d, "Garlic")
    id2 = db.find_or_create_ingredient(d, "  garlic  ")
    assert id1 == id2
    assert db.all_ingredient_names(d) == ["garlic"]


def test_recipe_ingredients_insert_and_load(d):
    recipe_id = db.create_recipe(d, Recipe(name="Test", status=STATUS_DRAFT))
    ing_id = db.find_or_create_ingredient(d, "flour")
    db.insert_recipe_ingredient(
        d,
        RecipeIngredient(
            recipe_id=recipe_id,
            ingredient_id=ing_id,
            quantity="2",
            unit="cup",
            descriptor="sifted",
            section="Crust",
            position=0,
        ),
    )

    ris = db.get_recipe_ingredients(d, recipe_id)
    assert len(ris) == 1
    got = ris[0]
    assert got.ingredient_name == "flour"
    assert got.quantity == "2"
    assert got.unit == "cup"
    assert got.descriptor == "sifted"
    assert got.section == "Crust"


def test_delete_recipe_ingredients(d):
    recipe_id = db.create_recipe(d, Recipe(name="Test", status=STATUS_DRAFT))
    ing_id = db.find_or_create_ingredient(d, "salt")
    db.insert_recipe_ingredient(d, RecipeIngredient(recipe_id=recipe_id, ingredient_id=ing_id))

    db.delete_recipe_ingredients(d, recipe_id)
    assert db.get_recipe_ingredients(d, recipe_id) == []


def test_find_or_create_tag_idempotent(d):
    id1 = db.find_or_create_tag(d, "bake", TAG_CONTEXT_COOKING_METHODS)
    id2 = db.find_or_create_tag(d, "bake", TAG_CONTEXT_COOKING_METHODS)
    assert id1 == id2


def test_find_or_create_tag_same_name_different_context(d):
    id1 = db.find_or_create_tag(d, "roast", TAG_CONTEXT_COOKING_METHODS)
    id2 = db.find_or_create_tag(d, "roast", TAG_CONTEXT_COURSES)
    assert id1 != id2
    assert id1 > 0 and id2 > 0


def test_attach_tag_idempotent(d):
    recipe_id = db.create_recipe(d, Recipe(name="Test", status=STATUS_DRAFT))
    tag_id = db.find_or_create_tag(d, "italian", TAG_CONTEXT_CULTURAL_INFLUENCES)
    db.attach_tag(d, recipe_id, tag_id)
    db.attach_tag(d, recipe_id, tag_id)
    tags = db.get_recipe_tags(d, recipe_id)
    assert [t.id for t in tags] == [tag_id]


def test_get_recipe_tags(d):
    recipe_id = db.create_recipe(d, Recipe(name="Test", status=STATUS_DRAFT))
    tag1 = db.find_or_create_tag(d, "italian", TAG_CONTEXT_CULTURAL_INFLUENCES)
    tag2 = db.find_or_create_tag(d, "dinner", TAG_CONTEXT_COURSES)
    db.attach_tag(d, recipe_id, tag1)
    db.attach_tag(d, recipe_id, tag2)

    tags = db.get_recipe_tags(d, recipe_id)
    assert len(tags) == 2
    # Ordered by context: courses before cultural_influences.
    assert [t.name for t in tags] == ["dinner", "italian"]


def test_delete_recipe(d):
    recipe_id = db.create_recipe(d, Recipe(name="To Delete", status=STATUS_PUBLISHED))
    db.delete_recipe(d, recipe_id)
    with pytest.raises(LookupError):
        db.get_recipe(d, recipe_id)


def test_delete_recipe_cascades_ingredients(d):
    recipe_id = db.create_recipe(d, Recipe(name="Test", status=STATUS_DRAFT))
    ing_id = db.find_or_create_ingredient(d, "butter")
    db.insert_recipe_ingredient(d, RecipeIngredient(recipe_id=recipe_id, ingredient_id=ing_id))

    db.delete_recipe(d, recipe_id)
    assert db.get_recipe_ingredients(d, recipe_id) == []


def test_list_recipes_all_statuses(d):
    db.create_recipe(d, Recipe(name="Draft", status=STATUS_DRAFT))
    db.create_recipe(d, Recipe(name="Published", status=STATUS_PUBLISHED))
    assert len(db.list_recipes(d, db.RecipeFilter())) == 2


def test_list_recipes_status_filter(d):
    db.create_recipe(d, Recipe(name="Draft", status=STATUS_DRAFT))
    published = db.create_recipe(d, Recipe(name="Published", status=STATUS_PUBLISHED))
    recipes = db.list_recipes(d, db.RecipeFilter(status_filter=STATUS_PUBLISHED))
    assert [r.id for r in recipes] == [published]


def test_list_recipes_query_filter(d):
    id1 = db.create_recipe(d, Recipe(name="Spaghetti Carbonara", status=STATUS_PUBLISHED))
    db.create_recipe(d, Recipe(name="Chocolate Cake", status=STATUS_PUBLISHED))

    recipes = db.list_recipes(d, db.RecipeFilter(query="carbonara"))
    assert len(recipes) == 1
    assert recipes[0].id == id1


def test_list_recipes_query_matches_ingredient(d):
    cake = db.create_recipe(d, Recipe(name="Chocolate Cake", status=STATUS_PUBLISHED))
    db.create_recipe(d, Recipe(name="Spaghetti Carbonara", status=STATUS_PUBLISHED))
    butter = db.find_or_create_ingredient(d, "butter")
    db.insert_recipe_ingredient(d, RecipeIngredient(recipe_id=cake, ingredient_id=butter))

    recipes = db.list_recipes(d, db.RecipeFilter(query="butter"))
    assert [r.id for r in recipes] == [cake]


def test_list_recipes_tag_filter(d):
    id1 = db.create_recipe(d, Recipe(name="Pizza", status=STATUS_PUBLISHED))
    id2 = db.create_recipe(d, Recipe(name="Sushi", status=STATUS_PUBLISHED))
    italian = db.find_or_create_tag(d, "italian", TAG_CONTEXT_CULTURAL_INFLUENCES)
    japanese = db.find_or_create_tag(d, "japanese", TAG_CONTEXT_CULTURAL_INFLUENCES)
    db.attach_tag(d, id1, italian)
    db.attach_tag(d, id2, japanese)

    recipes = db.list_recipes(d, db.RecipeFilter(cultural_influences=["italian"]))
    assert len(recipes) == 1
    assert recipes[0].id == id1
    assert recipes[0].tags_by_context(TAG_CONTEXT_CULTURAL_INFLUENCES) == ["italian"]


def test_all_ingredient_names(d):
    db.find_or_create_ingredient(d, "zucchini")
    db.find_or_create_ingredient(d, "apple")
    db.find_or_create_ingredient(d, "basil")
    assert db.all_ingredient_names(d) == ["apple", "basil", "zucchini"]


def test_all_units(d):
    recipe_id = db.create_recipe(d, Recipe(name="Test", status=STATUS_DRAFT))
    ing1 = db.find_or_create_ingredient(d, "flour")
    ing2 = db.find_or_create_ingredient(d, "milk")
    ing3 = db.find_or_create_ingredient(d, "salt")
    db.insert_recipe_ingredient(d, RecipeIngredient(recipe_id=recipe_id, ingredient_id=ing1, unit="cup"))
    db.insert_recipe_ingredient(d, RecipeIngredient(recipe_id=recipe_id, ingredient_id=ing2, unit="tbsp"))
    db.insert_recipe_ingredient(d, RecipeIngredient(recipe_id=recipe_id, ingredient_id=ing3, unit=""))

    assert db.all_units(d) == ["cup", "tbsp"]


def test_all_tags_by_context_only_attached(d):
    recipe_id = db.create_recipe(d, Recipe(name="Test", status=STATUS_DRAFT))
    dinner = db.find_or_create_tag(d, "dinner", TAG_CONTEXT_COURSES)
    db.find_or_create_tag(d, "lunch", TAG_CONTEXT_COURSES)
    db.attach_tag(d, recipe_id, dinner)
    assert db.all_tags_by_context(d, TAG_CONTEXT_COURSES) == ["dinner"]


def test_save_recipe_create(d):
    r = Recipe(name="New Recipe", status=STATUS_DRAFT)
    r.ingredients = [
        RecipeIngredient(ingredient_name="butter", quantity="2", unit="tbsp"),
        RecipeIngredient(ingredient_name="flour", quantity="1", unit="cup"),
    ]
    tag_names = {
        TAG_CONTEXT_COURSES: ["dessert"],
        TAG_CONTEXT_COOKING_METHODS: ["bake"],
    }

    db.save_recipe(d, r, tag_names)
    assert r.id != 0

    got = db.get_recipe(d, r.id)
    assert got.name == "New Recipe"
    assert len(got.ingredients) == 2
    assert len(got.tags) == 2
    assert [i.position for i in got.ingredients] == [0, 1]


def test_save_recipe_update(d):
    recipe_id = db.create_recipe(d, Recipe(name="Original", status=STATUS_DRAFT))
    lunch = db.find_or_create_tag(d, "lunch", TAG_CONTEXT_COURSES)
    db.attach_tag(d, recipe_id, lunch)

    r = Recipe(id=recipe_id, name="Updated", status=STATUS_PUBLISHED)
    r.ingredients = [RecipeIngredient(ingredient_name="garlic", quantity="3", unit="cloves")]
    tag_names = {TAG_CONTEXT_COURSES: ["dinner"]}

    db.save_recipe(d, r, tag_names)

    got = db.get_recipe(d, recipe_id)
    assert got.name == "Updated"
    assert got.status == STATUS_PUBLISHED
    assert len(got.ingredients) == 1
    assert got.tags_by_context(TAG_CONTEXT_COURSES) == ["dinner"]


def test_save_recipe_skips_blank_names(d):
    r = Recipe(name="Sparse", status=STATUS_DRAFT)
    r.ingredients = [
        RecipeIngredient(ingredient_name=""),
        RecipeIngredient(ingredient_name="salt"),
    ]
    db.save_recipe(d, r, {TAG_CONTEXT_COURSES: ["", "dinner"]})

    got = db.get_recipe(d, r.id)
    assert [i.ingredient_name for i in got.ingredients] == ["salt"]
    assert got.tags_by_context(TAG_CONTEXT_COURSES) == ["dinner"]
    # The caller's list is left untouched.
    assert r.ingredients[1].recipe_id == 0


def test_create_ai_run(d):
    recipe_id = db.create_recipe(d, Recipe(name="Test", status=STATUS_DRAFT))
    run = AIClassifierRun(
        recipe_id=recipe_id,
        service_class="TextExtractor",
        adapter="anthropic",
        ai_model="claude-haiku",
        user_prompt="https://example.com",
    )
    run_id = db.create_ai_run(d, run)
    assert run_id > 0


def test_complete_ai_run(d):
    recipe_id = db.create_recipe(d, Recipe(name="Test", status=STATUS_DRAFT))
    run_id = db.create_ai_run(
        d, AIClassifierRun(recipe_id=recipe_id, service_class="AIExtractor", adapter="anthropic")
    )
    db.complete_ai_run(d, run_id, '{"name":"Test"}')

    row = d.execute(
        "SELECT success, raw_response, completed_at FROM ai_classifier_runs WHERE id = ?",
        (run_id,),
    ).fetchone()
    assert row["success"] == 1
    assert row["raw_response"] == '{"name":"Test"}'
    assert row["completed_at"] is not None


def test_fail_ai_run(d):
    recipe_id = db.create_recipe(d, Recipe(name="Test", status=STATUS_DRAFT))
    run_id = db.create_ai_run(
        d, AIClassifierRun(recipe_id=recipe_id, service_class="TextExtractor", adapter="anthropic")
    )
    db.fail_ai_run(d, run_id, "net.Error", "connection refused")

    row = d.execute(
        "SELECT success, error_class, error_message FROM ai_classifier_runs WHERE id = ?",
        (run_id,),
    ).fetchone()
    assert row["success"] == 0
    assert row["error_class"] == "net.Error"
    assert row["error_message"] == "connection refused"