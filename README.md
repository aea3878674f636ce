# enplace

A small library for keeping a personal recipe collection in SQLite.

It stores recipes together with their ingredient lines and tags. Tags are
grouped into four contexts: courses, cooking methods, cultural influences and
dietary restrictions. It also keeps an audit trail of AI extraction runs,
offers tools for tidying tags, ingredients and units, and exports a recipe as
Markdown, RTF or plain text.

## What is in the package

- `enplace.models` holds the domain objects: `Recipe`, `RecipeIngredient`,
  `Tag` and `AIClassifierRun`. A recipe can report its timing summary
  (for example `Prep 15m  ·  Cook 45m`) and list its tags for one context.
- `enplace.config` holds `Config`, which is loaded with `load()` and written
  back with `Config.save()`. The settings file lives under the XDG config
  directory, in `enplace/config.json`. The database and the log file live
  under the XDG data directory, in `enplace/`.
- `enplace.logfile` has `open_log()`, which opens an append-only log file and
  first trims it to a maximum number of lines, keeping the newest ones.
- `enplace.database` has `open_database()` and `open_memory()`. Both return a
  SQLite connection with foreign keys switched on and the schema migrated to
  the current version.
- `enplace.queries` creates, reads, updates, deletes and lists recipes,
  ingredients, tags and AI runs. It also provides `save_recipe()`, which
  stores a whole recipe with its ingredients and tags in one call.
- `enplace.manage` renames and merges tags, ingredients and units, lists
  usage counts, and prunes old AI runs.
- `enplace.export` and `enplace.renderers` turn a recipe into a document.

## Example

```python
from enplace.database import open_memory
from enplace.models import Recipe, RecipeIngredient
from enplace.queries import save_recipe, get_recipe, list_recipes, RecipeFilter
from enplace.export import ExportOptions
from enplace.renderers import to_markdown

conn = open_memory()

recipe = Recipe(name="Shortbread", status="published", preparation_time=15, cooking_time=20)
recipe.ingredients = [
    RecipeIngredient(ingredient_name="butter", quantity="1", unit="cup", descriptor="softened"),
    RecipeIngredient(ingredient_name="flour", quantity="2", unit="cup"),
]
save_recipe(conn, recipe, {"courses": ["dessert"], "cooking_methods": ["bake"]})

stored = get_recipe(conn, recipe.id)
print(stored.timing_summary())  # Prep 15m  ·  Cook 20m

print([r.name for r in list_recipes(conn, RecipeFilter(query="butter"))])

print(to_markdown(stored, ExportOptions(credits="Chef Example")))
```

## Behaviour worth knowing

- Ingredient and tag names are stored trimmed and in lower case. The same
  tag name may exist once in each context.
- Source URLs are unique without regard to case. Recipes without a source
  URL may repeat freely.
- Deleting a recipe removes its ingredient lines and tag links. Its AI runs
  are kept and show an empty recipe name.
- In `list_recipes`, tag filters combine with AND across contexts and with
  OR within one context. An empty status filter lists every status.
- RTF output is declared as cp1252. Characters outside that code page are
  written as RTF Unicode escapes.

## Running the tests

Install the package with its `test` extra, then run pytest from the project
directory.