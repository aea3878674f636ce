"""Export helpers and the walk that drives every recipe renderer."""

from __future__ import annotations

import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from enplace.models import ALL_TAG_CONTEXTS, Recipe

APP_VERSION = "dev"

# Attribution line written into every document footer.
VERSION_LINE = " ".join(("exported", "from", "enplace", APP_VERSION))

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")

_TAG_CONTEXT_LABELS = {
    "courses": "Courses",
    "cooking_methods": "Cooking methods",
    "cultural_influences": "Cultural influences",
    "dietary_restrictions": "Dietary",
}


@dataclass(frozen=True)
class ExportOptions:
    """Per-export settings.

    ``credits`` appears left-aligned in the footer beside the version line.
    """

    credits: str = ""


class Renderer(ABC):
    """One export format. ``render_recipe`` calls these in document order."""

    @abstractmethod
    def title(self, name: str) -> None:
        """Called first, with the recipe name."""

    @abstractmethod
    def meta(
        self,
        timing_summary: str,
        prep_mins: Optional[int],
        cook_mins: Optional[int],
        servings: Optional[int],
        serving_units: str,
    ) -> None:
        """Called when any timing or servings field is present."""

    @abstractmethod
    def tag_line(self, context_label: str, joined: str) -> None:
        """Called once per tag context that has tags."""

    @abstractmethod
    def description(self, text: str) -> None:
        """Called when the recipe has a description."""

    @abstractmethod
    def ingredients_header(self) -> None:
        """Called before the first ingredient."""

    @abstractmethod
    def ingredient_section(self, section: str) -> None:
        """Called when a new non-empty ingredient section begins."""

    @abstractmethod
    def ingredient(self, display: str) -> None:
        """Called for each ingredient line."""

    @abstractmethod
    def directions_header(self) -> None:
        """Called before the directions text."""

    @abstractmethod
    def directions(self, text: str) -> None:
        """Called when the recipe has directions."""

    @abstractmethod
    def source_url(self, url: str) -> None:
        """Called when the recipe has a source URL."""

    @abstractmethod
    def footer(self, credits: str, version_text: str) -> None:
        """Called last, with the credits (possibly empty) and version line."""

    @abstractmethod
    def result(self) -> Any:
        """Return the finished document."""


def safe_filename(name: str) -> str:
    """Return a URL-safe slug of ``name``, without an extension."""
    return _NON_ALPHANUMERIC.sub("-", name.lower()).strip("-")


def unique_file_path(directory: Union[str, os.PathLike], base: str, ext: str) -> str:
    """Return a path for ``base.ext`` in ``directory`` that does not exist yet.

    If it is taken, ``base-2.ext``, ``base-3.ext`` and so on are tried.
    """
    folder = Path(directory)
    candidate = folder / f"{base}.{ext}"
    number = 2
    while candidate.exists():
        candidate = folder / f"{base}-{number}.{ext}"
        number += 1
    return str(candidate)


def downloads_dir() -> str:
    """Return ~/Downloads, creating it if needed."""
    folder = Path.home() / "Downloads"
    folder.mkdir(mode=0o755, parents=True, exist_ok=True)
    return str(folder)


def tag_context_label(context: str) -> str:
    """Return a readable label for a tag context."""
    return _TAG_CONTEXT_LABELS.get(context, context)


def format_mins(minutes: int) -> str:
    """Format a minute count such as 90 as "1h 30m"."""
    if minutes < 60:
        return f"{minutes}m"
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"{hours}h"
    return f"{hours}h {rest}m"


def _positive(value: Optional[int]) -> bool:
    return value is not None and value > 0


def render_recipe(
    recipe: Recipe, options: Optional[ExportOptions], renderer: Renderer
) -> Any:
    """Walk ``recipe`` in document order through ``renderer`` and return its result."""
    options = options or ExportOptions()
    renderer.title(recipe.name)

    timing = recipe.timing_summary()
    if (
        timing
        or _positive(recipe.preparation_time)
        or _positive(recipe.cooking_time)
        or _positive(recipe.servings)
    ):
        renderer.meta(
            timing,
            recipe.preparation_time,
            recipe.cooking_time,
            recipe.servings,
            recipe.serving_units,
        )

    if recipe.description:
        renderer.description(recipe.description)

    for context in ALL_TAG_CONTEXTS:
        names = recipe.tags_by_context(context)
        if names:
            renderer.tag_line(tag_context_label(context), ", ".join(names))

    if recipe.ingredients:
        renderer.ingredients_header()
        current_section = ""
        for line in recipe.ingredients:
            if line.section and line.section != current_section:
                renderer.ingredient_section(line.section)
                current_section = line.section
            renderer.ingredient(line.display_string())

    if recipe.directions:
        renderer.directions_header()
        renderer.directions(recipe.directions)

    if recipe.source_url:
        renderer.source_url(recipe.source_url)

    renderer.footer(options.credits, VERSION_LINE)
    return renderer.result()