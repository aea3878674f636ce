"""Domain records for recipes, their ingredients, tags and AI audit runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

STATUS_DRAFT = "draft"
STATUS_PROCESSING = "processing"
STATUS_PROCESSING_FAILED = "processing_failed"
STATUS_REVIEW = "review"
STATUS_PUBLISHED = "published"
STATUS_REJECTED = "rejected"

TAG_CONTEXT_COOKING_METHODS = "cooking_methods"
TAG_CONTEXT_CULTURAL_INFLUENCES = "cultural_influences"
TAG_CONTEXT_COURSES = "courses"
TAG_CONTEXT_DIETARY_RESTRICTIONS = "dietary_restrictions"

# Tag contexts in display order.
ALL_TAG_CONTEXTS = (
    TAG_CONTEXT_COURSES,
    TAG_CONTEXT_COOKING_METHODS,
    TAG_CONTEXT_CULTURAL_INFLUENCES,
    TAG_CONTEXT_DIETARY_RESTRICTIONS,
)


@dataclass
class Tag:
    """A classification label within a specific context."""

    id: int = 0
    name: str = ""
    context: str = ""


@dataclass
class RecipeIngredient:
    """One ingredient line of a recipe, with quantity, unit and section."""

    id: int = 0
    recipe_id: int = 0
    ingredient_id: int = 0
    quantity: str = ""
    unit: str = ""
    descriptor: str = ""
    section: str = ""
    position: int = 0
    ingredient_name: str = ""

    def display_string(self) -> str:
        """Return a readable line such as "1 cup flour, sifted"."""
        text = " ".join(
            part for part in (self.quantity, self.unit, self.ingredient_name) if part
        )
        if self.descriptor:
            text += ", " + self.descriptor
        return text


def _format_minutes(label: str, minutes: int) -> str:
    if minutes < 60:
        return f"{label} {minutes}m"
    hours, rest = divmod(minutes, 60)
    if rest == 0:
        return f"{label} {hours}h"
    return f"{label} {hours}h {rest}m"


@dataclass
class Recipe:
    """The core recipe record, optionally carrying its ingredients and tags."""

    id: int = 0
    name: str = ""
    description: str = ""
    directions: str = ""
    preparation_time: Optional[int] = None
    cooking_time: Optional[int] = None
    servings: Optional[int] = None
    serving_units: str = ""
    source_url: str = ""
    source_text: str = ""
    status: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    ingredients: List[RecipeIngredient] = field(default_factory=list)
    tags: List[Tag] = field(default_factory=list)

    def is_published(self) -> bool:
        return self.status == STATUS_PUBLISHED

    def is_processing(self) -> bool:
        return self.status == STATUS_PROCESSING

    def is_failed(self) -> bool:
        return self.status == STATUS_PROCESSING_FAILED

    def tags_by_context(self, context: str) -> List[str]:
        """Return the names of this recipe's tags in the given context."""
        return [tag.name for tag in self.tags if tag.context == context]

    def timing_summary(self) -> str:
        """Return e.g. "Prep 15m  ·  Cook 45m", or "" when no times are set."""
        parts = []
        if self.preparation_time is not None and self.preparation_time > 0:
            parts.append(_format_minutes("Prep", self.preparation_time))
        if self.cooking_time is not None and self.cooking_time > 0:
            parts.append(_format_minutes("Cook", self.cooking_time))
        return "  ·  ".join(parts)


@dataclass
class AIClassifierRun:
    """Audit record of one AI pipeline call."""

    id: int = 0
    recipe_id: Optional[int] = None
    service_class: str = ""
    adapter: str = ""
    ai_model: str = ""
    system_prompt: str = ""
    user_prompt: str = ""
    raw_response: str = ""
    success: bool = False
    error_class: str = ""
    error_message: str = ""
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def duration_ms(self) -> int:
        """Return the run's duration in whole milliseconds, or -1 if incomplete."""
        if self.started_at is None or self.completed_at is None:
            return -1
        delta = self.completed_at - self.started_at
        micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
        if micros >= 0:
            return micros // 1000
        return -((-micros) // 1000)