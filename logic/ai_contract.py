"""Request/response schemas for the two generative-model exchanges.

Both exchanges are validated on the way out (before a request is built) and
on the way back (before anything reaches a form or a screen). The response
side of ``SuggestOutfit`` keeps both fields optional and
:func:`render_suggestion` turns every combination into an explicit view.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from logic.validation import ClothingItemDraft, parse_data_uri
from models.clothing_item import ClothingItem
from models.taxonomy import normalise_label


class AutocompleteClothingDetailsInput(BaseModel):
    """One photo as ``data:<mime>;base64,<payload>``."""

    photo_data_uri: str

    @field_validator("photo_data_uri")
    @classmethod
    def _validate_photo(cls, value: str) -> str:
        parse_data_uri(value)
        return value.strip()

    def media(self) -> Tuple[str, bytes]:
        """Media type and decoded bytes of the photo."""

        return parse_data_uri(self.photo_data_uri)


class AutocompleteClothingDetailsOutput(BaseModel):
    """Attributes the model infers from the photo; ``name`` is a bonus."""

    name: Optional[str] = None
    type: str
    color: str
    season: str
    fabric: str

    @field_validator("type", "color", "season", "fabric")
    @classmethod
    def _required(cls, value: str) -> str:
        cleaned = normalise_label(value)
        if not cleaned:
            raise ValueError("field must not be empty")
        return cleaned

    @field_validator("name")
    @classmethod
    def _optional_name(cls, value: Optional[str]) -> Optional[str]:
        return normalise_label(value) or None


class WardrobeItemForAI(BaseModel):
    """Inventory snapshot entry sent with a suggestion request."""

    id: str
    image_url: Optional[str] = None
    type: str
    color: str
    season: str
    material: str

    @classmethod
    def from_clothing_item(cls, item: ClothingItem) -> "WardrobeItemForAI":
        return cls(
            id=item.item_id,
            image_url=item.image_url,
            type=item.type,
            color=item.color,
            season=item.season,
            material=item.fabric,
        )


class SuggestOutfitInput(BaseModel):
    occasion: str
    wardrobe: List[WardrobeItemForAI]
    attempt_number: Optional[int] = Field(default=None, ge=1)

    @field_validator("occasion")
    @classmethod
    def _validate_occasion(cls, value: str) -> str:
        cleaned = normalise_label(value)
        if not cleaned:
            raise ValueError("Describe la ocasión para la que necesitas un atuendo.")
        return cleaned


class SuggestedItem(BaseModel):
    """An inventory entry chosen by the model, echoed back by id."""

    id: Optional[str] = None
    type: Optional[str] = None
    color: Optional[str] = None
    season: Optional[str] = None
    material: Optional[str] = None


class SuggestOutfitOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    outfit_suggestion: Optional[List[SuggestedItem]] = Field(default=None, alias="outfitSuggestion")
    reasoning: Optional[str] = None

    @field_validator("reasoning")
    @classmethod
    def _blank_reasoning_is_absent(cls, value: Optional[str]) -> Optional[str]:
        cleaned = (value or "").strip()
        return cleaned or None


def apply_autocomplete(draft: ClothingItemDraft, details: AutocompleteClothingDetailsOutput) -> ClothingItemDraft:
    """Return a copy of ``draft`` with the inferred attributes filled in.

    The name is only filled when the draft has none: the model's suggested
    name if present, otherwise ``"<type> <color>"``.
    """

    updates: Dict[str, str] = {
        "type": details.type,
        "color": details.color,
        "season": details.season,
        "fabric": details.fabric,
    }
    if not normalise_label(draft.name):
        updates["name"] = details.name or f"{details.type} {details.color}"
    return draft.model_copy(update=updates)


@dataclass
class ResolvedSuggestion:
    """A suggested entry and the wardrobe item it refers to, when found."""

    suggested: SuggestedItem
    item: Optional[ClothingItem] = None

    @property
    def resolved(self) -> bool:
        return self.item is not None


_DESCRIPTIVE_FIELDS = (("type", "type"), ("color", "color"), ("season", "season"), ("material", "fabric"))


def _matches_description(suggested: SuggestedItem, item: ClothingItem) -> bool:
    compared = 0
    for suggested_field, item_field in _DESCRIPTIVE_FIELDS:
        value = normalise_label(getattr(suggested, suggested_field)).casefold()
        if not value:
            continue
        compared += 1
        if value != normalise_label(getattr(item, item_field)).casefold():
            return False
    return compared > 0


def resolve_suggested_items(
    suggested_items: Sequence[SuggestedItem], inventory: Sequence[ClothingItem]
) -> List[ResolvedSuggestion]:
    """Map suggested entries back to wardrobe items.

    Ids are authoritative. Entries without a known id fall back to matching
    their descriptive fields, and only when exactly one not-yet-used item
    matches; ambiguous entries stay unresolved.
    """

    by_id = {item.item_id: item for item in inventory}
    used: set[str] = set()
    resolved: List[ResolvedSuggestion] = []
    for suggested in suggested_items:
        item = by_id.get(suggested.id) if suggested.id else None
        if item is None:
            candidates = [
                candidate
                for candidate in inventory
                if candidate.item_id not in used and _matches_description(suggested, candidate)
            ]
            item = candidates[0] if len(candidates) == 1 else None
        if item is not None:
            used.add(item.item_id)
        resolved.append(ResolvedSuggestion(suggested=suggested, item=item))
    return resolved


EMPTY_SUGGESTION_MESSAGE = "La IA no pudo generar un atuendo o dar una explicación esta vez."
MISSING_REASONING_MESSAGE = "La IA no proporcionó un razonamiento específico."


@dataclass
class SuggestionView:
    """What the suggestion screen renders.

    ``kind`` is one of ``"outfit_with_reasoning"``, ``"outfit_only"``,
    ``"reasoning_only"`` or ``"empty"``.
    """

    kind: str
    items: List[ResolvedSuggestion] = field(default_factory=list)
    reasoning: Optional[str] = None
    message: Optional[str] = None

    @property
    def has_items(self) -> bool:
        return bool(self.items)

    @property
    def saveable_item_ids(self) -> List[str]:
        return [entry.item.item_id for entry in self.items if entry.item is not None]


def render_suggestion(output: SuggestOutfitOutput, inventory: Sequence[ClothingItem]) -> SuggestionView:
    """Turn a validated suggestion into a view, covering every field combination."""

    items = resolve_suggested_items(output.outfit_suggestion or [], inventory)
    reasoning = output.reasoning
    if items and reasoning:
        return SuggestionView(kind="outfit_with_reasoning", items=items, reasoning=reasoning)
    if items:
        return SuggestionView(kind="outfit_only", items=items, message=MISSING_REASONING_MESSAGE)
    if reasoning:
        return SuggestionView(kind="reasoning_only", reasoning=reasoning)
    return SuggestionView(kind="empty", message=EMPTY_SUGGESTION_MESSAGE)


__all__ = [
    "AutocompleteClothingDetailsInput",
    "AutocompleteClothingDetailsOutput",
    "EMPTY_SUGGESTION_MESSAGE",
    "ResolvedSuggestion",
    "SuggestOutfitInput",
    "SuggestOutfitOutput",
    "SuggestedItem",
    "SuggestionView",
    "WardrobeItemForAI",
    "apply_autocomplete",
    "render_suggestion",
    "resolve_suggested_items",
]
