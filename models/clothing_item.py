"""Clothing item data model and helpers."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict

from models.taxonomy import (
    CLOTHING_TYPES,
    FABRICS,
    PLACEHOLDER_IMAGE_URL,
    SEASONS,
    match_option,
    normalise_label,
)


@dataclass
class ClothingItem:
    """One garment in a user's wardrobe.

    ``image_url`` is either an inline ``data:`` URI holding the uploaded photo or
    the placeholder URL used when no photo was given.
    """

    item_id: str
    owner_id: str
    name: str
    type: str
    color: str
    season: str
    fabric: str
    image_url: str = PLACEHOLDER_IMAGE_URL
    created_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        self.name = normalise_label(self.name)
        self.type = match_option(self.type, CLOTHING_TYPES)
        self.color = normalise_label(self.color)
        self.season = match_option(self.season, SEASONS)
        self.fabric = match_option(self.fabric, FABRICS)
        self.image_url = self.image_url or PLACEHOLDER_IMAGE_URL
        self.created_at = float(self.created_at)

    @property
    def has_photo(self) -> bool:
        return self.image_url.startswith("data:")


def from_record(record: Dict[str, Any]) -> ClothingItem:
    """Build a :class:`ClothingItem` from a loose store or API record."""

    required_fields = ["item_id", "owner_id", "name", "type", "color", "season", "fabric"]
    missing = [key for key in required_fields if not record.get(key)]
    if missing:
        raise ValueError(f"Missing required fields for ClothingItem: {missing}")

    return ClothingItem(
        item_id=str(record["item_id"]),
        owner_id=str(record["owner_id"]),
        name=str(record["name"]),
        type=str(record["type"]),
        color=str(record["color"]),
        season=str(record["season"]),
        fabric=str(record["fabric"]),
        image_url=str(record.get("image_url") or PLACEHOLDER_IMAGE_URL),
        created_at=record.get("created_at") or time.time(),
    )


__all__ = ["ClothingItem", "from_record"]
