"""Outfit schema."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models.taxonomy import DEFAULT_COLLECTION, normalise_label


@dataclass
class Outfit:
    """A named selection of clothing item ids filed under one collection.

    ``item_ids`` are not checked against the wardrobe; an id can outlive the
    item it points to. A missing ``collection_name`` means the default
    collection.
    """

    outfit_id: str
    owner_id: str
    name: str
    item_ids: List[str] = field(default_factory=list)
    collection_name: Optional[str] = DEFAULT_COLLECTION
    is_favorite: bool = False
    description: Optional[str] = None
    occasion: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    updated_at: Optional[float] = None

    def __post_init__(self) -> None:
        self.name = normalise_label(self.name)
        seen = set()
        unique_ids = []
        for item_id in self.item_ids or []:
            key = str(item_id)
            if key and key not in seen:
                unique_ids.append(key)
                seen.add(key)
        self.item_ids = unique_ids
        cleaned = normalise_label(self.collection_name)
        self.collection_name = cleaned or None
        self.is_favorite = bool(self.is_favorite)
        self.created_at = float(self.created_at)

    @property
    def effective_collection(self) -> str:
        return self.collection_name or DEFAULT_COLLECTION


def from_record(record: Dict[str, Any]) -> Outfit:
    """Build an :class:`Outfit` from a loose store or API record."""

    required_fields = ["outfit_id", "owner_id", "name"]
    missing = [key for key in required_fields if not record.get(key)]
    if missing:
        raise ValueError(f"Missing required fields for Outfit: {missing}")

    return Outfit(
        outfit_id=str(record["outfit_id"]),
        owner_id=str(record["owner_id"]),
        name=str(record["name"]),
        item_ids=list(record.get("item_ids") or []),
        collection_name=record.get("collection_name"),
        is_favorite=bool(record.get("is_favorite", False)),
        description=record.get("description"),
        occasion=record.get("occasion"),
        created_at=record.get("created_at") or time.time(),
        updated_at=record.get("updated_at"),
    )


__all__ = ["Outfit", "from_record"]
