"""Clothing item operations and wardrobe filtering."""

from __future__ import annotations

import uuid
from typing import Any, Dict, Iterable, List, Optional

from logic.errors import NotFound
from logic.validation import ClothingItemForm, ClothingItemUpdate, validate_form
from memory.auth_session import AuthSession
from models.clothing_item import ClothingItem
from models.taxonomy import PLACEHOLDER_IMAGE_URL, normalise_label
from tools.item_store import ItemStore
from tools.observability import instrument_operation


def filter_items(items: Iterable[ClothingItem], filters: Optional[Dict[str, Any]] = None) -> List[ClothingItem]:
    """Filter wardrobe items, keeping the incoming order.

    Supported keys: ``type``, ``season`` and ``fabric`` (exact, case-insensitive),
    ``color`` (substring, case-insensitive) and ``query`` (substring of the
    name). Empty values are ignored.
    """

    filters = filters or {}

    def folded(key: str) -> str:
        return normalise_label(filters.get(key)).casefold()

    type_key = folded("type")
    season_key = folded("season")
    fabric_key = folded("fabric")
    color_key = folded("color")
    query = folded("query")

    def matches(item: ClothingItem) -> bool:
        if type_key and item.type.casefold() != type_key:
            return False
        if season_key and item.season.casefold() != season_key:
            return False
        if fabric_key and item.fabric.casefold() != fabric_key:
            return False
        if color_key and color_key not in item.color.casefold():
            return False
        if query and query not in item.name.casefold():
            return False
        return True

    return [item for item in items if matches(item)]


class WardrobeService:
    """Add, edit, delete and list the signed-in user's clothing items."""

    def __init__(self, session: AuthSession, store: ItemStore) -> None:
        self.session = session
        self.store = store

    def list_items(self, filters: Optional[Dict[str, Any]] = None) -> List[ClothingItem]:
        return filter_items(self.store.list_items(self.session.require_owner()), filters)

    def get_item(self, item_id: str) -> ClothingItem:
        item = self.store.get_item(self.session.require_owner(), item_id)
        if not item:
            raise NotFound(f"Clothing item {item_id} not found")
        return item

    @instrument_operation("add_clothing_item")
    def add_item(self, payload: Dict[str, Any]) -> ClothingItem:
        owner_id = self.session.require_owner()
        form = validate_form(ClothingItemForm, payload)
        item = ClothingItem(
            item_id=uuid.uuid4().hex,
            owner_id=owner_id,
            name=form.name,
            type=form.type,
            color=form.color,
            season=form.season,
            fabric=form.fabric,
            image_url=form.image_data_uri or PLACEHOLDER_IMAGE_URL,
        )
        return self.store.create_item(item)

    @instrument_operation("update_clothing_item")
    def update_item(self, item_id: str, payload: Dict[str, Any]) -> ClothingItem:
        owner_id = self.session.require_owner()
        update = validate_form(ClothingItemUpdate, payload)
        fields: Dict[str, object] = update.model_dump(exclude_none=True)
        image = fields.pop("image_data_uri", None)
        if image:
            fields["image_url"] = image
        return self.store.update_item(owner_id, item_id, fields)

    @instrument_operation("delete_clothing_item")
    def delete_item(self, item_id: str) -> bool:
        """Delete one item; outfits referencing it keep the dangling id."""

        owner_id = self.session.require_owner()
        if not self.store.delete_item(owner_id, item_id):
            raise NotFound(f"Clothing item {item_id} not found")
        return True


__all__ = ["WardrobeService", "filter_items"]
