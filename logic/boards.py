"""Live view-models for the wardrobe and outfit screens.

A board owns at most one store subscription, bound to the session's current
owner. When the owner changes the old subscription is released before a new
one is opened, and on sign-out all derived state is cleared so the next user
starts from scratch.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from armario_app.logging_config import get_logger, log_event
from logic.collections import CollectionGroup, ExpansionState, reconcile, toggle_expansion
from logic.wardrobe_service import filter_items
from memory.auth_session import AuthSession
from models.clothing_item import ClothingItem
from models.outfit import Outfit
from tools.item_store import CLOTHING_ITEMS, OUTFITS, ItemStore, Subscription

LOGGER = get_logger(__name__)


class _LiveBoard:
    kind: str = ""

    def __init__(self, session: AuthSession, store: ItemStore) -> None:
        self.session = session
        self.store = store
        self.subscription: Subscription | None = None
        self.last_error: Exception | None = None
        self._remove_listener: Optional[Callable[[], None]] = None

    @property
    def is_mounted(self) -> bool:
        return self._remove_listener is not None

    def mount(self) -> None:
        """Start following the session owner."""

        if self.is_mounted:
            return
        self._remove_listener = self.session.on_owner_change(self._handle_owner_change)
        self._handle_owner_change(self.session.owner_id)

    def unmount(self) -> None:
        """Release the subscription and stop following the session."""

        self._release()
        if self._remove_listener:
            self._remove_listener()
            self._remove_listener = None

    def _release(self) -> None:
        if self.subscription is not None:
            self.subscription.unsubscribe()
            self.subscription = None

    def _handle_owner_change(self, owner_id: str | None) -> None:
        self._release()
        self.reset()
        if owner_id is None:
            return
        log_event(LOGGER, logging.DEBUG, "board_subscribing", kind=self.kind)
        self.subscription = self.store.subscribe(owner_id, self.kind, self._on_snapshot, self._on_error)

    def _on_error(self, exc: Exception) -> None:
        self.last_error = exc

    def _on_snapshot(self, records: List[Any]) -> None:
        raise NotImplementedError

    def reset(self) -> None:
        raise NotImplementedError


class WardrobeBoard(_LiveBoard):
    """Newest-first clothing items plus the active filter."""

    kind = CLOTHING_ITEMS

    def __init__(self, session: AuthSession, store: ItemStore) -> None:
        super().__init__(session, store)
        self.items: List[ClothingItem] = []
        self.filters: Dict[str, Any] = {}
        self.loaded = False

    def reset(self) -> None:
        self.items = []
        self.filters = {}
        self.loaded = False
        self.last_error = None

    def _on_snapshot(self, records: List[Any]) -> None:
        self.items = list(records)
        self.loaded = True
        self.last_error = None

    def set_filters(self, filters: Dict[str, Any] | None) -> None:
        self.filters = dict(filters or {})

    @property
    def visible_items(self) -> List[ClothingItem]:
        return filter_items(self.items, self.filters)


class OutfitBoard(_LiveBoard):
    """Outfits grouped into collections, with the user's expansion state."""

    kind = OUTFITS

    def __init__(self, session: AuthSession, store: ItemStore) -> None:
        super().__init__(session, store)
        self.outfits: List[Outfit] = []
        self.groups: List[CollectionGroup] = []
        self.expansion = ExpansionState()
        self.loaded = False

    def reset(self) -> None:
        self.outfits = []
        self.groups = []
        self.expansion = ExpansionState()
        self.loaded = False
        self.last_error = None

    def _on_snapshot(self, records: List[Any]) -> None:
        self.outfits = list(records)
        self.groups, self.expansion = reconcile(self.outfits, self.expansion)
        self.loaded = True
        self.last_error = None

    def toggle_group(self, collection_name: str) -> ExpansionState:
        self.expansion = toggle_expansion(self.expansion, collection_name)
        return self.expansion

    @property
    def collection_names(self) -> List[str]:
        return [group.collection_name for group in self.groups if not group.is_favorites]

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data view of the grouped board."""

        return {
            "loaded": self.loaded,
            "groups": [
                {
                    "collection_name": group.collection_name,
                    "is_favorites": group.is_favorites,
                    "is_open": self.expansion.is_open(group.collection_name),
                    "outfit_ids": group.outfit_ids,
                }
                for group in self.groups
            ],
            "open_collections": list(self.expansion.open_names),
        }


__all__ = ["OutfitBoard", "WardrobeBoard"]
