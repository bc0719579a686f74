"""Outfit and collection operations scoped to the signed-in owner."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from armario_app.logging_config import get_logger, log_event
from logic.collections import real_collection_names
from logic.errors import NotFound, ValidationFailure
from logic.validation import OutfitForm, validate_form
from memory.auth_session import AuthSession
from models.clothing_item import ClothingItem
from models.outfit import Outfit
from models.taxonomy import DEFAULT_COLLECTION, FAVORITES_COLLECTION, normalise_label
from tools.item_store import ItemStore
from tools.observability import instrument_operation

LOGGER = get_logger(__name__)

_RESERVED_FOLDED = {DEFAULT_COLLECTION.casefold(), FAVORITES_COLLECTION.casefold()}


@dataclass
class MutationResult:
    """Outcome of a write-style operation.

    ``status`` is ``"ok"`` when writes were issued and ``"noop"`` when the
    operation had nothing to change; ``message`` is user-facing either way.
    """

    status: str
    message: str
    affected: int = 0
    outfit: Optional[Outfit] = None

    @property
    def is_noop(self) -> bool:
        return self.status == "noop"


def validate_collection_name(
    raw_name: Optional[str],
    existing_names: Iterable[str],
    field: str = "collection_name",
    current_name: Optional[str] = None,
) -> str:
    """Return the trimmed name or raise :class:`ValidationFailure`.

    Rejects empty names, the reserved default and favorites names, and names
    that already belong to a collection other than ``current_name``. Both
    checks are case-insensitive.
    """

    name = normalise_label(raw_name)
    if not name:
        raise ValidationFailure(field, "name_required", "El nombre de la colección es obligatorio.")
    folded = name.casefold()
    if folded in _RESERVED_FOLDED:
        raise ValidationFailure(
            field, "reserved_name", f'No puedes usar el nombre reservado "{name}" para una colección.'
        )
    for existing in existing_names:
        if existing == current_name:
            continue
        if existing.casefold() == folded:
            raise ValidationFailure(field, "duplicate_name", f'La colección "{existing}" ya existe.')
    return name


class OutfitService:
    """Outfit CRUD plus the bulk collection operations.

    Every method resolves the owner from the session first, so nothing is read
    or written without an authenticated user. Collection reassignments go
    through :meth:`ItemStore.batch_update_outfits` and therefore apply to all
    targeted outfits or to none.
    """

    def __init__(self, session: AuthSession, store: ItemStore) -> None:
        self.session = session
        self.store = store

    def list_outfits(self) -> List[Outfit]:
        return self.store.list_outfits(self.session.require_owner())

    def get_outfit(self, outfit_id: str) -> Outfit:
        outfit = self.store.get_outfit(self.session.require_owner(), outfit_id)
        if not outfit:
            raise NotFound(f"Outfit {outfit_id} not found")
        return outfit

    def collection_names(self) -> List[str]:
        """Real collections in use, canonically sorted."""

        return real_collection_names(self.list_outfits())

    def _outfits_in(self, owner_id: str, collection_name: str) -> List[Outfit]:
        return [
            outfit
            for outfit in self.store.list_outfits(owner_id)
            if outfit.effective_collection == collection_name
        ]

    def _resolve_form_collection(self, form: OutfitForm, owner_id: str) -> str:
        existing = real_collection_names(self.store.list_outfits(owner_id))
        if form.new_collection_name is not None:
            return validate_collection_name(form.new_collection_name, existing, field="new_collection_name")
        chosen = normalise_label(form.collection_name)
        if not chosen:
            return DEFAULT_COLLECTION
        folded = chosen.casefold()
        if folded == FAVORITES_COLLECTION.casefold():
            raise ValidationFailure(
                "collection_name",
                "reserved_name",
                f'"{FAVORITES_COLLECTION}" no es una colección; marca el atuendo como favorito.',
            )
        if folded == DEFAULT_COLLECTION.casefold():
            return DEFAULT_COLLECTION
        for name in existing:
            if name.casefold() == folded:
                return name
        return validate_collection_name(chosen, existing, field="collection_name")

    @instrument_operation("create_outfit")
    def create_outfit(self, payload: Dict[str, object]) -> Outfit:
        owner_id = self.session.require_owner()
        form = validate_form(OutfitForm, payload)
        collection_name = self._resolve_form_collection(form, owner_id)
        outfit = Outfit(
            outfit_id=uuid.uuid4().hex,
            owner_id=owner_id,
            name=form.name,
            item_ids=form.item_ids,
            collection_name=collection_name,
            description=form.description,
            occasion=form.occasion,
        )
        return self.store.create_outfit(outfit)

    @instrument_operation("update_outfit")
    def update_outfit(self, outfit_id: str, payload: Dict[str, object]) -> Outfit:
        owner_id = self.session.require_owner()
        self.get_outfit(outfit_id)
        form = validate_form(OutfitForm, payload)
        collection_name = self._resolve_form_collection(form, owner_id)
        return self.store.update_outfit(
            owner_id,
            outfit_id,
            {
                "name": form.name,
                "item_ids": form.item_ids,
                "collection_name": collection_name,
                "description": form.description,
                "occasion": form.occasion,
            },
        )

    @instrument_operation("rename_collection")
    def rename_collection(self, old_name: str, new_name: str) -> MutationResult:
        owner_id = self.session.require_owner()
        old_name = normalise_label(old_name)
        if old_name.casefold() in _RESERVED_FOLDED:
            raise ValidationFailure(
                "old_name", "reserved_name", f'La colección "{old_name}" no se puede renombrar.'
            )
        if not normalise_label(new_name):
            raise ValidationFailure("new_name", "name_required", "El nombre de la colección es obligatorio.")
        if normalise_label(new_name) == old_name:
            return MutationResult("noop", "El nombre no ha cambiado.")

        outfits = self.store.list_outfits(owner_id)
        target = validate_collection_name(
            new_name, real_collection_names(outfits), field="new_name", current_name=old_name
        )
        members = [outfit for outfit in outfits if outfit.effective_collection == old_name]
        if not members:
            return MutationResult("noop", f'La colección "{old_name}" no tiene atuendos que mover.')

        updated = self.store.batch_update_outfits(
            owner_id, {outfit.outfit_id: {"collection_name": target} for outfit in members}
        )
        log_event(LOGGER, logging.INFO, "collection_renamed", affected=updated)
        return MutationResult("ok", f'Colección renombrada a "{target}".', affected=updated)

    @instrument_operation("delete_collection")
    def delete_collection(self, collection_name: str) -> MutationResult:
        owner_id = self.session.require_owner()
        collection_name = normalise_label(collection_name)
        if collection_name.casefold() in _RESERVED_FOLDED:
            raise ValidationFailure(
                "collection_name", "reserved_name", f'La colección "{collection_name}" no se puede eliminar.'
            )

        members = self._outfits_in(owner_id, collection_name)
        if not members:
            return MutationResult("noop", f'La colección "{collection_name}" ya estaba vacía.')

        updated = self.store.batch_update_outfits(
            owner_id, {outfit.outfit_id: {"collection_name": DEFAULT_COLLECTION} for outfit in members}
        )
        log_event(LOGGER, logging.INFO, "collection_deleted", affected=updated)
        return MutationResult(
            "ok", f'Colección eliminada; {updated} atuendo(s) movidos a "{DEFAULT_COLLECTION}".', affected=updated
        )

    @instrument_operation("create_collection_and_assign")
    def create_collection_and_assign(self, collection_name: str, outfit_ids: List[str]) -> MutationResult:
        owner_id = self.session.require_owner()
        outfits = self.store.list_outfits(owner_id)
        target = validate_collection_name(collection_name, real_collection_names(outfits))
        selected = list(dict.fromkeys(str(outfit_id) for outfit_id in outfit_ids or [] if str(outfit_id).strip()))
        if not selected:
            raise ValidationFailure(
                "outfit_ids", "selection_required", "Selecciona al menos un atuendo para la nueva colección."
            )

        updated = self.store.batch_update_outfits(
            owner_id, {outfit_id: {"collection_name": target} for outfit_id in selected}
        )
        log_event(LOGGER, logging.INFO, "collection_created", affected=updated)
        return MutationResult("ok", f'Colección "{target}" creada.', affected=updated)

    @instrument_operation("toggle_favorite")
    def toggle_favorite(self, outfit_id: str) -> Outfit:
        owner_id = self.session.require_owner()
        outfit = self.get_outfit(outfit_id)
        return self.store.update_outfit(owner_id, outfit_id, {"is_favorite": not outfit.is_favorite})

    @instrument_operation("delete_outfit")
    def delete_outfit(self, outfit_id: str) -> MutationResult:
        owner_id = self.session.require_owner()
        if not self.store.delete_outfit(owner_id, outfit_id):
            raise NotFound(f"Outfit {outfit_id} not found")
        return MutationResult("ok", "Atuendo eliminado.", affected=1)

    def preview_outfit(self, outfit_id: str) -> Dict[str, object]:
        """Resolve an outfit's item ids, skipping items that no longer exist."""

        owner_id = self.session.require_owner()
        outfit = self.get_outfit(outfit_id)
        inventory = {item.item_id: item for item in self.store.list_items(owner_id)}
        items: List[ClothingItem] = [inventory[item_id] for item_id in outfit.item_ids if item_id in inventory]
        missing = [item_id for item_id in outfit.item_ids if item_id not in inventory]
        return {"outfit": outfit, "items": items, "missing_item_ids": missing}

    @instrument_operation("save_outfit_from_suggestion")
    def save_from_suggestion(
        self,
        item_ids: List[str],
        occasion: Optional[str],
        name: Optional[str] = None,
        collection_name: Optional[str] = None,
        new_collection_name: Optional[str] = None,
    ) -> Outfit:
        """Persist an AI suggestion as a regular outfit."""

        owner_id = self.session.require_owner()
        if not item_ids:
            raise ValidationFailure(
                "item_ids", "selection_required", "La sugerencia de la IA no contenía IDs de prendas válidos."
            )
        occasion_text = normalise_label(occasion)
        default_name = f"Sugerencia IA: {occasion_text}" if occasion_text else "Atuendo Sugerido por IA"
        form = validate_form(
            OutfitForm,
            {
                "name": normalise_label(name) or default_name[:50],
                "item_ids": item_ids,
                "collection_name": collection_name,
                "new_collection_name": new_collection_name,
                "description": f"Sugerido por IA para: {occasion_text}" if occasion_text else "Atuendo sugerido por IA",
                "occasion": occasion_text or None,
            },
        )
        outfit = Outfit(
            outfit_id=uuid.uuid4().hex,
            owner_id=owner_id,
            name=form.name,
            item_ids=form.item_ids,
            collection_name=self._resolve_form_collection(form, owner_id),
            description=form.description,
            occasion=form.occasion,
            created_at=time.time(),
        )
        return self.store.create_outfit(outfit)


__all__ = ["MutationResult", "OutfitService", "validate_collection_name"]
