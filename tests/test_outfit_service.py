"""Outfit and collection mutations against a real SQLite store."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import pytest

from logic.collections import group_outfits
from logic.errors import AuthenticationRequired, NotFound, ValidationFailure
from logic.outfit_service import OutfitService, validate_collection_name
from logic.wardrobe_service import WardrobeService
from memory.auth_session import AuthSession
from models.outfit import Outfit
from tools.identity_provider import LocalIdentityProvider
from tools.item_store import SQLiteItemStore


class SpyStore(SQLiteItemStore):
    """Records every batch so tests can assert that no-ops issue no writes."""

    def __init__(self, database_path: Path) -> None:
        super().__init__(database_path)
        self.batches: List[Dict[str, Dict[str, object]]] = []

    def batch_update_outfits(self, owner_id: str, updates: Dict[str, Dict[str, object]]) -> int:
        self.batches.append(dict(updates))
        return super().batch_update_outfits(owner_id, updates)


@pytest.fixture()
def store(tmp_path: Path) -> SpyStore:
    return SpyStore(tmp_path / "armario.db")


@pytest.fixture()
def session() -> AuthSession:
    auth = AuthSession(LocalIdentityProvider())
    auth.sign_up("ana@example.com", "secreto1")
    return auth


@pytest.fixture()
def service(session: AuthSession, store: SpyStore) -> OutfitService:
    return OutfitService(session, store)


def _seed(store: SpyStore, owner_id: str, layout: Dict[str, str | None]) -> None:
    for index, (outfit_id, collection) in enumerate(layout.items()):
        store.create_outfit(
            Outfit(
                outfit_id=outfit_id,
                owner_id=owner_id,
                name=f"Outfit {outfit_id}",
                item_ids=["i1"],
                collection_name=collection,
                created_at=float(index),
            )
        )


def _collections(store: SpyStore, owner_id: str) -> Dict[str, str]:
    return {outfit.outfit_id: outfit.effective_collection for outfit in store.list_outfits(owner_id)}


def test_operations_require_a_signed_in_user(store: SpyStore) -> None:
    service = OutfitService(AuthSession(LocalIdentityProvider()), store)

    with pytest.raises(AuthenticationRequired):
        service.list_outfits()
    with pytest.raises(AuthenticationRequired):
        service.rename_collection("Work", "Office")
    with pytest.raises(AuthenticationRequired):
        service.create_outfit({"name": "Lunes", "item_ids": ["i1"]})
    assert store.batches == []


def test_create_outfit_defaults_to_general(service: OutfitService, session: AuthSession) -> None:
    outfit = service.create_outfit({"name": "  Lunes  de oficina ", "item_ids": ["i1", "i1", "i2"]})

    assert outfit.owner_id == session.owner_id
    assert outfit.name == "Lunes de oficina"
    assert outfit.item_ids == ["i1", "i2"]
    assert outfit.collection_name == "General"
    assert outfit.is_favorite is False


def test_create_outfit_validates_form(service: OutfitService) -> None:
    with pytest.raises(ValidationFailure) as short_name:
        service.create_outfit({"name": "ab", "item_ids": ["i1"]})
    with pytest.raises(ValidationFailure) as no_items:
        service.create_outfit({"name": "Lunes", "item_ids": []})

    assert short_name.value.field == "name"
    assert "3 caracteres" in short_name.value.message
    assert no_items.value.field == "item_ids"
    assert service.list_outfits() == []


def test_create_outfit_in_new_collection_rejects_duplicates_and_reserved(
    service: OutfitService, store: SpyStore, session: AuthSession
) -> None:
    _seed(store, session.owner_id, {"a": "Work"})

    created = service.create_outfit({"name": "Viaje", "item_ids": ["i1"], "new_collection_name": " Trips "})
    assert created.collection_name == "Trips"

    with pytest.raises(ValidationFailure) as duplicate:
        service.create_outfit({"name": "Viaje", "item_ids": ["i1"], "new_collection_name": "work"})
    with pytest.raises(ValidationFailure) as reserved:
        service.create_outfit({"name": "Viaje", "item_ids": ["i1"], "new_collection_name": "Favoritos"})
    with pytest.raises(ValidationFailure) as favorites_choice:
        service.create_outfit({"name": "Viaje", "item_ids": ["i1"], "collection_name": "Favoritos"})

    assert duplicate.value.code == "duplicate_name"
    assert reserved.value.code == "reserved_name"
    assert favorites_choice.value.code == "reserved_name"


def test_chosen_collection_reuses_existing_spelling(
    service: OutfitService, store: SpyStore, session: AuthSession
) -> None:
    _seed(store, session.owner_id, {"a": "Work"})

    same_bucket = service.create_outfit({"name": "Lunes", "item_ids": ["i1"], "collection_name": " work "})
    default_bucket = service.create_outfit({"name": "Martes", "item_ids": ["i1"], "collection_name": "GENERAL"})
    fresh_bucket = service.create_outfit({"name": "Viaje", "item_ids": ["i1"], "collection_name": "Trips"})

    assert same_bucket.collection_name == "Work"
    assert default_bucket.collection_name == "General"
    assert fresh_bucket.collection_name == "Trips"
    assert [group.collection_name for group in group_outfits(store.list_outfits(session.owner_id))] == [
        "General",
        "Trips",
        "Work",
    ]


def test_reserved_names_are_refused_in_any_case(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, session.owner_id, {"a": None, "b": "Work"})

    with pytest.raises(ValidationFailure) as favorites_choice:
        service.create_outfit({"name": "Viaje", "item_ids": ["i1"], "collection_name": "favoritos"})
    with pytest.raises(ValidationFailure) as rename_default:
        service.rename_collection("general", "Office")
    with pytest.raises(ValidationFailure) as delete_favorites:
        service.delete_collection("FAVORITOS")

    assert favorites_choice.value.code == "reserved_name"
    assert rename_default.value.code == "reserved_name"
    assert delete_favorites.value.code == "reserved_name"
    assert store.batches == []


def test_update_outfit_moves_it_and_keeps_favorite(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, session.owner_id, {"a": "Work"})
    service.toggle_favorite("a")

    updated = service.update_outfit("a", {"name": "Nuevo nombre", "item_ids": ["i9"], "collection_name": "Trips"})

    assert updated.collection_name == "Trips"
    assert updated.item_ids == ["i9"]
    assert updated.is_favorite is True
    assert updated.updated_at is not None
    with pytest.raises(NotFound):
        service.update_outfit("missing", {"name": "Nuevo nombre", "item_ids": ["i9"]})


def test_rename_moves_every_member(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, session.owner_id, {"a": "Work", "b": "Work", "c": "Trips", "d": None})

    result = service.rename_collection("Work", "  Office ")

    assert result.status == "ok"
    assert result.affected == 2
    assert _collections(store, session.owner_id) == {"a": "Office", "b": "Office", "c": "Trips", "d": "General"}
    assert len(store.batches) == 1


def test_rename_refusals_issue_no_writes(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, session.owner_id, {"a": "Work", "b": "Trips"})

    for old_name, new_name, code in [
        ("General", "Office", "reserved_name"),
        ("Favoritos", "Office", "reserved_name"),
        ("Work", "   ", "name_required"),
        ("Work", "General", "reserved_name"),
        ("Work", "Favoritos", "reserved_name"),
        ("Work", "trips", "duplicate_name"),
    ]:
        with pytest.raises(ValidationFailure) as refusal:
            service.rename_collection(old_name, new_name)
        assert refusal.value.code == code

    assert store.batches == []
    assert _collections(store, session.owner_id) == {"a": "Work", "b": "Trips"}


def test_rename_noops(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, session.owner_id, {"a": "Work"})

    same = service.rename_collection("Work", " Work ")
    empty = service.rename_collection("Ghost", "Office")

    assert same.is_noop
    assert empty.is_noop
    assert store.batches == []


def test_rename_to_case_variant_of_itself_is_allowed(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, session.owner_id, {"a": "work"})

    result = service.rename_collection("work", "Work")

    assert result.status == "ok"
    assert _collections(store, session.owner_id) == {"a": "Work"}


def test_delete_collection_moves_members_to_general(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, session.owner_id, {"a": "Work", "b": "Work", "c": "Trips"})
    service.toggle_favorite("a")

    result = service.delete_collection("Work")

    assert result.affected == 2
    assert _collections(store, session.owner_id) == {"a": "General", "b": "General", "c": "Trips"}
    assert store.get_outfit(session.owner_id, "a").is_favorite is True
    assert "Work" not in service.collection_names()


def test_delete_collection_refusals_and_noops(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, session.owner_id, {"a": None})

    with pytest.raises(ValidationFailure):
        service.delete_collection("General")
    with pytest.raises(ValidationFailure):
        service.delete_collection("Favoritos")

    assert service.delete_collection("Ghost").is_noop
    assert store.batches == []


def test_create_collection_and_assign(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, session.owner_id, {"a": "Work", "b": None, "c": "Work"})

    result = service.create_collection_and_assign("Trips", ["a", "b", "a"])

    assert result.affected == 2
    assert _collections(store, session.owner_id) == {"a": "Trips", "b": "Trips", "c": "Work"}
    assert service.collection_names() == ["Trips", "Work"]


def test_create_collection_refusals(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, session.owner_id, {"a": "Work"})

    cases = [
        ("", ["a"], "name_required"),
        ("General", ["a"], "reserved_name"),
        ("WORK", ["a"], "duplicate_name"),
        ("Trips", [], "selection_required"),
    ]
    for name, outfit_ids, code in cases:
        with pytest.raises(ValidationFailure) as refusal:
            service.create_collection_and_assign(name, outfit_ids)
        assert refusal.value.code == code

    assert store.batches == []


def test_create_collection_with_unknown_outfit_changes_nothing(
    service: OutfitService, store: SpyStore, session: AuthSession
) -> None:
    _seed(store, session.owner_id, {"a": "Work", "b": "Work"})

    with pytest.raises(NotFound):
        service.create_collection_and_assign("Trips", ["a", "ghost", "b"])

    assert _collections(store, session.owner_id) == {"a": "Work", "b": "Work"}


def test_toggle_favorite_flips_only_the_flag(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, session.owner_id, {"a": "Work"})

    first = service.toggle_favorite("a")
    second = service.toggle_favorite("a")

    assert first.is_favorite is True
    assert second.is_favorite is False
    assert second.collection_name == "Work"
    with pytest.raises(NotFound):
        service.toggle_favorite("ghost")


def test_other_owners_outfits_are_invisible(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, "someone-else", {"x": "Work"})

    assert service.list_outfits() == []
    assert service.rename_collection("Work", "Office").is_noop
    with pytest.raises(NotFound):
        service.toggle_favorite("x")
    with pytest.raises(NotFound):
        service.delete_outfit("x")
    assert store.get_outfit("someone-else", "x").collection_name == "Work"


def test_delete_outfit(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    _seed(store, session.owner_id, {"a": "Work"})

    result = service.delete_outfit("a")

    assert result.status == "ok"
    assert service.list_outfits() == []


def test_preview_skips_deleted_items(service: OutfitService, store: SpyStore, session: AuthSession) -> None:
    wardrobe = WardrobeService(service.session, store)
    shirt = wardrobe.add_item({"name": "Camisa", "type": "Camisa", "color": "Blanco", "season": "Verano", "fabric": "Lino"})
    jeans = wardrobe.add_item({"name": "Vaqueros", "type": "Pantalón", "color": "Azul", "season": "Todo el año", "fabric": "Denim"})
    outfit = service.create_outfit({"name": "Casual", "item_ids": [shirt.item_id, jeans.item_id]})
    wardrobe.delete_item(jeans.item_id)

    preview = service.preview_outfit(outfit.outfit_id)

    assert [item.item_id for item in preview["items"]] == [shirt.item_id]
    assert preview["missing_item_ids"] == [jeans.item_id]
    assert service.get_outfit(outfit.outfit_id).item_ids == [shirt.item_id, jeans.item_id]


def test_save_from_suggestion_uses_occasion_defaults(service: OutfitService) -> None:
    outfit = service.save_from_suggestion(["i1", "i2"], occasion="Boda en la playa")

    assert outfit.name == "Sugerencia IA: Boda en la playa"
    assert outfit.description == "Sugerido por IA para: Boda en la playa"
    assert outfit.occasion == "Boda en la playa"
    assert outfit.collection_name == "General"


def test_save_from_suggestion_truncates_long_names_and_needs_items(service: OutfitService) -> None:
    outfit = service.save_from_suggestion(["i1"], occasion="x" * 80, new_collection_name="Ideas IA")

    assert len(outfit.name) == 50
    assert outfit.collection_name == "Ideas IA"
    with pytest.raises(ValidationFailure):
        service.save_from_suggestion([], occasion="Cena")


def test_validate_collection_name_helper() -> None:
    assert validate_collection_name("  Nueva   colección ", ["Work"]) == "Nueva colección"
    assert validate_collection_name("Work", ["Work"], current_name="Work") == "Work"
    with pytest.raises(ValidationFailure):
        validate_collection_name("work", ["Work"])
