"""Live boards follow the session owner and never leak another user's data."""

from __future__ import annotations

from pathlib import Path

import pytest

from logic.boards import OutfitBoard, WardrobeBoard
from logic.outfit_service import OutfitService
from logic.wardrobe_service import WardrobeService
from memory.auth_session import AuthSession
from tools.identity_provider import LocalIdentityProvider
from tools.item_store import SQLiteItemStore


@pytest.fixture()
def store(tmp_path: Path) -> SQLiteItemStore:
    return SQLiteItemStore(tmp_path / "armario.db")


@pytest.fixture()
def provider() -> LocalIdentityProvider:
    accounts = LocalIdentityProvider()
    accounts.sign_up("ana@example.com", "secreto1")
    accounts.sign_up("luis@example.com", "secreto2")
    return accounts


def _item_payload(name: str, type_: str = "Camisa", color: str = "Azul") -> dict:
    return {"name": name, "type": type_, "color": color, "season": "Verano", "fabric": "Algodón"}


def test_board_waits_for_sign_in(store: SQLiteItemStore, provider: LocalIdentityProvider) -> None:
    session = AuthSession(provider)
    board = OutfitBoard(session, store)
    board.mount()

    assert board.subscription is None
    assert board.loaded is False

    session.sign_in("ana@example.com", "secreto1")

    assert board.subscription is not None
    assert board.loaded is True
    assert store.active_subscriptions(session.owner_id) == [board.subscription]


def test_outfit_board_regroups_after_every_mutation(store: SQLiteItemStore, provider: LocalIdentityProvider) -> None:
    session = AuthSession(provider)
    session.sign_in("ana@example.com", "secreto1")
    board = OutfitBoard(session, store)
    board.mount()
    service = OutfitService(session, store)

    first = service.create_outfit({"name": "Lunes", "item_ids": ["i1"]})
    assert board.snapshot()["open_collections"] == ["General"]

    service.create_outfit({"name": "Playa", "item_ids": ["i2"], "new_collection_name": "Trips"})
    service.toggle_favorite(first.outfit_id)
    snapshot = board.snapshot()

    assert [group["collection_name"] for group in snapshot["groups"]] == ["Favoritos", "General", "Trips"]
    assert snapshot["groups"][0]["outfit_ids"] == [first.outfit_id]
    assert snapshot["open_collections"] == ["Favoritos", "General", "Trips"]
    assert board.collection_names == ["General", "Trips"]


def test_collapsed_group_survives_new_snapshots(store: SQLiteItemStore, provider: LocalIdentityProvider) -> None:
    session = AuthSession(provider)
    session.sign_in("ana@example.com", "secreto1")
    board = OutfitBoard(session, store)
    board.mount()
    service = OutfitService(session, store)
    service.create_outfit({"name": "Lunes", "item_ids": ["i1"]})

    board.toggle_group("General")
    service.create_outfit({"name": "Martes", "item_ids": ["i2"]})

    general = board.snapshot()["groups"][0]
    assert general["collection_name"] == "General"
    assert general["is_open"] is False
    assert len(general["outfit_ids"]) == 2


def test_switching_accounts_releases_previous_subscription(
    store: SQLiteItemStore, provider: LocalIdentityProvider
) -> None:
    session = AuthSession(provider)
    ana = session.sign_in("ana@example.com", "secreto1")
    wardrobe_board = WardrobeBoard(session, store)
    outfit_board = OutfitBoard(session, store)
    wardrobe_board.mount()
    outfit_board.mount()
    WardrobeService(session, store).add_item(_item_payload("Camisa de Ana"))
    outfit_board.toggle_group("General")

    luis = session.sign_in("luis@example.com", "secreto2")

    assert store.active_subscriptions(ana.user_id) == []
    assert len(store.active_subscriptions(luis.user_id)) == 2
    assert len(store.active_subscriptions()) == 2
    assert wardrobe_board.items == []
    assert outfit_board.expansion.open_names == []


def test_sign_out_clears_board_state(store: SQLiteItemStore, provider: LocalIdentityProvider) -> None:
    session = AuthSession(provider)
    session.sign_in("ana@example.com", "secreto1")
    board = WardrobeBoard(session, store)
    board.mount()
    WardrobeService(session, store).add_item(_item_payload("Camisa"))
    board.set_filters({"color": "azul"})
    assert len(board.visible_items) == 1

    session.sign_out()

    assert board.subscription is None
    assert board.items == []
    assert board.filters == {}
    assert board.loaded is False
    assert store.active_subscriptions() == []


def test_unmount_stops_following_the_session(store: SQLiteItemStore, provider: LocalIdentityProvider) -> None:
    session = AuthSession(provider)
    session.sign_in("ana@example.com", "secreto1")
    board = OutfitBoard(session, store)
    board.mount()
    board.mount()
    assert len(store.active_subscriptions()) == 1

    board.unmount()
    session.sign_in("luis@example.com", "secreto2")

    assert board.subscription is None
    assert store.active_subscriptions() == []


def test_wardrobe_filters(store: SQLiteItemStore, provider: LocalIdentityProvider) -> None:
    session = AuthSession(provider)
    session.sign_in("ana@example.com", "secreto1")
    board = WardrobeBoard(session, store)
    board.mount()
    wardrobe = WardrobeService(session, store)
    wardrobe.add_item(_item_payload("Camisa azul marino", color="Azul marino"))
    wardrobe.add_item(_item_payload("Vaqueros", type_="Pantalón", color="Azul"))
    wardrobe.add_item(_item_payload("Jersey rojo", type_="Jersey", color="Rojo"))

    board.set_filters({"color": "AZUL"})
    assert {item.name for item in board.visible_items} == {"Camisa azul marino", "Vaqueros"}

    board.set_filters({"type": "pantalón"})
    assert [item.name for item in board.visible_items] == ["Vaqueros"]

    board.set_filters({"query": "jer", "season": "verano", "fabric": ""})
    assert [item.name for item in board.visible_items] == ["Jersey rojo"]
    assert len(board.items) == 3
