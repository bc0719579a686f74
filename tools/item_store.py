"""Owner-scoped document store for clothing items and outfits.

The store plays the role of the managed document database: every record
carries an ``owner_id``, listeners receive the full matching set (newest
first) after every committed change, and multi-document outfit updates are
applied as one all-or-nothing batch.
"""
from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import time
from dataclasses import asdict
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from armario_app.logging_config import get_logger, log_event
from logic.errors import NotFound, StoreError
from models.clothing_item import ClothingItem
from models.outfit import Outfit

LOGGER = get_logger(__name__)

CLOTHING_ITEMS = "clothing_items"
OUTFITS = "outfits"
COLLECTION_KINDS = (CLOTHING_ITEMS, OUTFITS)

ITEM_MUTABLE_FIELDS = {"name", "type", "color", "season", "fabric", "image_url"}
OUTFIT_MUTABLE_FIELDS = {"name", "item_ids", "collection_name", "is_favorite", "description", "occasion"}

SnapshotCallback = Callable[[List[Any]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription:
    """Handle for one live query; call :meth:`unsubscribe` to release it."""

    def __init__(
        self,
        store: "ItemStore",
        owner_id: str,
        kind: str,
        callback: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self.store = store
        self.owner_id = owner_id
        self.kind = kind
        self.callback = callback
        self.on_error = on_error
        self.active = True

    def deliver(self, records: List[Any]) -> None:
        if self.active:
            self.callback(records)

    def fail(self, exc: Exception) -> None:
        if self.active and self.on_error:
            self.on_error(exc)

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self.store._remove_subscription(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unsubscribe()


class ItemStore:
    """Persistence interface plus the shared live-subscription registry."""

    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []

    # clothing items
    def create_item(self, item: ClothingItem) -> ClothingItem:
        raise NotImplementedError

    def get_item(self, owner_id: str, item_id: str) -> Optional[ClothingItem]:
        raise NotImplementedError

    def list_items(self, owner_id: str) -> List[ClothingItem]:
        raise NotImplementedError

    def update_item(self, owner_id: str, item_id: str, fields: Dict[str, object]) -> ClothingItem:
        raise NotImplementedError

    def delete_item(self, owner_id: str, item_id: str) -> bool:
        raise NotImplementedError

    # outfits
    def create_outfit(self, outfit: Outfit) -> Outfit:
        raise NotImplementedError

    def get_outfit(self, owner_id: str, outfit_id: str) -> Optional[Outfit]:
        raise NotImplementedError

    def list_outfits(self, owner_id: str) -> List[Outfit]:
        raise NotImplementedError

    def update_outfit(self, owner_id: str, outfit_id: str, fields: Dict[str, object]) -> Outfit:
        raise NotImplementedError

    def delete_outfit(self, owner_id: str, outfit_id: str) -> bool:
        raise NotImplementedError

    def batch_update_outfits(self, owner_id: str, updates: Dict[str, Dict[str, object]]) -> int:
        """Apply per-outfit field updates atomically; return the number updated."""

        raise NotImplementedError

    # live queries
    def subscribe(
        self,
        owner_id: str,
        kind: str,
        callback: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Register ``callback`` for ``kind`` records of ``owner_id``.

        The current snapshot is delivered immediately, then again after every
        committed change for that owner and kind.
        """

        if kind not in COLLECTION_KINDS:
            raise ValueError(f"Unknown collection kind '{kind}'. Allowed: {list(COLLECTION_KINDS)}")
        subscription = Subscription(self, owner_id, kind, callback, on_error)
        self._subscriptions.append(subscription)
        log_event(LOGGER, logging.DEBUG, "store_subscription_opened", kind=kind)
        self._deliver(subscription)
        return subscription

    def active_subscriptions(self, owner_id: str | None = None) -> List[Subscription]:
        return [s for s in self._subscriptions if owner_id is None or s.owner_id == owner_id]

    def _remove_subscription(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            log_event(LOGGER, logging.DEBUG, "store_subscription_closed", kind=subscription.kind)

    def _snapshot(self, owner_id: str, kind: str) -> List[Any]:
        if kind == CLOTHING_ITEMS:
            return self.list_items(owner_id)
        return self.list_outfits(owner_id)

    def _deliver(self, subscription: Subscription) -> None:
        try:
            records = self._snapshot(subscription.owner_id, subscription.kind)
        except StoreError as exc:
            log_event(LOGGER, logging.ERROR, "store_snapshot_failed", kind=subscription.kind, exc_info=True)
            subscription.fail(exc)
            return
        subscription.deliver(records)

    def _notify(self, owner_id: str, kind: str) -> None:
        for subscription in list(self._subscriptions):
            if subscription.owner_id == owner_id and subscription.kind == kind:
                self._deliver(subscription)


class SQLiteItemStore(ItemStore):
    """Local SQLite-backed store."""

    def __init__(self, database_path: str | Path = "data/armario.db") -> None:
        super().__init__()
        self.database_path = Path(database_path)
        if self.database_path.parent and not self.database_path.parent.exists():
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection whose writes commit together or not at all."""

        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StoreError(f"Could not open item store: {exc}") from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StoreError(f"Item store operation failed: {exc}") from exc
        finally:
            conn.close()

    def _ensure_tables(self) -> None:
        with self._transaction() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS clothing_items (
                    owner_id TEXT NOT NULL,
                    item_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    type TEXT,
                    color TEXT,
                    season TEXT,
                    fabric TEXT,
                    image_url TEXT,
                    created_at REAL,
                    PRIMARY KEY (owner_id, item_id)
                );
                CREATE TABLE IF NOT EXISTS outfits (
                    owner_id TEXT NOT NULL,
                    outfit_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    item_ids TEXT,
                    collection_name TEXT,
                    is_favorite INTEGER DEFAULT 0,
                    description TEXT,
                    occasion TEXT,
                    created_at REAL,
                    updated_at REAL,
                    PRIMARY KEY (owner_id, outfit_id)
                );
                """
            )

    # clothing items
    def _write_item(self, conn: sqlite3.Connection, item: ClothingItem) -> None:
        conn.execute(
            """
            INSERT OR REPLACE INTO clothing_items (
                owner_id, item_id, name, type, color, season, fabric, image_url, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                item.owner_id,
                item.item_id,
                item.name,
                item.type,
                item.color,
                item.season,
                item.fabric,
                item.image_url,
                item.created_at,
            ),
        )

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> ClothingItem:
        return ClothingItem(
            item_id=row["item_id"],
            owner_id=row["owner_id"],
            name=row["name"],
            type=row["type"] or "",
            color=row["color"] or "",
            season=row["season"] or "",
            fabric=row["fabric"] or "",
            image_url=row["image_url"] or "",
            created_at=row["created_at"] or 0.0,
        )

    def create_item(self, item: ClothingItem) -> ClothingItem:
        with self._transaction() as conn:
            self._write_item(conn, item)
        self._notify(item.owner_id, CLOTHING_ITEMS)
        return item

    def get_item(self, owner_id: str, item_id: str) -> Optional[ClothingItem]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM clothing_items WHERE owner_id = ? AND item_id = ?",
                (owner_id, item_id),
            ).fetchone()
            return self._row_to_item(row) if row else None

    def list_items(self, owner_id: str) -> List[ClothingItem]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM clothing_items WHERE owner_id = ? ORDER BY created_at DESC, item_id",
                (owner_id,),
            ).fetchall()
            return [self._row_to_item(row) for row in rows]

    def update_item(self, owner_id: str, item_id: str, fields: Dict[str, object]) -> ClothingItem:
        current = self.get_item(owner_id, item_id)
        if not current:
            raise NotFound(f"Clothing item {item_id} not found")

        values = asdict(current)
        values.update({key: value for key, value in fields.items() if key in ITEM_MUTABLE_FIELDS})
        updated = ClothingItem(**values)
        with self._transaction() as conn:
            self._write_item(conn, updated)
        self._notify(owner_id, CLOTHING_ITEMS)
        return updated

    def delete_item(self, owner_id: str, item_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM clothing_items WHERE owner_id = ? AND item_id = ?",
                (owner_id, item_id),
            )
            deleted = cursor.rowcount > 0
        if deleted:
            self._notify(owner_id, CLOTHING_ITEMS)
        return deleted

    # outfits
    def _write_outfit(self, conn: sqlite3.Connection, outfit: Outfit) -> None:
        conn.execute(
            """
            INSERT OR REPLACE INTO outfits (
                owner_id, outfit_id, name, item_ids, collection_name, is_favorite,
                description, occasion, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                outfit.owner_id,
                outfit.outfit_id,
                outfit.name,
                json.dumps(outfit.item_ids),
                outfit.collection_name,
                int(outfit.is_favorite),
                outfit.description,
                outfit.occasion,
                outfit.created_at,
                outfit.updated_at,
            ),
        )

    @staticmethod
    def _row_to_outfit(row: sqlite3.Row) -> Outfit:
        return Outfit(
            outfit_id=row["outfit_id"],
            owner_id=row["owner_id"],
            name=row["name"],
            item_ids=json.loads(row["item_ids"]) if row["item_ids"] else [],
            collection_name=row["collection_name"],
            is_favorite=bool(row["is_favorite"]),
            description=row["description"],
            occasion=row["occasion"],
            created_at=row["created_at"] or 0.0,
            updated_at=row["updated_at"],
        )

    def create_outfit(self, outfit: Outfit) -> Outfit:
        with self._transaction() as conn:
            self._write_outfit(conn, outfit)
        self._notify(outfit.owner_id, OUTFITS)
        return outfit

    def get_outfit(self, owner_id: str, outfit_id: str) -> Optional[Outfit]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM outfits WHERE owner_id = ? AND outfit_id = ?",
                (owner_id, outfit_id),
            ).fetchone()
            return self._row_to_outfit(row) if row else None

    def list_outfits(self, owner_id: str) -> List[Outfit]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM outfits WHERE owner_id = ? ORDER BY created_at DESC, outfit_id",
                (owner_id,),
            ).fetchall()
            return [self._row_to_outfit(row) for row in rows]

    def update_outfit(self, owner_id: str, outfit_id: str, fields: Dict[str, object]) -> Outfit:
        with self._transaction() as conn:
            updated = self._apply_outfit_update(conn, owner_id, outfit_id, fields)
        self._notify(owner_id, OUTFITS)
        return updated

    def delete_outfit(self, owner_id: str, outfit_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM outfits WHERE owner_id = ? AND outfit_id = ?",
                (owner_id, outfit_id),
            )
            deleted = cursor.rowcount > 0
        if deleted:
            self._notify(owner_id, OUTFITS)
        return deleted

    def batch_update_outfits(self, owner_id: str, updates: Dict[str, Dict[str, object]]) -> int:
        if not updates:
            return 0
        with self._transaction() as conn:
            for outfit_id, fields in updates.items():
                self._apply_outfit_update(conn, owner_id, outfit_id, fields)
        log_event(LOGGER, logging.INFO, "store_batch_committed", kind=OUTFITS, count=len(updates))
        self._notify(owner_id, OUTFITS)
        return len(updates)

    def _apply_outfit_update(
        self, conn: sqlite3.Connection, owner_id: str, outfit_id: str, fields: Dict[str, object]
    ) -> Outfit:
        row = conn.execute(
            "SELECT * FROM outfits WHERE owner_id = ? AND outfit_id = ?",
            (owner_id, outfit_id),
        ).fetchone()
        if not row:
            raise NotFound(f"Outfit {outfit_id} not found")

        values = asdict(self._row_to_outfit(row))
        values.update({key: value for key, value in fields.items() if key in OUTFIT_MUTABLE_FIELDS})
        values["updated_at"] = time.time()
        updated = Outfit(**values)
        self._write_outfit(conn, updated)
        return updated


__all__ = [
    "CLOTHING_ITEMS",
    "COLLECTION_KINDS",
    "ITEM_MUTABLE_FIELDS",
    "ItemStore",
    "OUTFITS",
    "OUTFIT_MUTABLE_FIELDS",
    "SQLiteItemStore",
    "Subscription",
]
