"""Grouping of outfits into collections and the expansion-state merge.

Everything here is pure: inputs are never mutated and the same inputs always
produce the same outputs, so the board view can rerun these on every snapshot
the store delivers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Dict, Iterable, List, Sequence

from models.outfit import Outfit
from models.taxonomy import DEFAULT_COLLECTION, FAVORITES_COLLECTION


@dataclass
class CollectionGroup:
    """One rendered group: a real collection or the favorites pseudo-group."""

    collection_name: str
    outfits: List[Outfit] = field(default_factory=list)

    @property
    def is_favorites(self) -> bool:
        return self.collection_name == FAVORITES_COLLECTION

    @property
    def outfit_ids(self) -> List[str]:
        return [outfit.outfit_id for outfit in self.outfits]


@dataclass
class ExpansionState:
    """Which groups are open, plus bookkeeping for the auto-open rules.

    ``known_names`` holds every group name seen by the previous merge so that a
    group the user collapsed is not mistaken for a newly appearing one.
    """

    open_names: List[str] = field(default_factory=list)
    known_names: List[str] = field(default_factory=list)
    initial_auto_open_done: bool = False

    def is_open(self, collection_name: str) -> bool:
        return collection_name in self.open_names


def _rank(name: str) -> int:
    if name == FAVORITES_COLLECTION:
        return 0
    if name == DEFAULT_COLLECTION:
        return 1
    return 2


def compare_collection_names(left: str, right: str) -> int:
    """Canonical comparator: favorites, then default, then case-insensitive order.

    Names equal under case folding fall back to a plain comparison so the
    ordering stays total.
    """

    left_key = (_rank(left), left.casefold(), left)
    right_key = (_rank(right), right.casefold(), right)
    if left_key < right_key:
        return -1
    if left_key > right_key:
        return 1
    return 0


collection_sort_key = cmp_to_key(compare_collection_names)


def sort_collection_names(names: Iterable[str]) -> List[str]:
    """Deduplicate and sort names with :func:`compare_collection_names`."""

    return sorted(set(names), key=collection_sort_key)


def group_outfits(outfits: Sequence[Outfit]) -> List[CollectionGroup]:
    """Group outfits by collection with the favorites pseudo-group first.

    Every outfit lands in exactly one real bucket keyed by its collection name
    (the default collection when unset) and, when favorited, also in the
    favorites group. Outfits keep their input order inside each group.
    """

    favorites: List[Outfit] = []
    buckets: Dict[str, List[Outfit]] = {}
    for outfit in outfits:
        if outfit.is_favorite:
            favorites.append(outfit)
        buckets.setdefault(outfit.effective_collection, []).append(outfit)

    groups: List[CollectionGroup] = []
    if favorites:
        groups.append(CollectionGroup(FAVORITES_COLLECTION, favorites))
    for name in sort_collection_names(buckets):
        groups.append(CollectionGroup(name, buckets[name]))
    return _dedupe_groups(groups)


def _dedupe_groups(groups: List[CollectionGroup]) -> List[CollectionGroup]:
    """Merge groups sharing a name, keeping the first position and outfit order.

    Only reachable when stored data carries the reserved favorites name as a
    real collection.
    """

    merged: Dict[str, CollectionGroup] = {}
    ordered: List[CollectionGroup] = []
    for group in groups:
        existing = merged.get(group.collection_name)
        if existing is None:
            copy = CollectionGroup(group.collection_name, list(group.outfits))
            merged[group.collection_name] = copy
            ordered.append(copy)
            continue
        present = {outfit.outfit_id for outfit in existing.outfits}
        existing.outfits.extend(o for o in group.outfits if o.outfit_id not in present)
    return ordered


def real_collection_names(outfits: Iterable[Outfit]) -> List[str]:
    """Names of the real collections in use, canonically sorted."""

    return sort_collection_names(outfit.effective_collection for outfit in outfits)


def merge_expansion_state(groups: Sequence[CollectionGroup], previous: ExpansionState) -> ExpansionState:
    """Fold the current group names into the user's expansion state.

    * names that disappeared are dropped;
    * on the first non-empty load the favorites group and, if it holds outfits,
      the default collection are opened once;
    * afterwards newly appearing groups open on their own when they are the
      favorites group, the default collection, or hold outfits;
    * groups the user collapsed stay collapsed.
    """

    current = [group.collection_name for group in groups]
    current_set = set(current)
    sizes = {group.collection_name: len(group.outfits) for group in groups}

    open_names = [name for name in previous.open_names if name in current_set]
    auto_open_done = previous.initial_auto_open_done

    if not auto_open_done:
        if groups:
            if FAVORITES_COLLECTION in current_set:
                open_names.append(FAVORITES_COLLECTION)
            if sizes.get(DEFAULT_COLLECTION, 0) > 0:
                open_names.append(DEFAULT_COLLECTION)
            auto_open_done = True
    else:
        known = set(previous.known_names)
        for name in current:
            if name in open_names or name in known:
                continue
            if name in (FAVORITES_COLLECTION, DEFAULT_COLLECTION) or sizes.get(name, 0) > 0:
                open_names.append(name)

    return ExpansionState(
        open_names=sort_collection_names(open_names),
        known_names=sort_collection_names(current) if auto_open_done else [],
        initial_auto_open_done=auto_open_done,
    )


def toggle_expansion(state: ExpansionState, collection_name: str) -> ExpansionState:
    """Open a collapsed group or collapse an open one.

    Names that are not among the groups of the last merge are ignored.
    """

    if collection_name not in state.known_names:
        return state
    if collection_name in state.open_names:
        open_names = [name for name in state.open_names if name != collection_name]
    else:
        open_names = state.open_names + [collection_name]
    return ExpansionState(
        open_names=sort_collection_names(open_names),
        known_names=list(state.known_names),
        initial_auto_open_done=state.initial_auto_open_done,
    )


def reconcile(outfits: Sequence[Outfit], previous: ExpansionState | None = None) -> tuple[List[CollectionGroup], ExpansionState]:
    """Group ``outfits`` and merge the result into ``previous`` expansion state."""

    groups = group_outfits(outfits)
    return groups, merge_expansion_state(groups, previous or ExpansionState())


__all__ = [
    "CollectionGroup",
    "ExpansionState",
    "collection_sort_key",
    "compare_collection_names",
    "group_outfits",
    "merge_expansion_state",
    "real_collection_names",
    "reconcile",
    "sort_collection_names",
    "toggle_expansion",
]
