"""Drag-and-drop protocol: reorder a sibling group or drop bookmarks into folders.

A session is in exactly one ``Mode`` at a time. Writes to a sibling group are
serialized through ``GroupLocks``; a second writer gets ``ConflictError``
instead of waiting.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from . import ordering
from .errors import ConflictError, NotFound, ValidationError
from .hierarchy import check_update
from .log import get_logger
from .model import BOOKMARK, CATEGORY, FOLDER, Item
from .store import ItemStore

log = get_logger(__name__)


class Mode(str, Enum):
    IDLE = "idle"
    REORDERING = "reordering"
    DRAG_DROPPING = "drag_dropping"


@dataclass(frozen=True)
class SiblingGroup:
    kind: str
    parent_id: Optional[int] = None

    @staticmethod
    def categories() -> "SiblingGroup":
        return SiblingGroup(CATEGORY, None)

    @staticmethod
    def folders_in(category_id: int) -> "SiblingGroup":
        return SiblingGroup(FOLDER, int(category_id))

    @staticmethod
    def bookmarks_in(parent_id: int) -> "SiblingGroup":
        return SiblingGroup(BOOKMARK, int(parent_id))


class GroupLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._busy: Set[Tuple[str, Optional[int], str]] = set()

    @contextmanager
    def hold(self, owner: str, groups: Iterable[SiblingGroup]) -> Iterator[None]:
        keys = {(owner, g.parent_id, g.kind) for g in groups}
        with self._guard:
            if keys & self._busy:
                raise ConflictError("another change to this group is in flight; refetch and retry")
            self._busy |= keys
        try:
            yield
        finally:
            with self._guard:
                self._busy -= keys

    def is_busy(self, owner: str, group: SiblingGroup) -> bool:
        with self._guard:
            return (owner, group.parent_id, group.kind) in self._busy


GROUP_LOCKS = GroupLocks()


class BoardSession:
    def __init__(self, store: ItemStore, owner: str, *, locks: Optional[GroupLocks] = None):
        self.store = store
        self.owner = owner
        self.locks = locks if locks is not None else GROUP_LOCKS
        self.mode = Mode.IDLE
        self.group: Optional[SiblingGroup] = None
        self.candidate: List[int] = []
        self.items: List[Item] = []

    def refresh(self) -> List[Item]:
        self.items = self.store.get_items(self.owner)
        return self.items

    # Reorder mode

    def begin_reorder(self, group: SiblingGroup) -> List[int]:
        if self.mode == Mode.DRAG_DROPPING:
            raise ConflictError("leave drag-drop mode before reordering")
        self.refresh()
        self.group = group
        self.candidate = [it.id for it in ordering.sibling_group(self.items, group.parent_id, group.kind)]
        self.mode = Mode.REORDERING
        return list(self.candidate)

    def drag(self, active_id: int, over_id: int) -> List[int]:
        self._require(Mode.REORDERING)
        self.candidate = ordering.move_in_order(self.candidate, active_id, over_id)
        return list(self.candidate)

    def set_candidate(self, order: List[int]) -> None:
        self._require(Mode.REORDERING)
        if sorted(order) != sorted(self.candidate):
            raise ValidationError("candidate order must be a permutation of the group")
        self.candidate = list(order)

    def save_order(self) -> None:
        self._require(Mode.REORDERING)
        if self.group is None:
            raise ValidationError("no sibling group selected for reordering")
        with self.locks.hold(self.owner, [self.group]):
            ordering.save_order(self.store, self.owner, self.candidate)
        self._reset()

    def cancel(self) -> None:
        self._reset()

    # Drag-to-folder mode

    def begin_drag_drop(self) -> None:
        if self.mode == Mode.REORDERING:
            raise ConflictError("save or cancel the reorder before drag-drop")
        self.refresh()
        self.mode = Mode.DRAG_DROPPING

    def end_drag_drop(self) -> None:
        if self.mode == Mode.DRAG_DROPPING:
            self.mode = Mode.IDLE

    def can_drag(self, item_id: int) -> bool:
        if self.mode != Mode.DRAG_DROPPING:
            return False
        by_id = self._by_id()
        item = by_id.get(item_id)
        if item is None or item.kind != BOOKMARK or item.parent_id is None:
            return False
        parent = by_id.get(item.parent_id)
        return parent is not None and parent.kind == CATEGORY

    def drop(self, active_id: int, over_id: int) -> bool:
        """Move bookmark ``active_id`` into folder ``over_id``; False when not eligible."""
        if self.mode != Mode.DRAG_DROPPING or active_id == over_id:
            return False
        if not self.can_drag(active_id):
            return False
        by_id = self._by_id()
        bookmark = by_id[active_id]
        target = by_id.get(over_id)
        if target is None or bookmark.parent_id is None or target.kind != FOLDER or target.parent_id != bookmark.parent_id:
            return False

        groups = [SiblingGroup.bookmarks_in(bookmark.parent_id), SiblingGroup.bookmarks_in(target.id)]
        with self.locks.hold(self.owner, groups):
            current = self.store.get_item(self.owner, bookmark.id)
            if current is None:
                raise NotFound(f"bookmark not found: {bookmark.id}")
            if current.parent_id != bookmark.parent_id:
                self.refresh()
                return False
            check_update(self.store, self.owner, current, {"parent_id": target.id})
            rank = self.store.next_rank(self.owner, target.id, BOOKMARK)
            self.store.update_item(self.owner, bookmark.id, parent_id=target.id, rank=rank)

        bookmark.parent_id = target.id
        bookmark.rank = rank
        log.info("Moved bookmark %r into folder %r.", bookmark.name, target.name)
        return True

    def _by_id(self) -> Dict[int, Item]:
        return {it.id: it for it in self.items}

    def _require(self, mode: Mode) -> None:
        if self.mode != mode:
            raise ValidationError(f"session is {self.mode.value}, expected {mode.value}")

    def _reset(self) -> None:
        self.mode = Mode.IDLE
        self.group = None
        self.candidate = []
        self.refresh()
