"""Parent/child legality checks run before any write that touches the tree.

The tree has exactly three levels, so legality is a lookup on the parent's
kind. Cycles cannot form as long as every write goes through here.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Optional

from .errors import InvalidHierarchy, NotFound, ValidationError
from .model import BOOKMARK, CATEGORY, FOLDER, KINDS, Item
from .store import ItemStore

# kind -> kinds its parent may have; empty means "must be a root".
PARENT_KINDS: Dict[str, FrozenSet[str]] = {
    CATEGORY: frozenset(),
    FOLDER: frozenset({CATEGORY}),
    BOOKMARK: frozenset({CATEGORY, FOLDER}),
}


def check_fields(kind: str, name: Optional[str], url: Optional[str]) -> None:
    if kind not in KINDS:
        raise ValidationError(f"unknown item kind: {kind!r}")
    if not (name or "").strip():
        raise ValidationError(f"{kind} name cannot be empty")
    if kind == BOOKMARK and not (url or "").strip():
        raise ValidationError("bookmark url cannot be empty")


def check_parent(store: ItemStore, owner: str, kind: str, parent_id: Optional[int], *, item_id: Optional[int] = None) -> Optional[Item]:
    """Return the resolved parent (None for categories) or raise."""
    allowed = PARENT_KINDS[kind]
    if not allowed:
        if parent_id is not None:
            raise InvalidHierarchy(f"a {kind} cannot have a parent")
        return None
    if parent_id is None:
        raise InvalidHierarchy(f"a {kind} needs a {' or '.join(sorted(allowed))} parent")
    if item_id is not None and int(parent_id) == int(item_id):
        raise InvalidHierarchy(f"{kind} {item_id} cannot be its own parent")
    parent = store.get_item(owner, int(parent_id))
    if parent is None:
        raise NotFound(f"parent not found: {parent_id}")
    if parent.kind not in allowed:
        raise InvalidHierarchy(f"a {kind} cannot be placed under a {parent.kind}")
    return parent


def check_create(
    store: ItemStore,
    owner: str,
    kind: str,
    name: Optional[str],
    *,
    parent_id: Optional[int] = None,
    url: Optional[str] = None,
) -> Optional[Item]:
    check_fields(kind, name, url)
    return check_parent(store, owner, kind, parent_id)


def check_update(store: ItemStore, owner: str, item: Item, fields: Dict[str, object]) -> None:
    """Validate ``fields`` as an edit of ``item``; nothing is written."""
    if "kind" in fields and fields["kind"] != item.kind:
        raise ValidationError("item kind cannot be changed")
    name = fields.get("name", item.name)
    url = fields.get("url", item.url)
    check_fields(item.kind, name, url)  # type: ignore[arg-type]
    if "parent_id" in fields:
        check_parent(store, owner, item.kind, fields["parent_id"], item_id=item.id)  # type: ignore[arg-type]
