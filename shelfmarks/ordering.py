from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from .errors import NotFound, ValidationError
from .log import get_logger
from .model import Item
from .store import ItemStore

log = get_logger(__name__)


def sibling_group(items: Iterable[Item], parent_id: Optional[int], kind: str) -> List[Item]:
    """Items sharing ``parent_id`` and ``kind`` in display order (rank, then id)."""
    group = [it for it in items if it.kind == kind and it.parent_id == parent_id]
    group.sort(key=lambda it: (it.rank, it.id))
    return group


def move_in_order(order: Sequence[int], active_id: int, over_id: int) -> List[int]:
    """Move ``active_id`` to the slot currently held by ``over_id``.

    Unknown ids leave the order untouched.
    """
    out = list(order)
    if active_id == over_id or active_id not in out or over_id not in out:
        return out
    old_index = out.index(active_id)
    new_index = out.index(over_id)
    out.insert(new_index, out.pop(old_index))
    return out


def save_order(store: ItemStore, owner: str, ordered_ids: Sequence[int]) -> None:
    """Persist ``ordered_ids`` as ranks 1..n of one complete sibling group."""
    ids = [int(x) for x in ordered_ids]
    if not ids:
        return
    if len(set(ids)) != len(ids):
        raise ValidationError("duplicate ids in order")

    by_id: Dict[int, Item] = {it.id: it for it in store.get_items(owner)}
    missing = [i for i in ids if i not in by_id]
    if missing:
        raise NotFound(f"item(s) not found: {', '.join(str(i) for i in missing)}")

    first = by_id[ids[0]]
    for i in ids[1:]:
        it = by_id[i]
        if it.parent_id != first.parent_id or it.kind != first.kind:
            raise ValidationError(f"item {i} is not a sibling of item {first.id}")

    group = sibling_group(by_id.values(), first.parent_id, first.kind)
    if len(group) != len(ids):
        raise ValidationError(
            f"order must list the whole {first.kind} group ({len(group)} items, got {len(ids)})"
        )

    store.set_ranks(owner, ids)
    log.info("Saved order of %d %s item(s) under parent %s.", len(ids), first.kind, first.parent_id)
