import pytest

from shelfmarks.errors import NotFound, ValidationError
from shelfmarks.ordering import move_in_order, save_order, sibling_group

from conftest import OTHER, OWNER


def _bookmarks(store, parent_id, n):
    return [
        store.create_item(OWNER, "bookmark", f"b{i}", parent_id=parent_id, url=f"https://ex.com/{i}")
        for i in range(n)
    ]


def test_save_order_persists_exact_order_with_contiguous_ranks(store):
    cat = store.create_item(OWNER, "category", "C")
    bms = _bookmarks(store, cat.id, 4)
    order = [bms[3].id, bms[1].id, bms[0].id, bms[2].id]

    save_order(store, OWNER, order)

    group = sibling_group(store.get_items(OWNER), cat.id, "bookmark")
    assert [b.id for b in group] == order
    assert [b.rank for b in group] == [1, 2, 3, 4]


def test_save_order_closes_gaps(store):
    cats = [store.create_item(OWNER, "category", n, rank=r) for n, r in (("a", 3), ("b", 7), ("c", 12))]
    save_order(store, OWNER, [c.id for c in cats])
    assert [c.rank for c in store.get_items(OWNER)] == [1, 2, 3]


def test_duplicates_are_rejected(store):
    cat = store.create_item(OWNER, "category", "C")
    bms = _bookmarks(store, cat.id, 2)
    with pytest.raises(ValidationError):
        save_order(store, OWNER, [bms[0].id, bms[0].id])


def test_non_siblings_are_rejected_without_reparenting(store):
    cat = store.create_item(OWNER, "category", "C")
    folder = store.create_item(OWNER, "folder", "F", parent_id=cat.id)
    in_cat = _bookmarks(store, cat.id, 1)[0]
    in_folder = store.create_item(OWNER, "bookmark", "f", parent_id=folder.id, url="https://f")
    with pytest.raises(ValidationError):
        save_order(store, OWNER, [in_cat.id, in_folder.id])
    with pytest.raises(ValidationError):
        save_order(store, OWNER, [in_cat.id, folder.id])
    assert store.get_item(OWNER, in_folder.id).parent_id == folder.id


def test_partial_group_is_rejected(store):
    cat = store.create_item(OWNER, "category", "C")
    bms = _bookmarks(store, cat.id, 3)
    with pytest.raises(ValidationError):
        save_order(store, OWNER, [bms[2].id, bms[0].id])


def test_unknown_or_foreign_ids_are_not_found(store):
    theirs = store.create_item(OTHER, "category", "T")
    with pytest.raises(NotFound):
        save_order(store, OWNER, [theirs.id])
    with pytest.raises(NotFound):
        save_order(store, OWNER, [424242])


def test_empty_order_is_a_noop(store):
    save_order(store, OWNER, [])


def test_move_in_order():
    assert move_in_order([1, 2, 3, 4], 1, 3) == [2, 3, 1, 4]
    assert move_in_order([1, 2, 3, 4], 4, 2) == [1, 4, 2, 3]
    assert move_in_order([1, 2, 3], 2, 2) == [1, 2, 3]
    assert move_in_order([1, 2, 3], 9, 2) == [1, 2, 3]
