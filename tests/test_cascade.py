import pytest

from shelfmarks.cascade import delete_item
from shelfmarks.errors import StorageError

from conftest import OTHER, OWNER


def _category_with_children(store, name="Dev", folders=2, per_folder=3, loose=2):
    cat = store.create_item(OWNER, "category", name)
    folder_ids = []
    for f in range(folders):
        folder = store.create_item(OWNER, "folder", f"{name}-f{f}", parent_id=cat.id)
        folder_ids.append(folder.id)
        for b in range(per_folder):
            store.create_item(OWNER, "bookmark", f"b{b}", parent_id=folder.id, url=f"https://ex.com/{f}/{b}")
    for b in range(loose):
        store.create_item(OWNER, "bookmark", f"loose{b}", parent_id=cat.id, url=f"https://ex.com/l{b}")
    return cat, folder_ids


def test_category_delete_removes_k_plus_m_plus_one_rows(store):
    cat, folder_ids = _category_with_children(store)
    keep, _ = _category_with_children(store, name="Keep", folders=1, per_folder=1, loose=1)
    before = store.count(OWNER)

    removed = delete_item(store, OWNER, cat.id)

    k, m = 2, 2 * 3 + 2
    assert removed == k + m + 1
    assert store.count(OWNER) == before - (k + m + 1)
    gone = {cat.id, *folder_ids}
    assert not [i for i in store.get_items(OWNER) if i.parent_id in gone]
    assert store.get_item(OWNER, keep.id) is not None


def test_category_delete_is_idempotent(store):
    cat, _ = _category_with_children(store)
    assert delete_item(store, OWNER, cat.id) > 0
    assert delete_item(store, OWNER, cat.id) == 0


def test_folder_delete_removes_its_bookmarks_only(store):
    cat, folder_ids = _category_with_children(store)
    removed = delete_item(store, OWNER, folder_ids[0])
    assert removed == 3 + 1
    remaining = store.get_items(OWNER)
    assert {i.id for i in remaining if i.kind == "folder"} == {folder_ids[1]}
    assert len([i for i in remaining if i.kind == "bookmark" and i.parent_id == cat.id]) == 2


def test_bookmark_delete_removes_one_row(store):
    cat = store.create_item(OWNER, "category", "C")
    bm = store.create_item(OWNER, "bookmark", "b", parent_id=cat.id, url="https://b")
    assert delete_item(store, OWNER, bm.id) == 1
    assert store.get_item(OWNER, cat.id) is not None


def test_other_owner_cannot_delete(store):
    cat, _ = _category_with_children(store)
    before = store.count(OWNER)
    assert delete_item(store, OTHER, cat.id) == 0
    assert store.count(OWNER) == before


def test_failure_mid_cascade_rolls_back(store, monkeypatch):
    cat, _ = _category_with_children(store)
    before = store.count(OWNER)

    real = store.delete_item

    def _fail_on_category(owner, item_id):
        if item_id == cat.id:
            raise StorageError("disk full")
        return real(owner, item_id)

    monkeypatch.setattr(store, "delete_item", _fail_on_category)
    with pytest.raises(StorageError):
        delete_item(store, OWNER, cat.id)
    assert store.count(OWNER) == before

    monkeypatch.setattr(store, "delete_item", real)
    assert delete_item(store, OWNER, cat.id) == before
