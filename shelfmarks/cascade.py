from __future__ import annotations

from .log import get_logger
from .model import BOOKMARK, CATEGORY, FOLDER, Item
from .store import ItemStore

log = get_logger(__name__)


def delete_item(store: ItemStore, owner: str, item_id: int) -> int:
    """Delete an item and everything under it; return the number of rows removed.

    Deleting an id that is already gone removes nothing, so a failed delete
    can simply be repeated.
    """
    with store.transaction():
        item = store.get_item(owner, item_id)
        if item is None:
            log.debug("Delete of %s: nothing to do (already gone).", item_id)
            return 0
        if item.kind == CATEGORY:
            removed = _delete_category(store, owner, item)
        elif item.kind == FOLDER:
            removed = _delete_folder(store, owner, item)
        else:
            store.delete_item(owner, item.id)
            removed = 1
    log.info("Deleted %s %r (%d row(s)).", item.kind, item.name, removed)
    return removed


def _delete_category(store: ItemStore, owner: str, category: Item) -> int:
    removed = 0
    folders = store.list_children(owner, category.id, FOLDER)
    for folder in folders:
        removed += store.delete_children(owner, folder.id, BOOKMARK)
    removed += store.delete_children(owner, category.id, BOOKMARK)
    removed += store.delete_children(owner, category.id, FOLDER)
    store.delete_item(owner, category.id)
    return removed + 1


def _delete_folder(store: ItemStore, owner: str, folder: Item) -> int:
    removed = store.delete_children(owner, folder.id, BOOKMARK)
    store.delete_item(owner, folder.id)
    return removed + 1
