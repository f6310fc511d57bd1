from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from . import cascade, ordering
from .config import Settings
from .errors import NotFound, Unauthorized
from .hierarchy import check_create, check_update
from .importer import run_import
from .log import get_logger
from .model import BOOKMARK, CATEGORY, FOLDER, CategoryView, FolderView, ImportReport, Item
from .moves import GROUP_LOCKS, BoardSession, GroupLocks, SiblingGroup
from .parse_netscape import parse_bookmarks_html
from .store import ItemStore

log = get_logger(__name__)

DEFAULT_CATEGORY_NAME = "General"

_UNSET = object()


class Shelf:
    """Everything one authenticated user can do to their own items."""

    def __init__(
        self,
        store: ItemStore,
        owner: Optional[str],
        *,
        settings: Optional[Settings] = None,
        locks: Optional[GroupLocks] = None,
    ):
        if not (owner or "").strip():
            raise Unauthorized("no authenticated owner")
        self.store = store
        self.owner = str(owner).strip()
        self.settings = settings or Settings()
        self.locks = locks if locks is not None else GROUP_LOCKS

    def items(self) -> List[Item]:
        return self.store.get_items(self.owner)

    def get(self, item_id: int) -> Item:
        item = self.store.get_item(self.owner, item_id)
        if item is None:
            raise NotFound(f"item not found: {item_id}")
        return item

    def tree(self) -> List[CategoryView]:
        items = self.items()
        out: List[CategoryView] = []
        for cat in ordering.sibling_group(items, None, CATEGORY):
            view = CategoryView(category=cat)
            for folder in ordering.sibling_group(items, cat.id, FOLDER):
                view.folders.append(FolderView(folder=folder, bookmarks=ordering.sibling_group(items, folder.id, BOOKMARK)))
            view.bookmarks = ordering.sibling_group(items, cat.id, BOOKMARK)
            out.append(view)
        return out

    def create(
        self,
        kind: str,
        name: str,
        *,
        icon: Optional[str] = None,
        parent_id: Optional[int] = None,
        url: Optional[str] = None,
        ensure_category: bool = False,
    ) -> Item:
        if ensure_category and kind == FOLDER and parent_id is None and not self._categories():
            log.info("No category yet; creating %r.", DEFAULT_CATEGORY_NAME)
            parent_id = self.create(CATEGORY, DEFAULT_CATEGORY_NAME, icon=self.settings.default_category_icon).id
        check_create(self.store, self.owner, kind, name, parent_id=parent_id, url=url)
        with self.locks.hold(self.owner, [SiblingGroup(kind, parent_id)]):
            item = self.store.create_item(
                self.owner,
                kind,
                name.strip(),
                icon=icon,
                parent_id=parent_id,
                url=url.strip() if kind == BOOKMARK and url else None,
            )
        log.info("Created %s %r (id=%d).", kind, item.name, item.id)
        return item

    def edit(
        self,
        item_id: int,
        *,
        name: Optional[str] = None,
        icon: Optional[str] = None,
        url: Optional[str] = None,
        parent_id=_UNSET,
    ) -> Item:
        """Change name/icon/url/parent; omitted fields keep their value."""
        item = self.get(item_id)
        fields: Dict[str, object] = {}
        if name is not None:
            fields["name"] = name.strip()
        if icon is not None:
            fields["icon"] = icon
        if url is not None and item.kind == BOOKMARK:
            fields["url"] = url.strip()
        moving = parent_id is not _UNSET and parent_id != item.parent_id
        if moving:
            fields["parent_id"] = parent_id
        check_update(self.store, self.owner, item, fields)
        if not fields:
            return item

        if not moving:
            self.store.update_item(self.owner, item.id, **fields)
        else:
            groups = [SiblingGroup(item.kind, item.parent_id), SiblingGroup(item.kind, parent_id)]  # type: ignore[arg-type]
            with self.locks.hold(self.owner, groups):
                fields["rank"] = self.store.next_rank(self.owner, parent_id, item.kind)  # type: ignore[arg-type]
                self.store.update_item(self.owner, item.id, **fields)
        log.info("Updated %s %d: %s.", item.kind, item.id, ", ".join(sorted(fields)))
        return self.get(item.id)

    def delete(self, item_id: int) -> int:
        return cascade.delete_item(self.store, self.owner, item_id)

    def save_order(self, ordered_ids: Sequence[int]) -> None:
        ids = [int(x) for x in ordered_ids]
        if not ids:
            return
        first = self.get(ids[0])
        with self.locks.hold(self.owner, [SiblingGroup(first.kind, first.parent_id)]):
            ordering.save_order(self.store, self.owner, ids)

    def session(self) -> BoardSession:
        return BoardSession(self.store, self.owner, locks=self.locks)

    def import_html(self, text: str, category_id: int, *, progress=None) -> ImportReport:
        plan = parse_bookmarks_html(text)
        s = self.settings
        return run_import(
            self.store,
            self.owner,
            category_id,
            plan,
            batch_size=s.import_batch_size,
            pause_s=max(0, s.import_batch_pause_ms) / 1000.0,
            folder_jobs=s.import_folder_jobs,
            folder_icon=s.default_folder_icon,
            bookmark_icon=s.default_bookmark_icon,
            progress=progress,
            locks=self.locks,
        )

    def _categories(self) -> List[Item]:
        return ordering.sibling_group(self.items(), None, CATEGORY)
