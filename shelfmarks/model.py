from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

CATEGORY = "category"
FOLDER = "folder"
BOOKMARK = "bookmark"

KINDS = (CATEGORY, FOLDER, BOOKMARK)


@dataclass
class Item:
    id: int
    owner: str
    kind: str
    name: str
    icon: Optional[str] = None
    parent_id: Optional[int] = None
    url: Optional[str] = None
    rank: int = 0
    created_at: str = ""


@dataclass
class ImportFolder:
    synthetic_id: str
    name: str
    parent: Optional[str] = None


@dataclass
class ImportLink:
    synthetic_id: str
    name: str
    url: str
    parent: Optional[str] = None


@dataclass
class ImportPlan:
    folders: List[ImportFolder] = field(default_factory=list)
    links: List[ImportLink] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.folders and not self.links


@dataclass
class FolderView:
    folder: Item
    bookmarks: List[Item] = field(default_factory=list)


@dataclass
class CategoryView:
    category: Item
    folders: List[FolderView] = field(default_factory=list)
    bookmarks: List[Item] = field(default_factory=list)


@dataclass
class ImportProgress:
    phase: str
    folders_created: int
    folders_total: int
    bookmarks_processed: int
    bookmarks_total: int
    message: str = ""


@dataclass
class ImportReport:
    category_id: int
    folders_total: int = 0
    folders_created: int = 0
    folders_failed: int = 0
    bookmarks_total: int = 0
    bookmarks_created: int = 0
    bookmarks_failed: int = 0
    bookmarks_fallback: int = 0
    folder_ids: Dict[str, int] = field(default_factory=dict)

    @property
    def items_created(self) -> int:
        return self.folders_created + self.bookmarks_created
