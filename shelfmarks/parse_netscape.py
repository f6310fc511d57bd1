from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Optional

from bs4 import BeautifulSoup, Tag  # type: ignore

from .log import get_logger
from .model import ImportFolder, ImportLink, ImportPlan

log = get_logger(__name__)
_WS_RE = re.compile(r"\s+")

UNNAMED_FOLDER = "Unnamed Folder"
UNNAMED_BOOKMARK = "Unnamed Bookmark"


class _Ids:
    def __init__(self) -> None:
        self.folders = 0
        self.links = 0

    def folder(self) -> str:
        self.folders += 1
        return f"f{self.folders}"

    def link(self) -> str:
        self.links += 1
        return f"b{self.links}"


def parse_bookmarks_html(text: str) -> ImportPlan:
    """Parse a Netscape bookmark export into folder and link records.

    Browsers nest ``<DT>``/``<DD>``/``<DL>`` loosely and lxml repairs the markup
    in ways that move a folder's ``<DL>`` out of its ``<DT>``, so entries are
    taken in document order: a folder owns the first ``<DL>`` after its
    ``<H3>`` (unless another ``<H3>`` comes first) and every entry belongs to
    the folder owning its nearest enclosing list.

    Parents are synthetic ids local to this call. Anything that does not look
    like a bookmark file gives an empty plan.
    """
    plan = ImportPlan()
    if not (text or "").strip():
        return plan
    try:
        soup = BeautifulSoup(text, "lxml")
    except Exception as e:
        log.warning("Could not parse bookmarks HTML: %s", e)
        return plan

    root = soup.find("dl")
    if not isinstance(root, Tag):
        log.warning("No <DL> root in bookmarks HTML; nothing to import.")
        return plan

    ids = _Ids()
    # id(<DL> tag) -> synthetic id of the folder that owns it
    owners: Dict[int, str] = {}
    for node in root.find_all_next(["h3", "a"]):
        if not isinstance(node, Tag):
            continue
        parent = _owner_of(node, owners)
        if node.name == "h3":
            name = _clean(node.get_text(strip=True)) or UNNAMED_FOLDER
            folder = ImportFolder(synthetic_id=ids.folder(), name=name, parent=parent)
            plan.folders.append(folder)
            sub_dl = _folder_list(node)
            if sub_dl is None:
                log.debug("Folder without DL: %s", name)
            else:
                owners[id(sub_dl)] = folder.synthetic_id
            continue

        href = node.get("href")
        url = href.strip() if isinstance(href, str) else ""
        if not url:
            continue
        name = _clean(node.get_text(strip=True)) or UNNAMED_BOOKMARK
        plan.links.append(ImportLink(synthetic_id=ids.link(), name=name, url=url, parent=parent))

    log.info("Parsed %d folder(s) and %d link(s) from bookmarks HTML.", len(plan.folders), len(plan.links))
    return plan


def parse_bookmarks_file(path: Path) -> ImportPlan:
    return parse_bookmarks_html(path.read_text(encoding="utf-8", errors="replace"))


def _folder_list(h3: Tag) -> Optional[Tag]:
    dl = h3.find_next("dl")
    if not isinstance(dl, Tag) or dl.find_previous("h3") is not h3:
        return None
    return dl


def _owner_of(node: Tag, owners: Dict[int, str]) -> Optional[str]:
    for dl in node.find_parents("dl"):
        owner = owners.get(id(dl))
        if owner is not None:
            return owner
    return None


def _clean(s: str) -> str:
    return _WS_RE.sub(" ", s or "").strip()
