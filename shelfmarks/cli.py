from __future__ import annotations

import argparse
from pathlib import Path
from typing import List

from . import __version__
from .config import load_settings
from .errors import ShelfError, Unauthorized
from .log import LogConfig, get_logger, setup_logging
from .model import KINDS, ImportProgress
from .shelf import Shelf
from .store import ItemStore

log = get_logger(__name__)


def main(argv: List[str] | None = None) -> int:
    p = argparse.ArgumentParser(
        prog="shelfmarks",
        description="Per-user category / folder / bookmark shelves backed by SQLite.",
    )
    p.add_argument("-V", "--version", action="version", version=f"shelfmarks {__version__}")
    p.add_argument("--config", default=None, help="YAML config file (optional). Env vars override defaults.")
    p.add_argument("--db", default=None, help="SQLite database path (overrides SHELF_DB_PATH/config).")
    p.add_argument("--owner", default=None, help="Owner id of the caller (overrides SHELF_OWNER).")
    p.add_argument("--log-level", default=None, help="DEBUG/INFO/WARN/ERROR (overrides env/config).")
    p.add_argument("--no-color", action="store_true", help="Disable colored logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init", help="Create the database schema.")
    sub.add_parser("list", help="Print the caller's categories, folders and bookmarks.")

    add = sub.add_parser("add", help="Create a category, folder or bookmark.")
    add.add_argument("kind", choices=KINDS)
    add.add_argument("name")
    add.add_argument("--parent", type=int, default=None, help="Parent id (category for folders; category or folder for bookmarks).")
    add.add_argument("--url", default=None, help="Bookmark URL.")
    add.add_argument("--icon", default=None, help="Icon name.")

    edit = sub.add_parser("edit", help="Change an item's name, icon, url or parent.")
    edit.add_argument("id", type=int)
    edit.add_argument("--name", default=None)
    edit.add_argument("--icon", default=None)
    edit.add_argument("--url", default=None)
    edit.add_argument("--parent", type=int, default=None)

    delete = sub.add_parser("delete", help="Delete an item and everything under it.")
    delete.add_argument("id", type=int)

    reorder = sub.add_parser("reorder", help="Save the full order of one sibling group.")
    reorder.add_argument("ids", type=int, nargs="+")

    move = sub.add_parser("move", help="Drop a category-level bookmark into a folder of the same category.")
    move.add_argument("bookmark", type=int)
    move.add_argument("folder", type=int)

    imp = sub.add_parser("import", help="Import a browser bookmarks HTML export into a category.")
    imp.add_argument("html", help="Netscape bookmarks HTML file.")
    imp.add_argument("--category", type=int, required=True, help="Target category id.")

    args = p.parse_args(argv)
    cfg = load_settings(args.config)
    if args.log_level:
        cfg.log_level = args.log_level
    if args.no_color:
        cfg.no_color = True
    if args.db:
        cfg.db_path = args.db
    if args.owner is not None:
        cfg.owner = args.owner
    setup_logging(LogConfig(level=cfg.log_level, no_color=cfg.no_color))

    try:
        with ItemStore(Path(cfg.db_path), busy_timeout_ms=cfg.busy_timeout_ms) as store:
            if args.cmd == "init":
                log.info("Item store ready: %s", cfg.db_path)
                return 0
            return _dispatch(args, Shelf(store, cfg.owner, settings=cfg))
    except Unauthorized:
        log.error("No owner given (use --owner or SHELF_OWNER).")
        return 2
    except ShelfError as e:
        log.error("Operation failed (%s): %s", e.kind, e)
        return 1


def _dispatch(args, shelf: Shelf) -> int:
    if args.cmd == "list":
        for line in _tree_lines(shelf):
            print(line)
        return 0

    if args.cmd == "add":
        item = shelf.create(
            args.kind,
            args.name,
            icon=args.icon,
            parent_id=args.parent,
            url=args.url,
            ensure_category=True,
        )
        print(item.id)
        return 0

    if args.cmd == "edit":
        kwargs = {"name": args.name, "icon": args.icon, "url": args.url}
        if args.parent is not None:
            kwargs["parent_id"] = args.parent
        shelf.edit(args.id, **kwargs)
        return 0

    if args.cmd == "delete":
        removed = shelf.delete(args.id)
        log.info("Removed %d item(s).", removed)
        return 0

    if args.cmd == "reorder":
        shelf.save_order(args.ids)
        return 0

    if args.cmd == "move":
        session = shelf.session()
        session.begin_drag_drop()
        try:
            moved = session.drop(args.bookmark, args.folder)
        finally:
            session.end_drag_drop()
        if not moved:
            log.warning(
                "Bookmark %d was not moved: only bookmarks sitting directly in a category can be dropped "
                "into a folder of that category.",
                args.bookmark,
            )
            return 1
        return 0

    if args.cmd == "import":
        src = Path(args.html)
        if not src.exists():
            log.error("Input file not found: %s", src)
            return 2
        text = src.read_text(encoding="utf-8", errors="replace")
        report = shelf.import_html(text, args.category, progress=_log_progress)
        print(
            f"folders {report.folders_created}/{report.folders_total}, "
            f"bookmarks {report.bookmarks_created}/{report.bookmarks_total} "
            f"({report.bookmarks_fallback} fallback, {report.bookmarks_failed} failed)"
        )
        return 0 if not (report.folders_failed or report.bookmarks_failed) else 1

    return 2


def _log_progress(p: ImportProgress) -> None:
    log.debug("Import progress: %s %d/%d", p.phase, p.bookmarks_processed, p.bookmarks_total)


def _tree_lines(shelf: Shelf) -> List[str]:
    lines: List[str] = []
    for cv in shelf.tree():
        lines.append(f"[{cv.category.id}] {cv.category.name}")
        for fv in cv.folders:
            lines.append(f"  [{fv.folder.id}] {fv.folder.name}/")
            for b in fv.bookmarks:
                lines.append(f"    [{b.id}] {b.name} <{b.url}>")
        for b in cv.bookmarks:
            lines.append(f"  [{b.id}] {b.name} <{b.url}>")
    return lines
