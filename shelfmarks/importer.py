from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from .errors import ShelfError
from .hierarchy import check_fields, check_parent
from .log import get_logger
from .model import BOOKMARK, FOLDER, ImportFolder, ImportLink, ImportPlan, ImportProgress, ImportReport, Item
from .moves import GROUP_LOCKS, GroupLocks, SiblingGroup
from .store import ItemStore

log = get_logger(__name__)

T = TypeVar("T")

ProgressFn = Callable[[ImportProgress], None]

DEFAULT_BATCH_SIZE = 20
DEFAULT_PAUSE_S = 0.1


def flatten_folders(plan: ImportPlan) -> ImportPlan:
    """Lift every folder nested in another folder up to the category level.

    Links keep their synthetic parent, so a link inside ``Top > Sub`` still
    lands in ``Sub``.
    """
    folder_ids = {f.synthetic_id for f in plan.folders}
    folders = [
        ImportFolder(
            synthetic_id=f.synthetic_id,
            name=f.name,
            parent=None if f.parent in folder_ids else f.parent,
        )
        for f in plan.folders
    ]
    return ImportPlan(folders=folders, links=list(plan.links))


def chunked(items: Sequence[T], size: int) -> List[List[T]]:
    size = max(1, int(size))
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def run_import(
    store: ItemStore,
    owner: str,
    category_id: int,
    plan: ImportPlan,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    pause_s: float = DEFAULT_PAUSE_S,
    folder_jobs: int = 8,
    folder_icon: Optional[str] = None,
    bookmark_icon: Optional[str] = None,
    progress: Optional[ProgressFn] = None,
    sleep: Callable[[float], None] = time.sleep,
    locks: Optional[GroupLocks] = None,
) -> ImportReport:
    """Create the folders and links of ``plan`` under ``category_id``.

    Not atomic: items created before a failure stay. A link whose folder could
    not be created is attached to the category instead of being dropped.

    The destination groups are locked while each phase or chunk runs, and
    ranks are read under that lock, so items the user adds between chunks
    keep their place. A group that is busy raises ``ConflictError``.
    """
    check_parent(store, owner, FOLDER, category_id)
    locks = locks if locks is not None else GROUP_LOCKS

    report = ImportReport(
        category_id=category_id,
        folders_total=len(plan.folders),
        bookmarks_total=len(plan.links),
    )
    if plan.is_empty():
        log.info("Nothing to import into category %s.", category_id)
        return report

    flat = flatten_folders(plan)
    _create_folders(store, owner, category_id, flat.folders, report, folder_jobs, folder_icon, locks)
    _emit(
        progress,
        ImportProgress(
            phase="folders",
            folders_created=report.folders_created,
            folders_total=report.folders_total,
            bookmarks_processed=0,
            bookmarks_total=report.bookmarks_total,
            message=f"Created {report.folders_created} of {report.folders_total} folders",
        ),
    )

    chunks = chunked(flat.links, batch_size)
    processed = 0
    for idx, chunk in enumerate(chunks):
        if idx > 0 and pause_s > 0:
            sleep(pause_s)
        first = processed + 1
        _create_links(store, owner, category_id, chunk, report, bookmark_icon, locks)
        processed += len(chunk)
        _emit(
            progress,
            ImportProgress(
                phase="bookmarks",
                folders_created=report.folders_created,
                folders_total=report.folders_total,
                bookmarks_processed=processed,
                bookmarks_total=report.bookmarks_total,
                message=f"Importing bookmarks: {first}-{processed} of {report.bookmarks_total}",
            ),
        )

    log.info(
        "Import into category %s: %d/%d folders, %d/%d bookmarks (%d fallback, %d failed).",
        category_id,
        report.folders_created,
        report.folders_total,
        report.bookmarks_created,
        report.bookmarks_total,
        report.bookmarks_fallback,
        report.bookmarks_failed,
    )
    return report


def _create_folders(
    store: ItemStore,
    owner: str,
    category_id: int,
    folders: List[ImportFolder],
    report: ImportReport,
    jobs: int,
    icon: Optional[str],
    locks: GroupLocks,
) -> None:
    if not folders:
        return

    def _one(base: int, pos: int, f: ImportFolder) -> Item:
        check_fields(FOLDER, f.name, None)
        return store.create_item(owner, FOLDER, f.name, icon=icon, parent_id=category_id, rank=base + pos)

    workers = max(1, min(int(jobs), len(folders)))
    with locks.hold(owner, [SiblingGroup.folders_in(category_id)]):
        base = store.next_rank(owner, category_id, FOLDER)
        with ThreadPoolExecutor(max_workers=workers) as ex:
            futures = {ex.submit(_one, base, pos, f): f for pos, f in enumerate(folders)}
            for fut in as_completed(futures):
                f = futures[fut]
                try:
                    item = fut.result()
                except ShelfError as e:
                    report.folders_failed += 1
                    log.warning("Import: folder %r not created (%s): %s", f.name, e.kind, e)
                    continue
                report.folder_ids[f.synthetic_id] = item.id
                report.folders_created += 1


def _create_links(
    store: ItemStore,
    owner: str,
    category_id: int,
    links: List[ImportLink],
    report: ImportReport,
    icon: Optional[str],
    locks: GroupLocks,
) -> None:
    targets = []
    for link in links:
        parent_id = category_id
        if link.parent is not None:
            mapped = report.folder_ids.get(link.parent)
            if mapped is None:
                report.bookmarks_fallback += 1
                log.debug("Import: folder of %r missing, attaching to category.", link.name)
            else:
                parent_id = mapped
        targets.append((link, parent_id))

    def _one(link: ImportLink, parent_id: int, rank: int) -> Item:
        check_fields(BOOKMARK, link.name, link.url)
        return store.create_item(owner, BOOKMARK, link.name, icon=icon, parent_id=parent_id, url=link.url, rank=rank)

    parents = sorted({parent_id for _, parent_id in targets})
    with locks.hold(owner, [SiblingGroup.bookmarks_in(p) for p in parents]):
        ranks: Dict[int, int] = {p: store.next_rank(owner, p, BOOKMARK) for p in parents}
        jobs = []
        for link, parent_id in targets:
            jobs.append((link, parent_id, ranks[parent_id]))
            ranks[parent_id] += 1

        with ThreadPoolExecutor(max_workers=max(1, len(jobs))) as ex:
            futures = {ex.submit(_one, *job): job[0] for job in jobs}
            for fut in as_completed(futures):
                link = futures[fut]
                try:
                    fut.result()
                except ShelfError as e:
                    report.bookmarks_failed += 1
                    log.warning("Import: bookmark %r not created (%s): %s", link.name, e.kind, e)
                    continue
                report.bookmarks_created += 1


def _emit(progress: Optional[ProgressFn], p: ImportProgress) -> None:
    log.info("%s", p.message)
    if progress is not None:
        progress(p)
