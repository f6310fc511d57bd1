import pytest

from shelfmarks.errors import ConflictError, InvalidHierarchy, NotFound, Unauthorized, ValidationError
from shelfmarks.moves import SiblingGroup
from shelfmarks.shelf import DEFAULT_CATEGORY_NAME, Shelf

from conftest import OTHER, OWNER


def test_missing_owner_is_unauthorized(store):
    with pytest.raises(Unauthorized):
        Shelf(store, None)
    with pytest.raises(Unauthorized):
        Shelf(store, "   ")


def test_create_validates_and_strips(shelf):
    cat = shelf.create("category", "  Dev  ", icon="fa-code")
    assert cat.name == "Dev"
    bm = shelf.create("bookmark", "Docs", parent_id=cat.id, url=" https://docs.example/ ")
    assert bm.url == "https://docs.example/"
    folder = shelf.create("folder", "Tools", parent_id=cat.id, url="https://ignored")
    assert folder.url is None
    with pytest.raises(InvalidHierarchy):
        shelf.create("folder", "Under bookmark", parent_id=bm.id)
    with pytest.raises(ValidationError):
        shelf.create("bookmark", "No url", parent_id=cat.id)


def test_folder_without_any_category_creates_general(shelf):
    folder = shelf.create("folder", "Inbox", ensure_category=True)
    parent = shelf.get(folder.parent_id)
    assert (parent.kind, parent.name) == ("category", DEFAULT_CATEGORY_NAME)
    with pytest.raises(InvalidHierarchy):
        shelf.create("folder", "Second", ensure_category=True)


def test_tree_groups_items_in_rank_order(shelf):
    a = shelf.create("category", "A")
    b = shelf.create("category", "B")
    f = shelf.create("folder", "F", parent_id=a.id)
    inner = shelf.create("bookmark", "in", parent_id=f.id, url="https://in")
    loose = shelf.create("bookmark", "loose", parent_id=a.id, url="https://loose")
    shelf.save_order([b.id, a.id])

    tree = shelf.tree()
    assert [cv.category.id for cv in tree] == [b.id, a.id]
    a_view = tree[1]
    assert [fv.folder.id for fv in a_view.folders] == [f.id]
    assert [x.id for x in a_view.folders[0].bookmarks] == [inner.id]
    assert [x.id for x in a_view.bookmarks] == [loose.id]


def test_edit_fields_and_reparent(shelf):
    cat = shelf.create("category", "C", icon="old")
    other = shelf.create("category", "D")
    folder = shelf.create("folder", "F", parent_id=cat.id)
    bm = shelf.create("bookmark", "b", parent_id=cat.id, url="https://b")

    renamed = shelf.edit(cat.id, name="Renamed")
    assert (renamed.name, renamed.icon) == ("Renamed", "old")

    moved = shelf.edit(bm.id, parent_id=folder.id, url="https://new")
    assert (moved.parent_id, moved.url, moved.rank) == (folder.id, "https://new", 1)

    moved_folder = shelf.edit(folder.id, parent_id=other.id)
    assert moved_folder.parent_id == other.id
    assert shelf.get(bm.id).parent_id == folder.id

    with pytest.raises(InvalidHierarchy):
        shelf.edit(folder.id, parent_id=bm.id)
    with pytest.raises(InvalidHierarchy):
        shelf.edit(cat.id, parent_id=other.id)
    with pytest.raises(ValidationError):
        shelf.edit(bm.id, name=" ")


def test_edit_reparent_conflicts_with_busy_group(shelf, locks):
    cat = shelf.create("category", "C")
    folder = shelf.create("folder", "F", parent_id=cat.id)
    bm = shelf.create("bookmark", "b", parent_id=cat.id, url="https://b")
    with locks.hold(OWNER, [SiblingGroup.bookmarks_in(folder.id)]):
        with pytest.raises(ConflictError):
            shelf.edit(bm.id, parent_id=folder.id)


def test_items_are_private_to_their_owner(store, shelf, locks):
    mine = shelf.create("category", "Mine")
    theirs = Shelf(store, OTHER, locks=locks)
    assert theirs.items() == []
    with pytest.raises(NotFound):
        theirs.get(mine.id)
    with pytest.raises(NotFound):
        theirs.edit(mine.id, name="x")
    assert theirs.delete(mine.id) == 0
    assert shelf.get(mine.id).name == "Mine"


def test_delete_and_reorder_through_shelf(shelf):
    cat = shelf.create("category", "C")
    f = shelf.create("folder", "F", parent_id=cat.id)
    shelf.create("bookmark", "b", parent_id=f.id, url="https://b")
    assert shelf.delete(cat.id) == 3
    assert shelf.items() == []
    assert shelf.delete(cat.id) == 0


def test_save_order_conflicts_with_busy_group(shelf, locks):
    a = shelf.create("category", "A")
    b = shelf.create("category", "B")
    with locks.hold(OWNER, [SiblingGroup.categories()]):
        with pytest.raises(ConflictError):
            shelf.save_order([b.id, a.id])


def test_import_html_uses_settings(shelf):
    cat = shelf.create("category", "C")
    html = "<DL><p><DT><H3>W</H3><DL><p><DT><A HREF='https://w'>w</A></DL><p></DL>"
    seen = []
    report = shelf.import_html(html, cat.id, progress=seen.append)
    assert report.items_created == 2
    assert seen
    icons = {i.kind: i.icon for i in shelf.items() if i.id != cat.id}
    assert icons == {"folder": shelf.settings.default_folder_icon, "bookmark": shelf.settings.default_bookmark_icon}


def test_create_conflicts_with_busy_group(shelf, locks):
    cat = shelf.create("category", "C")
    with locks.hold(OWNER, [SiblingGroup.bookmarks_in(cat.id)]):
        with pytest.raises(ConflictError):
            shelf.create("bookmark", "b", parent_id=cat.id, url="https://b")
    assert shelf.create("bookmark", "b", parent_id=cat.id, url="https://b").rank == 1
