import sys
from pathlib import Path

import pytest

# Allow `import shelfmarks` without installing the package.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from shelfmarks.config import Settings  # noqa: E402
from shelfmarks.moves import GroupLocks  # noqa: E402
from shelfmarks.shelf import Shelf  # noqa: E402
from shelfmarks.store import ItemStore  # noqa: E402

OWNER = "alice@example.com"
OTHER = "bob@example.com"


@pytest.fixture
def store(tmp_path: Path):
    with ItemStore(tmp_path / "items.sqlite") as s:
        yield s


@pytest.fixture
def locks():
    return GroupLocks()


@pytest.fixture
def shelf(store, locks):
    settings = Settings(import_batch_pause_ms=0)
    return Shelf(store, OWNER, settings=settings, locks=locks)
