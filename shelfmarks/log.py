from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import IO, List, Optional

from rich.logging import RichHandler

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Marks handlers installed here so setup/reset leave foreign ones alone.
_OWN = "_shelfmarks_handler"


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    no_color: bool = False


def setup_logging(cfg: LogConfig, stream: Optional[IO[str]] = None) -> logging.Handler:
    """Route records to stderr (or ``stream``) and return the installed handler.

    Calling it again replaces the previous shelfmarks handler; handlers added by
    an embedding application or a test runner are kept.
    """
    level = getattr(logging, cfg.level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    reset_logging()

    out = stream if stream is not None else sys.stderr
    use_rich = not (cfg.no_color or os.getenv("NO_COLOR") is not None) and _isatty(out)
    if use_rich:
        handler: logging.Handler = RichHandler(rich_tracebacks=True, show_time=False, show_level=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(out)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    handler.setLevel(level)
    setattr(handler, _OWN, True)
    root.addHandler(handler)
    return handler


def reset_logging() -> List[logging.Handler]:
    root = logging.getLogger()
    removed = [h for h in root.handlers if getattr(h, _OWN, False)]
    for h in removed:
        root.removeHandler(h)
        h.close()
    return removed


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _isatty(stream: IO[str]) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())
