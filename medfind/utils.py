"""
Design (utils.py)
- Purpose: Reusable helpers: search filtering and display ordering,
           list row text, desktop notifications, and logging setup.
- Inputs: Various helper parameters (records, query text, messages).
- Outputs: Helper results (lists, strings, handlers).
- Side effects: notify() raises an OS notification; configure_logging() installs handlers.
- Thread-safety: Stateless; safe to call from any thread.
"""

import logging
from typing import Callable, Iterable, List

from plyer import notification

from .config import LOG_DATEFMT, LOG_FORMAT
from .models import Medicine

logger = logging.getLogger(__name__)


def matches_query(med: Medicine, query: str) -> bool:
    """Case-insensitive substring match over name, compartment and barcode."""
    q = (query or "").strip().lower()
    if not q:
        return True
    return (
        q in (med.name or "").lower()
        or q in (med.compartment or "").lower()
        or q in (med.barcode or "").lower()
    )


def filter_and_sort(meds: Iterable[Medicine], query: str = "") -> List[Medicine]:
    """
    Purpose: Apply the search box to a record list and order it for display.
    Outputs: Matching records sorted by name (case-insensitive), then id.
    """
    found = [m for m in meds if matches_query(m, query)]
    found.sort(key=lambda m: ((m.name or "").casefold(), m.id or 0))
    return found


def format_meta(med: Medicine) -> str:
    """Secondary line for a list row: compartment plus barcode when present."""
    if med.barcode:
        return f"{med.compartment} • barcode: {med.barcode}"
    return med.compartment


def notify(title: str, message: str) -> None:
    """
    Purpose: Show a desktop notification.
    Side Effects: OS notification; failures (no backend on this platform) are logged only.
    """
    try:
        notification.notify(title=title, message=message, timeout=5)
    except Exception as e:
        logger.warning("Desktop notification failed: %s", e)


class CallbackHandler(logging.Handler):
    """Forward formatted log lines to a callable (e.g. the UI Logs panel)."""

    def __init__(self, sink: Callable[[str], None], level: int = logging.INFO):
        super().__init__(level)
        self.sink = sink
        self.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATEFMT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.sink(self.format(record) + "\n")
        except Exception:
            self.handleError(record)


def configure_logging(level: int = logging.INFO) -> None:
    """Install a console handler on the medfind logger tree (idempotent)."""
    root = logging.getLogger("medfind")
    root.setLevel(level)
    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATEFMT))
        root.addHandler(handler)
