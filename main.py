"""
Design (main.py)
- Purpose: Application entry point. Wires logging, the record store and the UI.
- Side effects: Opens/creates the store file; runs the Tk main loop.
"""

import logging
import sys
import tkinter as tk
from tkinter import messagebox

from medfind.errors import StorageError
from medfind.repository import MedStore
from medfind.storage import get_db_path
from medfind.ui import AppUI
from medfind.utils import configure_logging

logger = logging.getLogger("medfind.main")


def main() -> int:
    configure_logging()
    root = tk.Tk()
    try:
        store = MedStore(get_db_path())
    except StorageError as e:
        logger.error("%s", e)
        root.withdraw()
        messagebox.showerror("MedFind", str(e))
        root.destroy()
        return 1
    AppUI(root, store)
    root.mainloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
