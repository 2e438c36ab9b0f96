"""
Design (ui.py)
- Purpose: Build and manage the Tkinter UI (entry form, search, Treeview list, import/export,
           scanner dialog, logs panel).
- Inputs: MedStore (shared state).
- Outputs: None (renders UI, writes to MedStore).
- Side effects: Creates windows; reads/writes CSV files; drives the camera via BarcodeScanner.
- Thread-safety: UI code runs on main thread; scanner and log callbacks are posted back with
                 Tk.after().
"""

import logging
import tkinter as tk
from tkinter import filedialog, messagebox, ttk

import cv2
from PIL import Image, ImageTk

from .config import APP_TITLE, EXPORT_FILENAME, LOG_MAX_LINES, PREVIEW_MAX_WIDTH
from .csv_io import export_csv, import_rows, parse_csv, read_csv_file
from .errors import MedFindError
from .models import Medicine
from .repository import MedStore
from .scanner import BarcodeScanner
from .utils import CallbackHandler, filter_and_sort, format_meta, notify

logger = logging.getLogger(__name__)

EMPTY_ROW = "__empty__"


class AppUI:
    """
    Design (AppUI)
    - Purpose: Encapsulate all UI creation and behavior.
    - Public attributes:
        enable_notifications (tk.BooleanVar): toggles desktop notifications
        show_logs (tk.BooleanVar): toggles visibility of the logs panel
    - Public methods:
        refresh_ui(): rebuild the list from the store and the search box
        start_scan()/stop_scan(): camera barcode capture into the barcode field
    """

    def __init__(self, root: tk.Tk, store: MedStore):
        self.root = root
        self.store = store

        # UI state variables
        self.enable_notifications = tk.BooleanVar(value=True)
        self.show_logs = tk.BooleanVar(value=False)
        self.v_id = tk.StringVar()
        self.v_name = tk.StringVar()
        self.v_compartment = tk.StringVar()
        self.v_barcode = tk.StringVar()
        self.v_search = tk.StringVar()

        # Scanner state (dialog + latest preview frame from the scanner thread)
        self._closing = False
        self.scanner = BarcodeScanner(
            on_detect=lambda code: self._post(lambda: self._finish_scan(code)),
            on_error=lambda err: self._post(lambda: self._scan_failed(err)),
            on_frame=self._on_frame,
        )
        self._scan_win: tk.Toplevel | None = None
        self._preview_label: tk.Label | None = None
        self._preview_image = None
        self._latest_frame = None

        # Window
        self.root.title(APP_TITLE)
        self.root.rowconfigure(0, weight=1)
        self.root.columnconfigure(0, weight=1)
        self.root.configure(bg="#1e1e1e")
        self.root.protocol("WM_DELETE_WINDOW", self.on_close)

        # Paned window: top = content (form, list, buttons), bottom = logs (when shown)
        self.paned = ttk.PanedWindow(self.root, orient=tk.VERTICAL)
        self.paned.grid(row=0, column=0, sticky="nsew")

        content_frame = tk.Frame(self.paned, bg="#1e1e1e")
        content_frame.rowconfigure(2, weight=1)
        content_frame.columnconfigure(0, weight=1)
        self.paned.add(content_frame, weight=1)

        self.bottom_frame = tk.Frame(self.paned, bg="#1e1e1e")
        self.logs_box = tk.Text(self.bottom_frame, height=6, bg="#1b1b1b", fg="#dddddd", wrap="none")
        self.logs_box.configure(state="disabled")
        self.logs_box.pack(fill=tk.BOTH, expand=True, padx=10, pady=(0, 6))
        self.logs_box.pack_forget()  # hidden by default
        self.paned.add(self.bottom_frame, weight=0)

        # Style
        style = ttk.Style(self.root)
        style.theme_use("default")
        style.configure(
            "Treeview",
            background="#2b2b2b",
            foreground="#f0f0f0",
            fieldbackground="#2b2b2b",
            rowheight=24,
            font=("Segoe UI", 10),
        )
        style.configure(
            "Treeview.Heading",
            background="#1e1e1e",
            foreground="#ffffff",
            font=("Segoe UI", 10, "bold"),
        )
        style.map("Treeview", background=[('selected', '#444')], foreground=[])

        # Entry form
        form = tk.Frame(content_frame, bg="#1e1e1e")
        form.grid(row=0, column=0, sticky="ew", padx=10, pady=(10, 5))
        self._field(form, 0, "Name", self.v_name)
        self._field(form, 1, "Compartment", self.v_compartment)
        self.e_barcode = self._field(form, 2, "Barcode (optional)", self.v_barcode)
        ttk.Button(form, text="Scan", command=self.start_scan).grid(row=2, column=2, padx=5, pady=3)
        form_buttons = tk.Frame(form, bg="#1e1e1e")
        form_buttons.grid(row=3, column=1, sticky="w", pady=(5, 0))
        ttk.Button(form_buttons, text="Save", command=self.save_form).pack(side=tk.LEFT, padx=(0, 5))
        ttk.Button(form_buttons, text="Clear", command=self.clear_form).pack(side=tk.LEFT, padx=5)

        # Search
        search_frame = tk.Frame(content_frame, bg="#1e1e1e")
        search_frame.grid(row=1, column=0, sticky="ew", padx=10, pady=5)
        search_frame.columnconfigure(1, weight=1)
        tk.Label(search_frame, text="Search", fg="white", bg="#1e1e1e").grid(row=0, column=0, padx=(0, 5))
        tk.Entry(search_frame, textvariable=self.v_search).grid(row=0, column=1, sticky="ew")
        self.v_search.trace_add("write", lambda *_: self.refresh_ui())

        # Treeview
        self.columns = ("name", "details")
        self.tree = ttk.Treeview(content_frame, columns=self.columns, show="headings")
        self.tree.grid(row=2, column=0, sticky="nsew", padx=10, pady=5)
        self.tree.heading("name", text="Medicine")
        self.tree.heading("details", text="Compartment / Barcode")
        self.tree.tag_configure("muted", foreground="#999999")
        self.tree.bind("<Double-1>", lambda _e: self.edit_selected())

        # Buttons & toggles
        button_frame = tk.Frame(content_frame, bg="#1e1e1e")
        button_frame.grid(row=3, column=0, sticky="ew", padx=10, pady=(0, 10))

        ttk.Button(button_frame, text="Edit", command=self.edit_selected).pack(side=tk.LEFT, padx=5)
        ttk.Button(button_frame, text="Delete", command=self.delete_selected).pack(side=tk.LEFT, padx=5)
        ttk.Button(button_frame, text="Export CSV", command=self.export_data).pack(side=tk.LEFT, padx=5)
        ttk.Button(button_frame, text="Import CSV", command=self.import_data).pack(side=tk.LEFT, padx=5)
        ttk.Button(button_frame, text="Delete All", command=self.delete_all).pack(side=tk.LEFT, padx=5)

        tk.Checkbutton(
            button_frame,
            text="Enable Notifications",
            variable=self.enable_notifications,
            fg="white",
            bg="#1e1e1e",
            selectcolor="#2b2b2b",
            activebackground="#1e1e1e",
            activeforeground="white",
        ).pack(side=tk.LEFT, padx=5)

        tk.Checkbutton(
            button_frame,
            text="Show Logs",
            variable=self.show_logs,
            fg="white",
            bg="#1e1e1e",
            selectcolor="#2b2b2b",
            command=self.toggle_logs,
        ).pack(side=tk.LEFT, padx=5)

        # Route application log lines into the Logs panel
        self._log_handler = CallbackHandler(lambda line: self._post(lambda: self._append_log(line)))
        logging.getLogger("medfind").addHandler(self._log_handler)

        # Initial paint
        self.refresh_ui()

    # ---------- layout helpers ----------

    def _field(self, parent: tk.Frame, row: int, label: str, var: tk.StringVar) -> tk.Entry:
        tk.Label(parent, text=label, fg="white", bg="#1e1e1e").grid(row=row, column=0, sticky="e", padx=5, pady=3)
        entry = tk.Entry(parent, textvariable=var, width=40)
        entry.grid(row=row, column=1, sticky="w", padx=5, pady=3)
        return entry

    def toggle_logs(self) -> None:
        """Show/hide logs in the bottom pane. Resize pane to show/hide."""
        if self.show_logs.get():
            self.paned.pane(self.bottom_frame, weight=1)
            self.logs_box.pack(fill=tk.BOTH, expand=True, padx=10, pady=(0, 6))
            self.paned.update_idletasks()
            total = self.paned.winfo_height()
            if total > 0:
                self.paned.sashpos(0, int(total * 0.8))
        else:
            self.logs_box.pack_forget()
            self.paned.pane(self.bottom_frame, weight=0)
            self.paned.update_idletasks()
            total = self.paned.winfo_height()
            if total > 0:
                self.paned.sashpos(0, total)

    def _append_log(self, text: str) -> None:
        """
        Purpose: Append one line to the Logs panel and trim to LOG_MAX_LINES.
        Thread-safety: Main thread only (called via after()).
        """
        self.logs_box.configure(state="normal")
        self.logs_box.insert("end", text)
        self.logs_box.see("end")
        total_lines = int(self.logs_box.index("end-1c").split(".")[0])
        if total_lines > LOG_MAX_LINES:
            remove = total_lines - LOG_MAX_LINES
            self.logs_box.delete("1.0", f"{remove + 1}.0")
        self.logs_box.configure(state="disabled")

    def _notify(self, message: str) -> None:
        if self.enable_notifications.get():
            notify(APP_TITLE, message)

    def _show_error(self, title: str, err: Exception) -> None:
        logger.error("%s: %s", title, err)
        messagebox.showerror(title, str(err))

    # ---------- list ----------

    def refresh_ui(self) -> None:
        """
        Purpose: Rebuild the Tree rows from the store, filtered by the search box, by name.
        Thread-safety: Must run on main thread.
        """
        meds = filter_and_sort(self.store.list_all(), self.v_search.get())
        self.tree.delete(*self.tree.get_children())
        if not meds:
            self.tree.insert("", "end", iid=EMPTY_ROW, values=("No medicines found.", ""), tags=("muted",))
            return
        for med in meds:
            self.tree.insert("", "end", iid=str(med.id), values=(med.name, format_meta(med)))

    def _selected_id(self, title: str) -> int | None:
        selected = self.tree.selection()
        if not selected or selected[0] == EMPTY_ROW:
            messagebox.showinfo(title, "Select a medicine first.")
            return None
        return int(selected[0])

    # ---------- form ----------

    def save_form(self) -> None:
        """
        Purpose: Create a record, or update the one loaded by Edit.
        Side effects: Mutates MedStore; storage failures are shown, not retried.
        """
        name = self.v_name.get().strip()
        compartment = self.v_compartment.get().strip()
        barcode = self.v_barcode.get().strip()
        if not name or not compartment:
            messagebox.showwarning(APP_TITLE, "Please fill name and compartment")
            return
        med_id = self.v_id.get()
        try:
            if med_id:
                self.store.update(Medicine(id=int(med_id), name=name, compartment=compartment, barcode=barcode))
            else:
                self.store.create(Medicine(id=None, name=name, compartment=compartment, barcode=barcode))
        except MedFindError as e:
            self._show_error("Save", e)
            return
        self.clear_form()
        self.refresh_ui()

    def clear_form(self) -> None:
        for var in (self.v_id, self.v_name, self.v_compartment, self.v_barcode):
            var.set("")

    def edit_selected(self) -> None:
        """Load the selected record into the form; Save then updates it in place."""
        med_id = self._selected_id("Edit")
        if med_id is None:
            return
        med = self.store.get(med_id)
        if med is None:
            messagebox.showerror("Edit", "Medicine not found in store.")
            self.refresh_ui()
            return
        self.v_id.set(str(med.id))
        self.v_name.set(med.name)
        self.v_compartment.set(med.compartment)
        self.v_barcode.set(med.barcode)

    def delete_selected(self) -> None:
        med_id = self._selected_id("Delete")
        if med_id is None:
            return
        if not messagebox.askyesno("Delete", "Delete this entry?"):
            return
        try:
            self.store.delete_by_id(med_id)
        except MedFindError as e:
            self._show_error("Delete", e)
            return
        if self.v_id.get() == str(med_id):
            self.clear_form()
        self.refresh_ui()

    def delete_all(self) -> None:
        """
        Purpose: Remove all records after user confirmation.
        Side effects: Mutates MedStore.
        """
        if not messagebox.askyesno("Delete All", "This will delete ALL entries. Continue?"):
            return
        try:
            self.store.clear_all()
        except MedFindError as e:
            self._show_error("Delete All", e)
            return
        self.clear_form()
        self.v_search.set("")
        self.refresh_ui()

    # ---------- CSV ----------

    def export_data(self) -> None:
        meds = self.store.list_all()
        if not meds:
            messagebox.showinfo("Export", "No data to export")
            return
        path = filedialog.asksaveasfilename(
            title="Export CSV",
            initialfile=EXPORT_FILENAME,
            defaultextension=".csv",
            filetypes=[("CSV files", "*.csv")],
        )
        if not path:
            return
        try:
            count = export_csv(meds, path)
        except MedFindError as e:
            self._show_error("Export", e)
            return
        self._notify(f"Exported {count} rows")

    def import_data(self) -> None:
        path = filedialog.askopenfilename(title="Import CSV", filetypes=[("CSV files", "*.csv"), ("All files", "*.*")])
        if not path:
            return
        try:
            count = import_rows(self.store, parse_csv(read_csv_file(path)))
        except MedFindError as e:
            self._show_error("Import", e)
            self.refresh_ui()
            return
        self.refresh_ui()
        messagebox.showinfo("Import", f"Imported {count} rows")
        self._notify(f"Imported {count} rows")

    # ---------- scanner ----------

    def start_scan(self) -> None:
        """
        Purpose: Open the scanner dialog and start a camera scan session.
        Side effects: Acquires the camera until detection, Stop, or dialog close.
        """
        if self.scanner.scanning:
            return
        win = tk.Toplevel(self.root)
        win.title("Scan Barcode")
        win.configure(bg="#1e1e1e")
        win.protocol("WM_DELETE_WINDOW", self.stop_scan)
        self._preview_label = tk.Label(win, text="Starting camera…", fg="white", bg="#1e1e1e")
        self._preview_label.pack(padx=10, pady=10)
        ttk.Button(win, text="Stop", command=self.stop_scan).pack(pady=(0, 10))
        self._scan_win = win
        self._latest_frame = None
        self.scanner.start()
        self._poll_preview()

    def stop_scan(self) -> None:
        self.scanner.stop()
        self._close_scan_window()

    def _close_scan_window(self) -> None:
        if self._scan_win is not None:
            self._scan_win.destroy()
        self._scan_win = None
        self._preview_label = None
        self._preview_image = None

    def _on_frame(self, frame) -> None:
        # scanner thread: keep only the newest frame; the main thread renders it
        self._latest_frame = frame

    def _poll_preview(self) -> None:
        if self._scan_win is None:
            return
        frame, self._latest_frame = self._latest_frame, None
        if frame is not None and self._preview_label is not None:
            image = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
            image.thumbnail((PREVIEW_MAX_WIDTH, PREVIEW_MAX_WIDTH))
            self._preview_image = ImageTk.PhotoImage(image)
            self._preview_label.configure(image=self._preview_image, text="")
        self.root.after(50, self._poll_preview)

    def _finish_scan(self, code: str) -> None:
        self._close_scan_window()
        self.v_barcode.set(code)
        self.e_barcode.focus_set()
        self._notify(f"Scanned: {code}")
        messagebox.showinfo("Scan", f"Scanned: {code}")

    def _scan_failed(self, err: Exception) -> None:
        self._close_scan_window()
        self._show_error("Scan", err)

    def _post(self, fn) -> None:
        """Hand fn to the Tk main thread; dropped once the window is closing."""
        if not self._closing:
            self.root.after(0, fn)

    def on_close(self) -> None:
        self._closing = True
        logging.getLogger("medfind").removeHandler(self._log_handler)
        if not self.scanner.shutdown(timeout=1.0):
            logger.warning("Scan session did not end before exit")
        self.root.destroy()
