"""
Design (csv_io.py)
- Purpose: CSV export/import of medicine records.
    to_csv(meds) -> str         header + one quoted line per record
    parse_csv(text) -> rows     header-driven, quote-aware, never raises
    export_csv / read_csv_file  whole-file UTF-8 I/O
    import_rows(store, rows)    create records for rows with name and compartment
- Inputs: Medicine lists, CSV text, file paths.
- Outputs: CSV text, list of {column -> value} dicts, import counts.
- Side effects: export_csv/read_csv_file touch the filesystem; import_rows writes the store.
- Thread-safety: Stateless; safe to call from any thread.
"""

import csv
import io
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List

from .config import CSV_HEADERS
from .errors import FormatError, StorageError
from .models import Medicine
from .repository import MedStore

logger = logging.getLogger(__name__)

# Only \n and \r\n end a line. str.splitlines() would also break on \x1d (GS1 group
# separator in pharmaceutical DataMatrix codes), \x0c, a lone \r and others.
LINE_BREAK = re.compile(r"\r?\n")


def to_csv(meds: Iterable[Medicine]) -> str:
    """
    Purpose: Serialize records as `id,name,compartment,barcode` CSV.
    Outputs: Lines joined by '\\n' (no trailing newline). id is unquoted; the three
             text fields are always quoted with inner quotes doubled.
    """
    buf = io.StringIO()
    buf.write(",".join(CSV_HEADERS) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerows(
        [m.id if m.id is not None else "", m.name or "", m.compartment or "", m.barcode or ""]
        for m in meds
    )
    # every line (header included) ends with exactly one terminator; drop the last
    return buf.getvalue()[:-1]


def split_csv_line(line: str) -> List[str]:
    """
    Purpose: Split one CSV line into field values.
    Rules:
        - '"' toggles quoted mode; inside quoted mode '""' is one literal quote
        - ',' outside quoted mode ends a field
        - an unterminated quote runs to the end of the line
        - whitespace outside quotes around a field is trimmed
        - a trailing empty field is not emitted
    """
    values: List[str] = []
    cur: List[str] = []
    in_quotes = False
    quoted = False      # field contained a quoted section
    closed_at = 0       # len(cur) when the last quoted section closed

    def end_field() -> str:
        text = "".join(cur)
        if in_quotes:
            return text
        if quoted:
            # quoted content is kept verbatim; drop whitespace after the closing quote
            return text[:closed_at] + text[closed_at:].rstrip()
        return text.strip()

    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                cur.append('"')
                i += 2
                continue
            if not in_quotes and not quoted and not "".join(cur).strip():
                cur.clear()  # whitespace before the opening quote
            in_quotes = not in_quotes
            quoted = True
            if not in_quotes:
                closed_at = len(cur)
            i += 1
            continue
        if ch == "," and not in_quotes:
            values.append(end_field())
            cur.clear()
            quoted = False
            closed_at = 0
            i += 1
            continue
        cur.append(ch)
        i += 1

    if cur or quoted:
        values.append(end_field())
    return values


def parse_csv(text: str) -> List[Dict[str, str]]:
    """
    Purpose: Parse CSV text into one {header -> value} dict per data line.
    Behavior:
        - lines end at \\n or \\r\\n only; they are trimmed and blank lines (anywhere) are ignored
        - the first line is the header: names are trimmed, quote-stripped and lower-cased,
          and define column order for every later line
        - missing values default to "" ; extra values without a header are dropped
    Never raises on malformed content; callers filter rows they cannot use.
    """
    lines = [ln.strip() for ln in LINE_BREAK.split(text)]
    lines = [ln for ln in lines if ln]
    if not lines:
        return []

    headers = [h.strip().strip('"').strip().lower() for h in split_csv_line(lines[0])]
    rows: List[Dict[str, str]] = []
    for line in lines[1:]:
        values = split_csv_line(line)
        rows.append({h: (values[k] if k < len(values) else "") for k, h in enumerate(headers)})
    return rows


def export_csv(meds: Iterable[Medicine], path) -> int:
    """
    Purpose: Write records to a UTF-8 CSV file.
    Outputs: Number of records written.
    Side effects: Creates/overwrites path; raises StorageError on write failure.
    """
    meds = list(meds)
    try:
        Path(path).write_text(to_csv(meds), encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Failed to write CSV {path}: {e}") from e
    logger.info("Exported %d records to %s", len(meds), path)
    return len(meds)


def read_csv_file(path) -> str:
    """
    Purpose: Read a whole CSV file into memory (UTF-8, BOM tolerated).
    Raises StorageError when the file cannot be read, FormatError when it is not text.
    """
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise StorageError(f"Failed to read CSV {path}: {e}") from e
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise FormatError(f"{path} is not a UTF-8 text file") from e


def import_rows(store: MedStore, rows: Iterable[Dict[str, str]]) -> int:
    """
    Purpose: Create one record per row that has a name and a compartment.
    Inputs: store, rows from parse_csv (any 'id' column is ignored; the store assigns ids).
    Outputs: Number of records created. Rows missing name or compartment are skipped.
    Side effects: Writes the store; a StorageError stops the import and propagates.
    """
    count = 0
    skipped = 0
    for r in rows:
        name = (r.get("name") or "").strip()
        compartment = (r.get("compartment") or "").strip()
        if not name or not compartment:
            skipped += 1
            continue
        barcode = (r.get("barcode") or "").strip()
        store.create(Medicine(id=None, name=name, compartment=compartment, barcode=barcode))
        count += 1
    logger.info("Imported %d rows (%d skipped)", count, skipped)
    return count
