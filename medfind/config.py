"""
Design (config.py)
- Purpose: Centralize constants and configuration.
- Inputs: None.
- Outputs: Constants (file names, CSV layout, scanner timing, log limits).
- Side effects: None.
- Thread-safety: N/A (read-only constants).
"""

APP_TITLE = "MedFind"

# maximum number of log lines kept in the Logs panel (oldest trimmed)
LOG_MAX_LINES = 1000
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Persistence: filename for the record store (path resolved in storage module)
DB_FILENAME = "medfind-db.json"
DATA_DIR_NAME = "MedFind"

# CSV export/import
CSV_HEADERS = ("id", "name", "compartment", "barcode")
EXPORT_FILENAME = "meds-export.csv"

# Fields that support secondary lookup in the store
INDEXED_FIELDS = ("name", "compartment", "barcode")

## Camera scanner
CAMERA_INDEX = 0                 # default (rear/only) camera
SCAN_POLL_INTERVAL_SEC = 0.05    # delay between frame polls
PREVIEW_MAX_WIDTH = 480          # preview is scaled down to this width
