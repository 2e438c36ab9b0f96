"""
Design (errors.py)
- Purpose: Error taxonomy surfaced to the UI.
- Side effects: None.
"""


class MedFindError(Exception):
    """Base class for errors shown to the user."""


class StorageError(MedFindError):
    """Store open/read/write/delete failure."""


class CameraError(MedFindError):
    """Camera permission denied, device unavailable, or no usable detector."""


class FormatError(MedFindError):
    """Import file cannot be decoded as text. CSV parsing itself never raises."""
