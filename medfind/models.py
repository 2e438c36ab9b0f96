"""
Design (models.py)
- Purpose: Define simple, typed data structures for domain entities (Medicine).
- Inputs: Field values (str, int).
- Outputs: Dataclass instances.
- Side effects: None.
- Thread-safety: Dataclasses are plain containers; MedStore protects concurrent access.
"""

from dataclasses import dataclass, replace


@dataclass
class Medicine:
    """
    Design (Medicine)
    - Purpose: Represents a single inventory entry.
    - Fields:
        id: Store-assigned identifier (None until created; immutable afterwards).
        name: Medicine name (non-empty for accepted records).
        compartment: Storage location label (non-empty for accepted records).
        barcode: Optional scanned or typed code (no format checks).
    """
    id: int | None
    name: str
    compartment: str
    barcode: str = ""

    def with_id(self, new_id: int) -> "Medicine":
        return replace(self, id=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "compartment": self.compartment,
            "barcode": self.barcode,
        }

    @classmethod
    def from_dict(cls, item: dict) -> "Medicine":
        raw_id = item.get("id")
        return cls(
            id=int(raw_id) if raw_id is not None else None,
            name=str(item.get("name", "")),
            compartment=str(item.get("compartment", "")),
            barcode=str(item.get("barcode", "") or ""),
        )
