"""Pre-flight duplicate detection for asset records.

The result is advisory: callers show the matched fields to the operator, who
may still go ahead (re-entering a record to fix a typo is legitimate). Values
are compared with exact, case-sensitive equality and no normalisation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

# Checked in this order; the order is also the display order of the labels.
IDENTITY_FIELDS: dict[str, str] = {
    "serial_number": "Serial Number",
    "mac_address": "MAC Address",
    "pc_name": "PC Name",
    "employee_number": "Employee Number",
    "username": "Username",
}


@dataclass
class DuplicateCheck:
    duplicate_fields: list[str] = field(default_factory=list)
    colliding_records: list[Any] = field(default_factory=list)

    @property
    def is_duplicate(self) -> bool:
        return bool(self.duplicate_fields)

    @property
    def duplicate_labels(self) -> list[str]:
        return [IDENTITY_FIELDS[name] for name in self.duplicate_fields]


def _value(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def check_duplicates(candidate: Any, existing: Iterable[Any], exclude_id: str | None = None) -> DuplicateCheck:
    """Compare ``candidate`` with every record in ``existing``.

    Each identity field is reported once, however many records share it.
    ``colliding_records`` lists each matching record once, in input order.
    The record whose id equals ``exclude_id`` is skipped so an edit is never
    flagged against itself.
    """

    matched: set[str] = set()
    result = DuplicateCheck()
    seen_ids: set[Any] = set()

    for record in existing:
        record_id = _value(record, "id")
        if exclude_id is not None and record_id == exclude_id:
            continue
        hits = [
            name
            for name in IDENTITY_FIELDS
            if _value(record, name) is not None and _value(record, name) == _value(candidate, name)
        ]
        if not hits:
            continue
        matched.update(hits)
        if record_id not in seen_ids:
            seen_ids.add(record_id)
            result.colliding_records.append(record)

    result.duplicate_fields = [name for name in IDENTITY_FIELDS if name in matched]
    return result
