"""Request/response shapes for assets.

Attributes are snake_case in Python and camelCase on the wire
(``pcName``, ``macAddress``...), matching the spreadsheet and UI clients.
"""

from __future__ import annotations

import re
from datetime import date as dt_date
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..core.dates import parse_calendar_date
from ..core.errors import ValidationError

MAC_ADDRESS_RE = re.compile(r"^([0-9A-Fa-f]{2}[:-]){5}([0-9A-Fa-f]{2})$")
MAC_ADDRESS_MESSAGE = "Invalid MAC address format (e.g., 00:1A:2B:3C:4D:5E)"


class BuybackStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    IN_PROCESS = "In Process"
    COMPLETED = "Completed"


def is_valid_mac_address(value: str) -> bool:
    return bool(MAC_ADDRESS_RE.match(value))


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AssetIn(_CamelModel):
    """A candidate record: everything an operator types in the asset form."""

    pc_name: str = Field(min_length=1)
    employee_number: str = Field(min_length=1)
    username: str = Field(min_length=1)
    serial_number: str = Field(min_length=1)
    mac_address: str = Field(min_length=1)
    buyback_status: BuybackStatus
    date: dt_date

    @field_validator("mac_address")
    @classmethod
    def check_mac_address(cls, value: str) -> str:
        if not is_valid_mac_address(value):
            raise ValueError(MAC_ADDRESS_MESSAGE)
        return value

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, value: Any) -> dt_date:
        return parse_calendar_date(value)

    def to_record(self) -> dict[str, Any]:
        data = self.model_dump()
        data["buyback_status"] = self.buyback_status.value
        return data


def _error_message(err: Mapping[str, Any]) -> str:
    ctx = err.get("ctx") or {}
    if err.get("type") == "value_error" and "error" in ctx:
        return str(ctx["error"])
    return str(err.get("msg", "invalid"))


def validate_asset(data: Mapping[str, Any]) -> AssetIn:
    """Validate a whole candidate record or reject it.

    Raises ``ValidationError`` naming every failing field (camelCase), so a
    record is never partially accepted.
    """

    try:
        return AssetIn.model_validate(dict(data))
    except PydanticValidationError as exc:
        errors = exc.errors()
        fields = [".".join(str(p) for p in err["loc"]) or "record" for err in errors]
        message = "; ".join(f"{field}: {_error_message(err)}" for field, err in zip(fields, errors))
        raise ValidationError(fields, message) from exc


class AssetOut(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    pc_name: str
    employee_number: str
    username: str
    serial_number: str
    mac_address: str
    buyback_status: str
    date: dt_date
    created_at: str
    updated_at: str
    status_log: str


class StatusUpdate(_CamelModel):
    status: BuybackStatus


class DuplicateCheckOut(_CamelModel):
    is_duplicate: bool
    duplicate_fields: list[str]
    colliding_records: list[AssetOut]


class StatusLinkOut(_CamelModel):
    asset_id: str
    url: str
    current_status: str
    allowed_statuses: list[BuybackStatus]


class ImportRequest(_CamelModel):
    data: Optional[str] = None


class ImportResultOut(_CamelModel):
    success: int
    failed: int
    errors: list[str]
