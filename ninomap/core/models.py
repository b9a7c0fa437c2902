"""Mapping record and operation result models."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

NINO_MIN_LENGTH = 5
NINO_MAX_LENGTH = 10
_GUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")


class MappingIn(BaseModel):
    """Inbound creation request. Wire names follow the original JSON body."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, frozen=True)

    nino: str = Field(alias="NINO", min_length=NINO_MIN_LENGTH, max_length=NINO_MAX_LENGTH)
    guid: str = Field(alias="GUID")

    @field_validator("guid")
    @classmethod
    def _check_guid(cls, value: str) -> str:
        if not _GUID_RE.match(value):
            raise ValueError("GUID must be a canonical UUID (8-4-4-4-12 hex)")
        return value.lower()


class MappingRecord(MappingIn):
    created_at: int = 0

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class CreateStatus(str, Enum):
    CREATED = "created"
    REPLAYED_IDEMPOTENT = "replayed_idempotent"
    CONFLICT = "conflict"


class ReadStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"


class CreateResult(BaseModel):
    status: CreateStatus
    record: MappingRecord | None = None


class ReadResult(BaseModel):
    status: ReadStatus
    record: MappingRecord | None = None
