import datetime as dt
import json
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator

ChangeType = Literal["CREATE", "UPDATE", "DELETE", "REORDER"]


class WBSCreate(BaseModel):
    parent_id: int | None = None
    code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=256)
    description: str | None = None
    change_reason: str | None = None


class WBSUpdate(BaseModel):
    code: str | None = Field(None, min_length=1, max_length=64)
    name: str | None = Field(None, min_length=1, max_length=256)
    description: str | None = None
    change_reason: str | None = None


class WBSReorder(BaseModel):
    # omitted keeps the current parent, explicit null moves the item to root
    new_parent_id: int | None = None
    new_sort_order: int = Field(..., ge=0, strict=True)
    change_reason: str | None = None


class WBSDelete(BaseModel):
    change_reason: str = Field(..., min_length=1)


class WBSItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    parent_id: int | None = None
    code: str
    name: str
    description: str | None = None
    level_number: int
    sort_order: int
    created_at: dt.datetime | None = None


class WBSNodeOut(WBSItemOut):
    children: list["WBSNodeOut"] = Field(default_factory=list)


class WBSChangeLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    wbs_item_id: int
    project_id: int
    changed_by: int
    change_type: ChangeType
    old_value: dict | None = None
    new_value: dict | None = None
    change_reason: str | None = None
    changed_at: dt.datetime

    @field_validator("old_value", "new_value", mode="before")
    @classmethod
    def _decode_snapshot(cls, v):
        if isinstance(v, str):
            return json.loads(v)
        return v


class WBSDeleteOut(BaseModel):
    success: bool
