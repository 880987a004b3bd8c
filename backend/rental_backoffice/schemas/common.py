from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ApiModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ClientRef(ApiModel):
    id: int
    name: str


class FieldErrors(BaseModel):
    message: str
    errors: dict[str, list[str]] = Field(default_factory=dict)
