from typing import Any

from pydantic import BaseModel, Field

class TermCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)

class TermResult(BaseModel):
    tid: int
    name: str
    vid: str
    created: bool
    messages: dict[str, list[str]] = {}

class TermDeleteResult(BaseModel):
    deleted: bool
    messages: dict[str, list[str]] = {}

class NodeCreateRequest(BaseModel):
    type: str
    title: str
    status: bool = True
    fields: dict[str, Any] = {}

class NodeCreateResult(BaseModel):
    nid: int
    messages: dict[str, list[str]] = {}

class NodeUpdateRequest(BaseModel):
    node_ids: int | list[int]
    fields: dict[str, Any]

class NodeUpdateResult(BaseModel):
    updated: int
    messages: dict[str, list[str]] = {}
