# child models — parent-owned child records and their workflow status
# status is read-only here; only workflow transitions change it

from typing import Optional, Literal
from pydantic import BaseModel, Field

ChildStatus = Literal["available", "pending", "accepted", "games_completed", "completed"]


class ChildCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="child's name")
    age: int = Field(..., ge=1, le=18, description="age in years")
    gender: Optional[str] = None
    interests: list[str] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=5000)

    model_config = {"populate_by_name": True}


class ChildUpdate(BaseModel):
    """descriptive fields only; status is a workflow projection and not writable"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    age: Optional[int] = Field(None, ge=1, le=18)
    gender: Optional[str] = None
    interests: Optional[list[str]] = None
    notes: Optional[str] = Field(None, max_length=5000)

    model_config = {"populate_by_name": True, "extra": "forbid"}


class ChildResponse(BaseModel):
    id: str
    parent_id: str = Field(..., alias="parentId")
    name: str
    age: int
    gender: Optional[str] = None
    interests: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    status: ChildStatus = "available"
    psychologist_id: Optional[str] = Field(None, alias="psychologistId")
    request_id: Optional[str] = Field(None, alias="requestId")
    created_at: str = Field("", alias="createdAt")
    updated_at: str = Field("", alias="updatedAt")

    model_config = {"populate_by_name": True}


def doc_to_child(doc: dict) -> ChildResponse:
    """convert a children document to response model"""
    return ChildResponse(
        id=doc.get("child_id", ""),
        parentId=doc.get("parent_id", ""),
        name=doc.get("name", ""),
        age=int(doc.get("age", 0)),
        gender=doc.get("gender"),
        interests=doc.get("interests") or [],
        notes=doc.get("notes"),
        status=doc.get("status", "available"),
        psychologistId=doc.get("psychologist_id"),
        requestId=doc.get("request_id"),
        createdAt=doc.get("created_at", ""),
        updatedAt=doc.get("updated_at", ""),
    )
