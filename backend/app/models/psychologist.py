# psychologist models — public profile, self-edit payload, and admin approval
# psychologists stay invisible to customers until an admin approves them

from typing import Optional
from pydantic import BaseModel, Field


class PsychologistResponse(BaseModel):
    id: str = Field(..., description="public psychologist id, e.g. psy001")
    user_id: str = Field("", alias="userId")
    name: str = ""
    email: str = ""
    title: str = ""
    specializations: list[str] = Field(default_factory=list)
    experience: Optional[str] = None
    rating: float = 0.0
    completed_assessments: int = Field(0, alias="completedAssessments")
    description: Optional[str] = None
    available: bool = True
    approved: bool = False
    approved_by: Optional[str] = Field(None, alias="approvedBy")
    approved_at: Optional[str] = Field(None, alias="approvedAt")
    rejected_by: Optional[str] = Field(None, alias="rejectedBy")
    rejected_at: Optional[str] = Field(None, alias="rejectedAt")
    rejection_reason: Optional[str] = Field(None, alias="rejectionReason")
    registered_at: str = Field("", alias="registeredAt")

    model_config = {"populate_by_name": True}


class PsychologistProfileUpdate(BaseModel):
    """self-profile fields a psychologist may change"""
    name: Optional[str] = Field(None, min_length=1)
    title: Optional[str] = Field(None, min_length=1)
    specializations: Optional[list[str]] = None
    experience: Optional[str] = None
    description: Optional[str] = None
    available: Optional[bool] = None

    model_config = {"populate_by_name": True}


class ApprovalDecision(BaseModel):
    approved: bool
    reason: Optional[str] = Field(None, max_length=1000)


def doc_to_psychologist(doc: dict) -> PsychologistResponse:
    """convert a psychologists document to response model"""
    return PsychologistResponse(
        id=doc.get("psychologist_id", ""),
        userId=doc.get("user_id", ""),
        name=doc.get("name", ""),
        email=doc.get("email", ""),
        title=doc.get("title", ""),
        specializations=doc.get("specializations") or [],
        experience=doc.get("experience"),
        rating=float(doc.get("rating", 0.0)),
        completedAssessments=int(doc.get("completed_assessments", 0)),
        description=doc.get("description"),
        available=bool(doc.get("available", True)),
        approved=bool(doc.get("approved", False)),
        approvedBy=doc.get("approved_by"),
        approvedAt=doc.get("approved_at"),
        rejectedBy=doc.get("rejected_by"),
        rejectedAt=doc.get("rejected_at"),
        rejectionReason=doc.get("rejection_reason"),
        registeredAt=doc.get("registered_at", ""),
    )
