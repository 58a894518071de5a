# assessment request models — parent selects a psychologist, psychologist responds
# mirrors the assessment_requests collection

from typing import Optional, Literal
from pydantic import BaseModel, Field

RequestStatus = Literal["pending", "accepted", "rejected", "completed"]


class AssessmentRequestCreate(BaseModel):
    child_id: str = Field(..., alias="childId", min_length=1)
    psychologist_id: str = Field(..., alias="psychologistId", min_length=1)

    model_config = {"populate_by_name": True}


class AssessmentRespond(BaseModel):
    accepted: bool
    reason: Optional[str] = Field(None, max_length=1000)


class AssessmentRequestResponse(BaseModel):
    id: str
    child_id: str = Field(..., alias="childId")
    psychologist_id: str = Field(..., alias="psychologistId")
    parent_id: str = Field(..., alias="parentId")
    child_name: str = Field("", alias="childName")
    child_age: Optional[int] = Field(None, alias="childAge")
    child_interests: list[str] = Field(default_factory=list, alias="childInterests")
    parent_notes: Optional[str] = Field(None, alias="parentNotes")
    status: RequestStatus = "pending"
    response_reason: Optional[str] = Field(None, alias="responseReason")
    created_at: str = Field("", alias="createdAt")
    responded_at: Optional[str] = Field(None, alias="respondedAt")
    report_generated_at: Optional[str] = Field(None, alias="reportGeneratedAt")

    model_config = {"populate_by_name": True}


def doc_to_request(doc: dict) -> AssessmentRequestResponse:
    """convert an assessment_requests document to response model"""
    return AssessmentRequestResponse(
        id=doc.get("request_id", ""),
        childId=doc.get("child_id", ""),
        psychologistId=doc.get("psychologist_id", ""),
        parentId=doc.get("parent_id", ""),
        childName=doc.get("child_name", ""),
        childAge=doc.get("child_age"),
        childInterests=doc.get("child_interests") or [],
        parentNotes=doc.get("parent_notes"),
        status=doc.get("status", "pending"),
        responseReason=doc.get("response_reason"),
        createdAt=doc.get("created_at", ""),
        respondedAt=doc.get("responded_at"),
        reportGeneratedAt=doc.get("report_generated_at"),
    )
