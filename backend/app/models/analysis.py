# analysis models — psychologist report with scored attributes
# terminal artifact of the assessment workflow

from typing import Optional
from pydantic import BaseModel, Field

# scored attributes carried by every report
SCORE_FIELDS = (
    "iq_score",
    "verbal_reasoning",
    "numerical_reasoning",
    "spatial_reasoning",
    "memory_score",
    "processing_speed",
    "extroversion",
    "conscientiousness",
    "openness",
    "creativity",
)


class AnalysisScores(BaseModel):
    iq_score: Optional[int] = Field(None, alias="iqScore", ge=0, le=200)
    verbal_reasoning: Optional[int] = Field(None, alias="verbalReasoning", ge=0, le=100)
    numerical_reasoning: Optional[int] = Field(None, alias="numericalReasoning", ge=0, le=100)
    spatial_reasoning: Optional[int] = Field(None, alias="spatialReasoning", ge=0, le=100)
    memory_score: Optional[int] = Field(None, alias="memoryScore", ge=0, le=100)
    processing_speed: Optional[int] = Field(None, alias="processingSpeed", ge=0, le=100)
    extroversion: Optional[int] = Field(None, ge=0, le=100)
    conscientiousness: Optional[int] = Field(None, ge=0, le=100)
    openness: Optional[int] = Field(None, ge=0, le=100)
    creativity: Optional[int] = Field(None, ge=0, le=100)

    model_config = {"populate_by_name": True}


class AnalysisCreate(AnalysisScores):
    child_id: str = Field(..., alias="childId", min_length=1)
    psychologist_id: str = Field(..., alias="psychologistId", min_length=1)
    grade: Optional[str] = None
    observations: Optional[str] = Field(None, max_length=10000)
    report: str = Field(..., min_length=1, max_length=50000, description="narrative report text")


class AnalysisResponse(AnalysisScores):
    id: str
    child_id: str = Field(..., alias="childId")
    request_id: str = Field("", alias="requestId")
    psychologist_id: str = Field(..., alias="psychologistId")
    child_name: str = Field("", alias="childName")
    age: Optional[int] = None
    gender: Optional[str] = None
    grade: Optional[str] = None
    interests: list[str] = Field(default_factory=list)
    observations: Optional[str] = None
    report: str = ""
    report_generated: bool = Field(False, alias="reportGenerated")
    assessment_date: str = Field("", alias="assessmentDate")


def doc_to_analysis(doc: dict) -> AnalysisResponse:
    """convert an ai_analysis document to response model"""
    scores = {field: doc.get(field) for field in SCORE_FIELDS}
    return AnalysisResponse(
        id=doc.get("analysis_id", ""),
        childId=doc.get("child_id", ""),
        requestId=doc.get("request_id", ""),
        psychologistId=doc.get("psychologist_id", ""),
        childName=doc.get("child_name", ""),
        age=doc.get("age"),
        gender=doc.get("gender"),
        grade=doc.get("grade"),
        interests=doc.get("interests") or [],
        observations=doc.get("observations"),
        report=doc.get("ai_report", ""),
        reportGenerated=bool(doc.get("report_generated", False)),
        assessmentDate=doc.get("assessment_date", ""),
        **scores,
    )
