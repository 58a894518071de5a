# analysis router — psychologist reports that complete an assessment
# parents read the report for their child once it is generated

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.models.analysis import AnalysisCreate, AnalysisResponse, SCORE_FIELDS, doc_to_analysis
from app.services.db import Database, get_db
from app.services.workflow import AssessmentWorkflow
from app.dependencies import get_current_user, require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ai-analysis", tags=["ai-analysis"])


@router.post("", response_model=AnalysisResponse, status_code=status.HTTP_201_CREATED)
async def submit_analysis(
    body: AnalysisCreate,
    current_user: dict = Depends(require_role("psychologist")),
    db: Database = Depends(get_db),
):
    """submit the report for a child whose games are completed; the child moves to completed"""
    report = body.model_dump(include={"grade", "observations", "report", *SCORE_FIELDS})
    outcome = await AssessmentWorkflow(db).submit_report(
        current_user, body.child_id, body.psychologist_id, report
    )
    return doc_to_analysis(outcome.record)


@router.get("/{child_id}", response_model=AnalysisResponse)
async def get_analysis(
    child_id: str,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """latest report for a child"""
    workflow = AssessmentWorkflow(db)
    child = await workflow.get_child(child_id)

    role = current_user.get("role")
    allowed = role == "admin" or child.get("parent_id") == current_user["id"]
    if not allowed and role == "psychologist":
        profile = await workflow.psychologist_for(current_user)
        allowed = child.get("psychologist_id") == profile.get("psychologist_id")
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this child",
        )

    docs = await db.ai_analysis.find({"child_id": child_id}).sort("assessment_date", -1).to_list(length=1)
    if not docs:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No report available for this child yet",
        )
    return doc_to_analysis(docs[0])
