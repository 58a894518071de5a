# assessment requests router — parents request a psychologist, psychologists respond
# transitions run through the workflow; this layer only maps http to it

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.models.assessment import (
    AssessmentRequestCreate, AssessmentRespond, AssessmentRequestResponse, doc_to_request,
)
from app.services.db import Database, get_db
from app.services.workflow import AssessmentWorkflow
from app.dependencies import get_current_user, require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/assessment-requests", tags=["assessment-requests"])


@router.post("", response_model=AssessmentRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_request(
    body: AssessmentRequestCreate,
    current_user: dict = Depends(require_role("customer")),
    db: Database = Depends(get_db),
):
    """select a psychologist for a child; the child moves to pending"""
    outcome = await AssessmentWorkflow(db).select_psychologist(
        current_user, body.child_id, body.psychologist_id
    )
    return doc_to_request(outcome.record)


@router.get("", response_model=list[AssessmentRequestResponse])
async def list_requests(
    request_status: Optional[str] = Query(None, alias="status", description="filter by request status"),
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """requests visible to the caller.
    parents see their own, psychologists see those addressed to them, admins see all."""
    query = await AssessmentWorkflow(db).request_query(current_user, request_status)
    cursor = db.assessment_requests.find(query).sort("created_at", -1)
    return [doc_to_request(doc) async for doc in cursor]


@router.put("/{request_id}/respond", response_model=AssessmentRequestResponse)
async def respond(
    request_id: str,
    body: AssessmentRespond,
    current_user: dict = Depends(require_role("psychologist")),
    db: Database = Depends(get_db),
):
    """accept or reject a pending request"""
    outcome = await AssessmentWorkflow(db).respond_to_request(
        current_user, request_id, body.accepted, body.reason
    )
    return doc_to_request(outcome.record)
