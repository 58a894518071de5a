# game results router — question catalog, answer submission, and result lookup
# submission is only legal once the psychologist has accepted the request

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.models.game import GameQuestion, GameResultCreate, GameResultResponse, doc_to_game_result
from app.services.db import Database, get_db
from app.services.games import GAME_CATALOG
from app.services.workflow import AssessmentWorkflow
from app.dependencies import get_current_user, require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/game-results", tags=["game-results"])


@router.get("/questions", response_model=list[GameQuestion])
async def get_questions():
    """the interactive games, in play order"""
    return [GameQuestion(**game) for game in GAME_CATALOG]


@router.post("", response_model=GameResultResponse, status_code=status.HTTP_201_CREATED)
async def submit_results(
    body: GameResultCreate,
    current_user: dict = Depends(require_role("customer")),
    db: Database = Depends(get_db),
):
    """record a completed session; the child moves to games_completed"""
    answers = [a.model_dump() for a in body.answers]
    outcome = await AssessmentWorkflow(db).submit_game_result(current_user, body.child_id, answers)
    return doc_to_game_result(outcome.record)


@router.get("", response_model=list[GameResultResponse])
async def list_results(
    child_id: Optional[str] = Query(None, alias="childId"),
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """game results the caller may see, optionally for a single child"""
    query = await AssessmentWorkflow(db).game_result_query(current_user, child_id)
    cursor = db.game_results.find(query).sort("completed_at", -1)
    return [doc_to_game_result(doc) async for doc in cursor]
