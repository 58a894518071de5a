# psychologists router — selection list, public profiles, and self-profile editing
# non-admin callers only ever see approved psychologists

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from bson import ObjectId

from app.models.psychologist import PsychologistResponse, PsychologistProfileUpdate, doc_to_psychologist
from app.services.db import Database, get_db
from app.services.matching import PSYCHOLOGIST_SORT, visibility_query
from app.dependencies import get_optional_role, require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/psychologists", tags=["psychologists"])


@router.get("", response_model=list[PsychologistResponse])
async def list_psychologists(
    role: Optional[str] = Depends(get_optional_role),
    db: Database = Depends(get_db),
):
    """psychologists available for selection, best rated first.
    admins also see profiles still waiting for approval."""
    cursor = db.psychologists.find(visibility_query(role)).sort(PSYCHOLOGIST_SORT)
    return [doc_to_psychologist(doc) async for doc in cursor]


@router.get("/my-profile", response_model=PsychologistResponse)
async def get_my_profile(
    current_user: dict = Depends(require_role("psychologist")),
    db: Database = Depends(get_db),
):
    """the calling psychologist's own profile, approved or not"""
    doc = await db.psychologists.find_one({"user_id": current_user["id"]})
    if not doc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Psychologist profile not found",
        )
    return doc_to_psychologist(doc)


@router.put("/my-profile", response_model=PsychologistResponse)
async def update_my_profile(
    body: PsychologistProfileUpdate,
    current_user: dict = Depends(require_role("psychologist")),
    db: Database = Depends(get_db),
):
    """update self-profile fields; approval fields are admin-only"""
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No fields to update",
        )

    doc = await db.psychologists.find_one({"user_id": current_user["id"]})
    if not doc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Psychologist profile not found",
        )

    now = datetime.now(timezone.utc).isoformat()
    if "name" in updates:
        await db.users.update_one(
            {"_id": ObjectId(current_user["id"])},
            {"$set": {"name": updates["name"], "updated_at": now}},
        )

    await db.psychologists.update_one({"user_id": current_user["id"]}, {"$set": updates})
    doc.update(updates)
    logger.info(f"Psychologist profile updated: {doc.get('psychologist_id')}")
    return doc_to_psychologist(doc)


@router.get("/{psychologist_id}", response_model=PsychologistResponse)
async def get_psychologist(
    psychologist_id: str,
    role: Optional[str] = Depends(get_optional_role),
    db: Database = Depends(get_db),
):
    """public profile by psychologist id"""
    query = {"psychologist_id": psychologist_id, **visibility_query(role)}
    doc = await db.psychologists.find_one(query)
    if not doc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Psychologist not found",
        )
    return doc_to_psychologist(doc)
