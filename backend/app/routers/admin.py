# admin router — psychologist approval, platform stats, and user removal
# admin-only endpoints

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from bson import ObjectId

from app.models.admin import AdminStats
from app.models.psychologist import PsychologistResponse, ApprovalDecision, doc_to_psychologist
from app.services.db import Database, get_db
from app.services.accounts import delete_user_cascade
from app.dependencies import require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/psychologists", response_model=list[PsychologistResponse])
async def list_all_psychologists(
    current_user: dict = Depends(require_role("admin")),
    db: Database = Depends(get_db),
):
    """every psychologist profile, newest registration first"""
    cursor = db.psychologists.find({}).sort("registered_at", -1)
    return [doc_to_psychologist(doc) async for doc in cursor]


@router.put("/psychologists/{psychologist_id}/approval", response_model=PsychologistResponse)
async def set_approval(
    psychologist_id: str,
    body: ApprovalDecision,
    current_user: dict = Depends(require_role("admin")),
    db: Database = Depends(get_db),
):
    """approve or reject a psychologist; approval makes them selectable by parents"""
    doc = await db.psychologists.find_one({"psychologist_id": psychologist_id})
    if not doc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Psychologist not found",
        )

    now = datetime.now(timezone.utc).isoformat()
    admin_email = current_user.get("email", "")
    if body.approved:
        updates = {
            "approved": True,
            "approved_by": admin_email,
            "approved_at": now,
            "rejected_by": None,
            "rejected_at": None,
            "rejection_reason": None,
        }
    else:
        updates = {
            "approved": False,
            "approved_by": None,
            "approved_at": None,
            "rejected_by": admin_email,
            "rejected_at": now,
            "rejection_reason": body.reason,
        }

    await db.psychologists.update_one({"psychologist_id": psychologist_id}, {"$set": updates})
    user_id = doc.get("user_id") or ""
    if ObjectId.is_valid(user_id):
        await db.users.update_one({"_id": ObjectId(user_id)}, {"$set": {"approved": body.approved}})
    else:
        logger.warning(f"Psychologist {psychologist_id} has no valid linked user")

    doc.update(updates)
    logger.info(f"Psychologist {psychologist_id} {'approved' if body.approved else 'rejected'} by {admin_email}")
    return doc_to_psychologist(doc)


@router.get("/stats", response_model=AdminStats)
async def get_stats(
    current_user: dict = Depends(require_role("admin")),
    db: Database = Depends(get_db),
):
    """user, psychologist, and assessment counts"""
    return AdminStats(
        totalUsers=await db.users.count_documents({}),
        pendingPsychologists=await db.psychologists.count_documents({"approved": False}),
        approvedPsychologists=await db.psychologists.count_documents({"approved": True}),
        totalAssessments=await db.assessment_requests.count_documents({}),
        completedAssessments=await db.assessment_requests.count_documents({"status": "completed"}),
    )


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    current_user: dict = Depends(require_role("admin")),
    db: Database = Depends(get_db),
):
    """remove a user account and cascade to what it owns"""
    if user_id == current_user["id"]:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Admins cannot delete their own account here",
        )
    if not ObjectId.is_valid(user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    await delete_user_cascade(db, user_id)
    logger.info(f"User {user_id} deleted by admin {current_user['id']}")
    return None
