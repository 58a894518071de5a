# children router — parents register and manage their children
# status is never written here; it only moves through workflow transitions

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.models.child import ChildCreate, ChildUpdate, ChildResponse, doc_to_child
from app.services.db import Database, get_db
from app.services.workflow import AssessmentWorkflow
from app.dependencies import get_current_user, require_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/children", tags=["children"])


async def _get_visible_child(child_id: str, current_user: dict, db: Database) -> dict:
    """child lookup with access rules: parent owns it, assigned psychologist may read, admin sees all"""
    doc = await db.children.find_one({"child_id": child_id})
    if not doc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Child not found",
        )

    role = current_user.get("role")
    if role == "admin" or doc.get("parent_id") == current_user["id"]:
        return doc
    if role == "psychologist" and doc.get("psychologist_id"):
        profile = await db.psychologists.find_one({"user_id": current_user["id"]})
        if profile and profile.get("psychologist_id") == doc["psychologist_id"]:
            return doc

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You do not have access to this child",
    )


@router.get("", response_model=list[ChildResponse])
async def list_children(
    current_user: dict = Depends(require_role("customer")),
    db: Database = Depends(get_db),
):
    """the parent's children, newest first"""
    cursor = db.children.find({"parent_id": current_user["id"]}).sort("created_at", -1)
    return [doc_to_child(doc) async for doc in cursor]


@router.post("", response_model=ChildResponse, status_code=status.HTTP_201_CREATED)
async def create_child(
    body: ChildCreate,
    current_user: dict = Depends(require_role("customer")),
    db: Database = Depends(get_db),
):
    """register a child; every new child starts as available"""
    doc = await AssessmentWorkflow(db).create_child(current_user, body.model_dump())
    return doc_to_child(doc)


@router.get("/{child_id}", response_model=ChildResponse)
async def get_child(
    child_id: str,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    doc = await _get_visible_child(child_id, current_user, db)
    return doc_to_child(doc)


@router.put("/{child_id}", response_model=ChildResponse)
async def update_child(
    child_id: str,
    body: ChildUpdate,
    current_user: dict = Depends(require_role("customer")),
    db: Database = Depends(get_db),
):
    """edit descriptive fields of an owned child"""
    doc = await AssessmentWorkflow(db).update_child(current_user, child_id, body.model_dump(exclude_none=True))
    return doc_to_child(doc)


@router.delete("/{child_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_child(
    child_id: str,
    current_user: dict = Depends(require_role("customer", "admin")),
    db: Database = Depends(get_db),
):
    """delete a child together with its requests, game results, and reports"""
    await AssessmentWorkflow(db).delete_child(current_user, child_id)
    return None
