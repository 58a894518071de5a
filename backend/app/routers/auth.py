# auth router — signup, login, refresh, current user, profile, and account deletion
# psychologist signups also create an unapproved psychologist profile

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from bson import ObjectId
from bson.errors import InvalidId

from app.models.user import (
    UserCreate, UserLogin, TokenResponse, RefreshRequest, UserResponse, ProfileUpdate, doc_to_user,
)
from app.services.auth_service import hash_password, verify_password, create_token_pair, decode_token
from app.services.db import Database, get_db
from app.services.accounts import create_psychologist_profile, delete_user_cascade
from app.dependencies import get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(body: UserCreate, db: Database = Depends(get_db)):
    """register a customer or psychologist and return a token pair"""
    email = body.email.strip().lower()
    existing = await db.users.find_one({"email": email})
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    if body.role == "psychologist" and not (body.title or "").strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Title is required for psychologists",
        )

    now = datetime.now(timezone.utc).isoformat()
    user_doc = {
        "email": email,
        "hashed_password": hash_password(body.password),
        "name": body.name,
        "role": body.role,
        "phone": body.phone,
        # psychologists wait for admin approval
        "approved": body.role != "psychologist",
        "created_at": now,
        "updated_at": now,
    }
    result = await db.users.insert_one(user_doc)
    user_id = str(result.inserted_id)

    if body.role == "psychologist":
        try:
            profile = await create_psychologist_profile(db, user_id, email, body.model_dump(), now)
        except Exception:
            # a psychologist account never outlives a failed profile write
            await db.users.delete_one({"_id": result.inserted_id})
            logger.warning(f"Signup rolled back for {email}: psychologist profile not created")
            raise
        logger.info(f"Psychologist profile {profile['psychologist_id']} created, awaiting approval")

    logger.info(f"User registered: {email} ({body.role})")
    access, refresh = create_token_pair(user_id, body.role)
    return TokenResponse(accessToken=access, refreshToken=refresh)


@router.post("/login", response_model=TokenResponse)
async def login(body: UserLogin, db: Database = Depends(get_db)):
    """exchange email + password for a token pair"""
    user = await db.users.find_one({"email": body.email.strip().lower()})
    if not user or not verify_password(body.password, user.get("hashed_password", "")):
        logger.warning(f"Failed login attempt for {body.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    access, refresh = create_token_pair(str(user["_id"]), user["role"])
    return TokenResponse(accessToken=access, refreshToken=refresh)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_tokens(body: RefreshRequest, db: Database = Depends(get_db)):
    """issue a new token pair from a valid refresh token"""
    payload = decode_token(body.refresh_token)
    if payload is None or payload.get("type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
        )

    user_id = payload.get("sub", "")
    try:
        user = await db.users.find_one({"_id": ObjectId(user_id)})
    except InvalidId:
        user = None
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    access, refresh = create_token_pair(user_id, user["role"])
    return TokenResponse(accessToken=access, refreshToken=refresh)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: dict = Depends(get_current_user)):
    """current user profile"""
    return doc_to_user(current_user)


@router.patch("/profile", response_model=UserResponse)
async def update_profile(
    body: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """update name and phone"""
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No fields to update",
        )

    updates["updated_at"] = datetime.now(timezone.utc).isoformat()
    await db.users.update_one({"_id": ObjectId(current_user["id"])}, {"$set": updates})

    # keep the denormalized name on the psychologist profile in step
    if "name" in updates and current_user.get("role") == "psychologist":
        await db.psychologists.update_one({"user_id": current_user["id"]}, {"$set": {"name": updates["name"]}})

    current_user.update(updates)
    return doc_to_user(current_user)


@router.delete("/account", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    current_user: dict = Depends(get_current_user),
    db: Database = Depends(get_db),
):
    """delete the caller's account with its children or psychologist profile"""
    await delete_user_cascade(db, current_user["id"])
    logger.info(f"Account deleted: {current_user['id']}")
    return None
