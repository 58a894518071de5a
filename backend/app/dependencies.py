# fastapi dependency injection
# provides get_current_user and role-based access control for customers, psychologists, admins

import logging
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from bson import ObjectId
from bson.errors import InvalidId

from app.services.auth_service import decode_token
from app.services.db import Database, get_db

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Database = Depends(get_db),
) -> dict:
    """extract and validate the current user from the jwt bearer token"""
    token = credentials.credentials
    payload = decode_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing subject",
        )

    # fetch user from database
    try:
        user = await db.users.find_one({"_id": ObjectId(user_id)})
    except InvalidId:
        user = None

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    # convert _id to string
    user = dict(user)
    user["id"] = str(user.pop("_id"))
    return user


async def get_optional_role(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    db: Database = Depends(get_db),
) -> Optional[str]:
    """stored role of the user behind an optional bearer token.
    invalid tokens and deleted users are treated as anonymous"""
    if credentials is None:
        return None
    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("type") != "access":
        return None

    try:
        user = await db.users.find_one({"_id": ObjectId(payload.get("sub") or "")})
    except InvalidId:
        user = None
    if not user:
        return None
    return user.get("role")


def require_role(*roles: str):
    """factory for role-based access control dependency"""

    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if current_user.get("role") not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {' or '.join(roles)}",
            )
        return current_user

    return role_checker
