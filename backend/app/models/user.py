# user models — auth and account schemas
# customers (parents), psychologists, and admins share one users collection

from typing import Optional, Literal
from pydantic import BaseModel, EmailStr, Field

Role = Literal["customer", "psychologist", "admin"]


# auth

class UserCreate(BaseModel):
    email: EmailStr = Field(..., description="user email address")
    password: str = Field(..., min_length=8, description="plaintext password (min 8 chars)")
    name: str = Field(..., min_length=1, description="full name")
    # admin accounts are only created by the seed script
    role: Literal["customer", "psychologist"] = Field("customer", description="user role")
    phone: Optional[str] = None

    # psychologist-specific fields
    title: Optional[str] = None
    specializations: list[str] = Field(default_factory=list)
    experience: Optional[str] = None
    description: Optional[str] = None

    model_config = {"populate_by_name": True}


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")
    token_type: str = "bearer"

    model_config = {"populate_by_name": True}


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., alias="refreshToken")

    model_config = {"populate_by_name": True}


# user responses

class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: Role
    phone: Optional[str] = None
    approved: bool = False
    created_at: str = Field("", alias="createdAt")

    model_config = {"populate_by_name": True}


# profile update

class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, description="full name")
    phone: Optional[str] = None

    model_config = {"populate_by_name": True}


def doc_to_user(doc: dict) -> UserResponse:
    """convert a users document (with id already stringified) to a response"""
    return UserResponse(
        id=doc.get("id") or str(doc.get("_id", "")),
        email=doc.get("email", ""),
        name=doc.get("name", ""),
        role=doc.get("role", "customer"),
        phone=doc.get("phone"),
        approved=bool(doc.get("approved", False)),
        createdAt=doc.get("created_at", ""),
    )
