"""
User authentication, profile and subscription router.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from models.user import User
from routers.auth_scope import require_user
from routers.rate_limit import rate_limit
from services.accounts import (
    add_address_service,
    delete_address_service,
    issue_user_token,
    login_user_service,
    public_profile_service,
    register_user_service,
    update_address_service,
    update_user_details_service,
)
from services.serializers import serialize_user
from services.social_graph import toggle_subscription_service

router = APIRouter()

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UpdateDetailsRequest(BaseModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: Optional[EmailStr] = None
    phoneNumber: Optional[str] = None


class AddressRequest(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    country: Optional[str] = None
    isDefault: Optional[bool] = None


def token_response(response: Response, token: Dict[str, Any], user_payload: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the session cookie and return the standard token envelope."""
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token["token"],
        max_age=max(int(settings.JWT_EXPIRATION_HOURS), 1) * 3600,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite="none" if settings.AUTH_COOKIE_SECURE else "lax",
    )
    return {"success": True, "token": token["token"], "user": user_payload}


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    response: Response,
    _rate_limit: None = Depends(rate_limit("user_register", limit=30, window_seconds=3600)),
    db: AsyncSession = Depends(get_db),
):
    user = await register_user_service(
        username=request.username,
        email=str(request.email),
        password=request.password,
        db=db,
    )
    return token_response(response, issue_user_token(user), serialize_user(user))


@router.post("/login")
async def login(
    request: LoginRequest,
    response: Response,
    _rate_limit: None = Depends(rate_limit("user_login", limit=60, window_seconds=900)),
    db: AsyncSession = Depends(get_db),
):
    user = await login_user_service(str(request.email), request.password, db)
    return token_response(response, issue_user_token(user), serialize_user(user))


@router.post("/logout")
async def logout(response: Response):
    """Clear the session cookie; bearer tokens are dropped client-side."""
    response.delete_cookie(settings.AUTH_COOKIE_NAME)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me")
async def get_me(user: User = Depends(require_user)):
    return {"success": True, "data": serialize_user(user)}


@router.put("/updatedetails")
async def update_details(
    request: UpdateDetailsRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    data = await update_user_details_service(user, request.model_dump(exclude_none=True), db)
    return {"success": True, "data": data}


@router.post("/address")
async def add_address(
    request: AddressRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    data = await add_address_service(user, request.model_dump(exclude_none=True), db)
    return {"success": True, "data": data}


@router.put("/address/{address_id}")
async def update_address(
    address_id: str,
    request: AddressRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    data = await update_address_service(user, address_id, request.model_dump(exclude_none=True), db)
    return {"success": True, "data": data}


@router.delete("/address/{address_id}")
async def delete_address(
    address_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    data = await delete_address_service(user, address_id, db)
    return {"success": True, "data": data}


@router.post("/subscribe/{creator_id}")
async def toggle_subscribe(
    creator_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    data = await toggle_subscription_service(user.id, creator_id, db)
    return {"success": True, "data": data}


@router.get("/profile/{user_id}")
async def get_public_profile(user_id: str, db: AsyncSession = Depends(get_db)):
    data = await public_profile_service(user_id, db)
    return {"success": True, "data": data}
