"""Admin authentication and user management router."""

from typing import Literal

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.admin import Admin
from routers.auth import token_response
from routers.auth_scope import Principal, authorize, require_admin
from routers.rate_limit import rate_limit
from services.accounts import (
    issue_admin_token,
    list_users_service,
    login_admin_service,
    register_admin_service,
    set_user_active_service,
)
from services.serializers import serialize_admin

router = APIRouter()


class AdminLoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class AdminRegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    role: Literal["superadmin", "admin", "moderator"] = "admin"


class UserStatusRequest(BaseModel):
    isActive: bool


@router.post("/login")
async def admin_login(
    request: AdminLoginRequest,
    response: Response,
    _rate_limit: None = Depends(rate_limit("admin_login", limit=30, window_seconds=900)),
    db: AsyncSession = Depends(get_db),
):
    admin = await login_admin_service(str(request.email), request.password, db)
    return token_response(response, issue_admin_token(admin), serialize_admin(admin))


@router.get("/me")
async def admin_me(admin: Admin = Depends(require_admin)):
    return {"success": True, "data": serialize_admin(admin)}


@router.post("/register", status_code=201)
async def admin_register(
    request: AdminRegisterRequest,
    _principal: Principal = Depends(authorize("superadmin")),
    db: AsyncSession = Depends(get_db),
):
    data = await register_admin_service(
        name=request.name,
        email=str(request.email),
        password=request.password,
        role=request.role,
        db=db,
    )
    return {"success": True, "data": data}


@router.get("/users")
async def list_users(
    _principal: Principal = Depends(authorize("admin", "superadmin")),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, **(await list_users_service(db))}


@router.put("/users/{user_id}/status")
async def set_user_status(
    user_id: str,
    request: UserStatusRequest,
    _principal: Principal = Depends(authorize("admin", "superadmin")),
    db: AsyncSession = Depends(get_db),
):
    data = await set_user_active_service(user_id, request.isActive, db)
    return {"success": True, "data": data}
