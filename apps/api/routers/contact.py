"""Contact form router."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import Principal, authorize
from routers.rate_limit import rate_limit
from services.contact import delete_contact_service, list_contacts_service, submit_contact_service

router = APIRouter()


class ContactRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    subject: str = Field(default="General Inquiry", max_length=200)
    message: str = Field(min_length=1, max_length=5000)


@router.post("", status_code=201)
async def submit_contact(
    request: ContactRequest,
    _rate_limit: None = Depends(rate_limit("contact_submit", limit=10, window_seconds=3600)),
    db: AsyncSession = Depends(get_db),
):
    data = await submit_contact_service(request.name, request.email, request.subject, request.message, db)
    return {"success": True, "data": data}


@router.get("")
async def list_contacts(
    _principal: Principal = Depends(authorize("admin", "superadmin")),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, **(await list_contacts_service(db))}


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: str,
    _principal: Principal = Depends(authorize("admin", "superadmin")),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, "data": await delete_contact_service(contact_id, db)}
