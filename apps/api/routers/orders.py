"""Storefront order router."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import Principal, authorize
from routers.rate_limit import rate_limit
from services.orders import (
    create_order_service,
    delete_order_service,
    list_orders_service,
    update_order_status_service,
)

router = APIRouter()

ADMIN_ROLES = ("admin", "superadmin")


class CreateOrderRequest(BaseModel):
    product: str = Field(min_length=1)
    fullName: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=5, max_length=20)
    address: str = Field(min_length=1, max_length=500)
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: str = Field(min_length=3, max_length=12)
    paymentMethod: str = "online"
    amount: Optional[float] = Field(default=None, ge=0)


class OrderStatusRequest(BaseModel):
    paymentStatus: str


@router.post("", status_code=201)
async def create_order(
    request: CreateOrderRequest,
    _rate_limit: None = Depends(rate_limit("order_create", limit=30, window_seconds=3600)),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, "data": await create_order_service(request.model_dump(), db)}


@router.get("")
async def list_orders(
    _principal: Principal = Depends(authorize(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, **(await list_orders_service(db))}


@router.put("/{order_id}/status")
async def update_order_status(
    order_id: str,
    request: OrderStatusRequest,
    _principal: Principal = Depends(authorize(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, "data": await update_order_status_service(order_id, request.paymentStatus, db)}


@router.delete("/{order_id}")
async def delete_order(
    order_id: str,
    _principal: Principal = Depends(authorize(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, "data": await delete_order_service(order_id, db)}
