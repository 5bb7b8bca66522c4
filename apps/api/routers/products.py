"""Storefront product catalog router."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import Principal, authorize
from services.blob_store import BlobStore, get_blob_store
from services.products import (
    add_product_images_service,
    coerce_specifications,
    create_product_service,
    decode_json_text,
    delete_product_service,
    get_product_service,
    list_products_service,
    update_product_service,
)

router = APIRouter()
logger = logging.getLogger(__name__)

ADMIN_ROLES = ("admin", "superadmin")


class VariantIn(BaseModel):
    name: str = Field(min_length=1)
    options: List[str] = Field(default_factory=list)


class SpecificationIn(BaseModel):
    name: str = Field(min_length=1)
    value: str = ""


class ProductFields(BaseModel):
    """Fields shared by create and update; JSON-encoded strings are accepted for nested fields."""

    images: Optional[List[str]] = None
    brand: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)
    sku: Optional[str] = None
    variants: Optional[List[VariantIn]] = None
    specifications: Optional[List[SpecificationIn]] = None
    tags: Optional[Any] = None
    ratingsAverage: Optional[float] = Field(default=None, ge=1, le=5)
    isActive: Optional[bool] = None

    @field_validator("specifications", mode="before")
    @classmethod
    def _normalize_specifications(cls, value):
        if value is None:
            return None
        return coerce_specifications(value)

    @field_validator("variants", mode="before")
    @classmethod
    def _decode_variants(cls, value):
        return decode_json_text(value, "variants")


class CreateProductRequest(ProductFields):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=2000)
    price: float = Field(ge=0)
    discountPrice: Optional[float] = Field(default=None, ge=0)
    category: str = Field(min_length=1)


class UpdateProductRequest(ProductFields):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    price: Optional[float] = Field(default=None, ge=0)
    discountPrice: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None


@router.get("")
async def list_products(request: Request, db: AsyncSession = Depends(get_db)):
    data = await list_products_service(db, request.query_params.multi_items())
    return {"success": True, **data}


@router.get("/{product_id}")
async def get_product(product_id: str, db: AsyncSession = Depends(get_db)):
    return {"success": True, "data": await get_product_service(product_id, db)}


@router.post("", status_code=201)
async def create_product(
    request: CreateProductRequest,
    _principal: Principal = Depends(authorize(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    payload = request.model_dump(exclude_none=True)
    return {"success": True, "data": await create_product_service(payload, db)}


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    request: UpdateProductRequest,
    _principal: Principal = Depends(authorize(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    changes = request.model_dump(exclude_unset=True)
    return {"success": True, "data": await update_product_service(product_id, changes, db)}


@router.post("/{product_id}/images")
async def upload_product_images(
    product_id: str,
    images: Optional[List[UploadFile]] = File(default=None),
    _principal: Principal = Depends(authorize(*ADMIN_ROLES)),
    blob_store: BlobStore = Depends(get_blob_store),
    db: AsyncSession = Depends(get_db),
):
    data = await add_product_images_service(product_id, images or [], blob_store, db)
    return {"success": True, "data": data}


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    _principal: Principal = Depends(authorize(*ADMIN_ROLES)),
    blob_store: BlobStore = Depends(get_blob_store),
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, "data": await delete_product_service(product_id, blob_store, db)}
