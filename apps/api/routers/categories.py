"""Category catalog router."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from models.category import Category
from models.product import Product
from models.video import Video
from routers.auth_scope import Principal, authorize
from services.errors import InvalidInput, InvalidOperation, NotFound
from services.identity import slugify
from services.serializers import serialize_category

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateCategoryRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    image: Optional[str] = None


async def _get_category_or_404(category_id: str, db: AsyncSession) -> Category:
    category = (await db.execute(select(Category).where(Category.id == category_id))).scalar_one_or_none()
    if category is None:
        raise NotFound(f"Category not found with id of {category_id}")
    return category


@router.get("")
async def list_categories(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Category).where(Category.is_active.is_(True)).order_by(Category.name))
    data = [serialize_category(category) for category in result.scalars().all()]
    return {"success": True, "count": len(data), "data": data}


@router.get("/{category_id}")
async def get_category(category_id: str, db: AsyncSession = Depends(get_db)):
    category = await _get_category_or_404(category_id, db)
    return {"success": True, "data": serialize_category(category)}


@router.post("", status_code=201)
async def create_category(
    request: CreateCategoryRequest,
    principal: Principal = Depends(authorize("admin", "superadmin")),
    db: AsyncSession = Depends(get_db),
):
    name = request.name.strip()
    existing = await db.execute(select(Category.id).where(func.lower(Category.name) == name.lower()))
    if existing.first() is not None:
        raise InvalidInput("Category with this name already exists")

    creator = principal.creator_ref
    category = Category(
        name=name,
        slug=slugify(name, fallback="category"),
        description=request.description,
        image=request.image,
        creator_id=creator.id,
        creator_kind=creator.kind,
    )
    db.add(category)
    await db.commit()
    logger.info("category_created category=%s by=%s:%s", category.id, creator.kind, creator.id)
    return {"success": True, "data": serialize_category(category)}


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    _principal: Principal = Depends(authorize("admin", "superadmin")),
    db: AsyncSession = Depends(get_db),
):
    category = await _get_category_or_404(category_id, db)
    in_use = await db.execute(select(Product.id).where(Product.category_id == category.id).limit(1))
    if in_use.first() is not None:
        raise InvalidOperation("Cannot delete a category that still has products")
    await db.execute(update(Video).where(Video.category_id == category.id).values(category_id=None))
    await db.delete(category)
    await db.commit()
    return {"success": True, "data": {}}
