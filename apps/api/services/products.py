"""Storefront product catalog services."""

from __future__ import annotations

import json
import logging
import operator
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from fastapi import UploadFile
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.category import Category
from models.order import Order
from models.product import Product
from services.blob_store import BlobStore
from services.errors import InvalidInput, NotFound
from services.identity import normalize_tags, slugify
from services.serializers import serialize_product

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100
RESERVED_QUERY_PARAMS = {"select", "sort", "page", "limit"}
QUERY_KEY_RE = re.compile(r"^(\w+)(?:\[(gt|gte|lt|lte|in)\])?$")
COMPARATORS = {
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}

# camelCase request field -> Product attribute
PRODUCT_FIELDS = {
    "name": "name",
    "description": "description",
    "price": "price",
    "discountPrice": "discount_price",
    "category": "category_id",
    "images": "images",
    "brand": "brand",
    "stock": "stock",
    "sku": "sku",
    "variants": "variants",
    "specifications": "specifications",
    "tags": "tags",
    "ratingsAverage": "ratings_average",
    "isActive": "is_active",
}
NUMERIC_FIELDS = {"price", "discountPrice", "stock", "ratingsAverage", "ratingsQuantity"}
FILTERABLE_FIELDS = NUMERIC_FIELDS | {"category", "brand", "sku", "isActive", "name", "slug"}
SORTABLE_FIELDS = NUMERIC_FIELDS | {"name", "createdAt"}


def _column(field: str):
    attribute = {
        "category": "category_id",
        "discountPrice": "discount_price",
        "ratingsAverage": "ratings_average",
        "ratingsQuantity": "ratings_quantity",
        "isActive": "is_active",
        "createdAt": "created_at",
    }.get(field, field)
    return getattr(Product, attribute)


def decode_json_text(value: Any, field: str) -> Any:
    """Decode a JSON string sent through a form field; other values pass through."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return []
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{field} must be valid JSON") from exc


def coerce_specifications(value: Any) -> List[Dict[str, str]]:
    """Normalize specifications into ``[{"name": ..., "value": ...}]``.

    Accepts a JSON string, a list of ``{name, value}`` objects, a single such
    object, or a plain ``{name: value}`` mapping.
    """
    value = decode_json_text(value, "specifications")
    if value is None:
        return []
    if isinstance(value, dict):
        if "name" in value:
            value = [value]
        else:
            return [{"name": str(name), "value": str(item)} for name, item in value.items()]
    if not isinstance(value, list):
        raise ValueError("specifications must be a list of {name, value} objects")

    specifications = []
    for entry in value:
        if not isinstance(entry, dict) or not str(entry.get("name") or "").strip():
            raise ValueError("each specification needs a name")
        raw_value = entry.get("value")
        specifications.append({
            "name": str(entry["name"]).strip(),
            "value": "" if raw_value is None else str(raw_value),
        })
    return specifications


def _parse_value(field: str, raw: str) -> Any:
    if field in NUMERIC_FIELDS:
        try:
            return float(raw)
        except ValueError as exc:
            raise InvalidInput(f"{field} filter must be a number") from exc
    if field == "isActive":
        lowered = raw.strip().lower()
        if lowered not in ("true", "false"):
            raise InvalidInput("isActive filter must be true or false")
        return lowered == "true"
    return raw


def build_product_filters(params: Iterable[Tuple[str, str]]) -> List[Any]:
    """Translate ``field=value`` and ``field[op]=value`` query params into SQL clauses."""
    clauses = []
    for key, raw in params:
        if key in RESERVED_QUERY_PARAMS:
            continue
        match = QUERY_KEY_RE.match(key)
        if match is None or match.group(1) not in FILTERABLE_FIELDS:
            raise InvalidInput(f"Unknown filter: {key}")
        field, op = match.group(1), match.group(2)
        column = _column(field)
        if op == "in":
            values = [_parse_value(field, part.strip()) for part in raw.split(",") if part.strip()]
            clauses.append(column.in_(values))
        elif op:
            if field not in NUMERIC_FIELDS:
                raise InvalidInput(f"{field} does not support [{op}]")
            clauses.append(COMPARATORS[op](column, _parse_value(field, raw)))
        else:
            clauses.append(column == _parse_value(field, raw))
    return clauses


def _order_by(sort: Optional[str]) -> List[Any]:
    if not sort:
        return [Product.created_at.desc()]
    ordering = []
    for token in sort.split(","):
        token = token.strip()
        if not token:
            continue
        descending = token.startswith("-")
        field = token.lstrip("-")
        if field not in SORTABLE_FIELDS:
            raise InvalidInput(f"Cannot sort by {field}")
        column = _column(field)
        ordering.append(column.desc() if descending else column.asc())
    return ordering or [Product.created_at.desc()]


def _positive_int(raw: Optional[str], default: int, name: str) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise InvalidInput(f"{name} must be a positive integer") from exc
    if value < 1:
        raise InvalidInput(f"{name} must be a positive integer")
    return value


async def _categories_by_id(db: AsyncSession, products: Sequence[Product]) -> Dict[str, Category]:
    ids = sorted({product.category_id for product in products if product.category_id})
    if not ids:
        return {}
    result = await db.execute(select(Category).where(Category.id.in_(ids)))
    return {category.id: category for category in result.scalars().all()}


async def list_products_service(db: AsyncSession, params: Sequence[Tuple[str, str]]) -> Dict[str, Any]:
    query = dict(params)
    clauses = build_product_filters(params)
    page = _positive_int(query.get("page"), 1, "page")
    limit = min(_positive_int(query.get("limit"), DEFAULT_PAGE_SIZE, "limit"), MAX_PAGE_SIZE)
    start = (page - 1) * limit

    total = (await db.execute(select(func.count()).select_from(Product).where(*clauses))).scalar_one()
    stmt = select(Product).where(*clauses).order_by(*_order_by(query.get("sort"))).offset(start).limit(limit)
    products = (await db.execute(stmt)).scalars().all()
    categories = await _categories_by_id(db, products)
    data = [serialize_product(product, categories.get(product.category_id)) for product in products]

    selected = [field.strip() for field in (query.get("select") or "").split(",") if field.strip()]
    if selected:
        data = [{key: item[key] for key in ["_id", *selected] if key in item} for item in data]

    pagination: Dict[str, Any] = {}
    if start + limit < total:
        pagination["next"] = {"page": page + 1, "limit": limit}
    if start > 0:
        pagination["prev"] = {"page": page - 1, "limit": limit}
    return {"count": len(data), "total": total, "pagination": pagination, "data": data}


async def _get_product_or_404(product_id: str, db: AsyncSession) -> Product:
    product = (await db.execute(select(Product).where(Product.id == product_id))).scalar_one_or_none()
    if product is None:
        raise NotFound(f"Product not found with id of {product_id}")
    return product


async def _ensure_category(category_id: str, db: AsyncSession) -> Category:
    category = (await db.execute(select(Category).where(Category.id == category_id))).scalar_one_or_none()
    if category is None:
        raise NotFound(f"Category not found with id of {category_id}")
    return category


async def _ensure_unique_sku(sku: Optional[str], db: AsyncSession, product_id: Optional[str] = None) -> None:
    if not sku:
        return
    stmt = select(Product.id).where(Product.sku == sku)
    if product_id:
        stmt = stmt.where(Product.id != product_id)
    if (await db.execute(stmt)).first() is not None:
        raise InvalidInput("Product with this SKU already exists")


def _check_discount(price: Optional[float], discount_price: Optional[float]) -> None:
    if discount_price is not None and price is not None and discount_price > price:
        raise InvalidInput("Discount price cannot exceed price")


async def get_product_service(product_id: str, db: AsyncSession) -> Dict[str, Any]:
    product = await _get_product_or_404(product_id, db)
    category = await db.get(Category, product.category_id) if product.category_id else None
    return serialize_product(product, category)


async def create_product_service(payload: Dict[str, Any], db: AsyncSession) -> Dict[str, Any]:
    category = await _ensure_category(payload["category"], db)
    sku = (payload.get("sku") or "").strip() or None
    await _ensure_unique_sku(sku, db)
    _check_discount(payload.get("price"), payload.get("discountPrice"))

    values = {PRODUCT_FIELDS[key]: value for key, value in payload.items() if key in PRODUCT_FIELDS}
    values["sku"] = sku
    values["tags"] = normalize_tags(values.get("tags"))
    product = Product(slug=slugify(payload["name"], fallback="product"), **values)
    db.add(product)
    await db.commit()
    logger.info("product_created product=%s category=%s", product.id, category.id)
    return serialize_product(product, category)


async def update_product_service(product_id: str, changes: Dict[str, Any], db: AsyncSession) -> Dict[str, Any]:
    product = await _get_product_or_404(product_id, db)
    if changes.get("category"):
        await _ensure_category(changes["category"], db)
    if "sku" in changes:
        changes["sku"] = (changes.get("sku") or "").strip() or None
        await _ensure_unique_sku(changes["sku"], db, product_id=product.id)
    _check_discount(
        changes.get("price", product.price),
        changes.get("discountPrice", product.discount_price),
    )

    for key, value in changes.items():
        if key not in PRODUCT_FIELDS or (value is None and key not in ("discountPrice", "sku", "ratingsAverage")):
            continue
        if key == "tags":
            value = normalize_tags(value)
        setattr(product, PRODUCT_FIELDS[key], value)
    if changes.get("name"):
        product.slug = slugify(changes["name"], fallback="product")
    await db.commit()
    logger.info("product_updated product=%s fields=%s", product.id, sorted(changes))
    category = await db.get(Category, product.category_id) if product.category_id else None
    return serialize_product(product, category)


async def add_product_images_service(
    product_id: str,
    files: Sequence[UploadFile],
    blob_store: BlobStore,
    db: AsyncSession,
) -> Dict[str, Any]:
    product = await _get_product_or_404(product_id, db)
    if not files:
        raise InvalidInput("Please upload at least one image")
    for file in files:
        if not (file.content_type or "").lower().startswith("image/"):
            raise InvalidInput("Product images must be image files")

    stored = []
    try:
        for file in files:
            stored.append(await blob_store.save(file, "products", int(settings.MAX_THUMBNAIL_UPLOAD_BYTES)))
    except Exception:
        for blob in stored:
            await blob_store.delete(blob.key)
        raise

    product.images = list(product.images or []) + [blob.url for blob in stored]
    product.image_keys = list(product.image_keys or []) + [blob.key for blob in stored]
    await db.commit()
    logger.info("product_images_added product=%s count=%s", product.id, len(stored))
    category = await db.get(Category, product.category_id) if product.category_id else None
    return serialize_product(product, category)


async def delete_product_service(product_id: str, blob_store: BlobStore, db: AsyncSession) -> Dict[str, Any]:
    product = await _get_product_or_404(product_id, db)
    keys = list(product.image_keys or [])
    await db.execute(update(Order).where(Order.product_id == product.id).values(product_id=None))
    await db.delete(product)
    await db.commit()
    for key in keys:
        await blob_store.delete(key)
    logger.info("product_deleted product=%s images=%s", product_id, len(keys))
    return {}
