"""Storefront product model."""

from datetime import datetime, timezone
import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text

from database import Base


class Product(Base):
    """Catalog item sold in the storefront."""

    __tablename__ = "products"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    slug = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    discount_price = Column(Float, nullable=True)
    category_id = Column(String, ForeignKey("categories.id"), nullable=False, index=True)
    images = Column(JSON, nullable=False, default=list)  # public urls
    image_keys = Column(JSON, nullable=False, default=list)  # blob keys of uploaded images
    brand = Column(String, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    sku = Column(String, unique=True, nullable=True)
    variants = Column(JSON, nullable=False, default=list)  # [{"name": "Size", "options": ["S", "M"]}]
    specifications = Column(JSON, nullable=False, default=list)  # [{"name": ..., "value": ...}]
    tags = Column(JSON, nullable=False, default=list)
    ratings_average = Column(Float, nullable=True)
    ratings_quantity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
