"""Guest checkout orders."""

from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.order import PAYMENT_STATUSES, Order
from models.product import Product
from services.errors import InvalidInput, InvalidOperation, NotFound
from services.serializers import serialize_order

logger = logging.getLogger(__name__)

ORDER_FIELDS = {
    "fullName": "full_name",
    "phone": "phone",
    "address": "address",
    "city": "city",
    "state": "state",
    "pincode": "pincode",
    "paymentMethod": "payment_method",
}


async def _get_order_or_404(order_id: str, db: AsyncSession) -> Order:
    order = (await db.execute(select(Order).where(Order.id == order_id))).scalar_one_or_none()
    if order is None:
        raise NotFound(f"Order not found with id of {order_id}")
    return order


async def create_order_service(payload: Dict[str, Any], db: AsyncSession) -> Dict[str, Any]:
    product_id = payload["product"]
    product = (await db.execute(select(Product).where(Product.id == product_id))).scalar_one_or_none()
    if product is None:
        raise NotFound(f"Product not found with id of {product_id}")
    if not product.is_active:
        raise InvalidOperation("Product is not available")

    amount = payload.get("amount")
    if amount is None:
        amount = product.discount_price if product.discount_price is not None else product.price

    order = Order(
        product_id=product.id,
        amount=amount,
        **{column: payload[key] for key, column in ORDER_FIELDS.items() if payload.get(key) is not None},
    )
    db.add(order)
    await db.commit()
    logger.info("order_created order=%s product=%s amount=%s", order.id, product.id, amount)
    return serialize_order(order, product)


async def list_orders_service(db: AsyncSession) -> Dict[str, Any]:
    orders = (await db.execute(select(Order).order_by(Order.created_at.desc(), Order.id))).scalars().all()
    product_ids = sorted({order.product_id for order in orders if order.product_id})
    products = {}
    if product_ids:
        result = await db.execute(select(Product).where(Product.id.in_(product_ids)))
        products = {product.id: product for product in result.scalars().all()}
    data = [serialize_order(order, products.get(order.product_id)) for order in orders]
    return {"count": len(data), "data": data}


async def update_order_status_service(order_id: str, status: str, db: AsyncSession) -> Dict[str, Any]:
    if status not in PAYMENT_STATUSES:
        raise InvalidInput(f"Payment status must be one of: {', '.join(PAYMENT_STATUSES)}")
    order = await _get_order_or_404(order_id, db)
    order.payment_status = status
    await db.commit()
    logger.info("order_status_updated order=%s status=%s", order.id, status)
    product = await db.get(Product, order.product_id) if order.product_id else None
    return serialize_order(order, product)


async def delete_order_service(order_id: str, db: AsyncSession) -> Dict[str, Any]:
    order = await _get_order_or_404(order_id, db)
    await db.delete(order)
    await db.commit()
    logger.info("order_deleted order=%s", order_id)
    return {}
