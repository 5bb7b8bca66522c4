"""JSON projections of stored entities."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from models.admin import Admin
from models.category import Category
from models.contact import Contact
from models.order import Order
from models.product import Product
from models.user import User
from models.video import Video
from services.entity_lookup import creator_summary, entity_lookup


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_video(
    video: Video,
    creator: Optional[Dict[str, Any]] = None,
    include_likes: bool = True,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "_id": video.id,
        "title": video.title,
        "description": video.description or "",
        "videoUrl": video.video_url,
        "videoSourceType": video.video_source_type,
        "thumbnailUrl": video.thumbnail_url,
        "duration": int(video.duration or 0),
        "size": int(video.size or 0),
        "status": video.status,
        "creator": creator if creator is not None else video.creator_id,
        "creatorModel": video.creator_kind,
        "views": int(video.views or 0),
        "isTrending": bool(video.is_trending),
        "tags": list(video.tags or []),
        "likesCount": video.likes_count,
        "category": video.category_id,
        "createdAt": _iso(video.created_at),
        "updatedAt": _iso(video.updated_at),
    }
    if include_likes:
        payload["likes"] = list(video.likes or [])
    return payload


async def serialize_videos(db: AsyncSession, videos: Sequence[Video]) -> List[Dict[str, Any]]:
    """Serialize videos with their creators populated in one lookup per kind."""
    creators = await entity_lookup.get_many(db, [video.creator_ref for video in videos])
    return [
        serialize_video(
            video,
            creator=creator_summary(creators.get((video.creator_kind, video.creator_id))),
        )
        for video in videos
    ]


def serialize_user(user: User) -> Dict[str, Any]:
    """Private view of the authenticated user; never includes the password hash."""
    return {
        "_id": user.id,
        "username": user.username,
        "email": user.email,
        "profilePicture": user.profile_picture,
        "phoneNumber": user.phone_number,
        "role": user.role,
        "subscribedTo": list(user.subscribed_to or []),
        "subscribers": list(user.subscribers or []),
        "subscribersCount": len(user.subscribers or []),
        "watchHistory": list(user.watch_history or []),
        "likedVideos": list(user.liked_videos or []),
        "addresses": list(user.addresses or []),
        "isVerified": bool(user.is_verified),
        "isActive": bool(user.is_active),
        "createdAt": _iso(user.created_at),
        "updatedAt": _iso(user.updated_at),
    }


def serialize_admin(admin: Admin) -> Dict[str, Any]:
    return {
        "_id": admin.id,
        "name": admin.name,
        "email": admin.email,
        "role": admin.role,
        "profileImage": admin.profile_image,
        "isActive": bool(admin.is_active),
        "lastLogin": _iso(admin.last_login),
        "createdAt": _iso(admin.created_at),
    }


def serialize_category(category: Category) -> Dict[str, Any]:
    return {
        "_id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "image": category.image,
        "creator": category.creator_id,
        "creatorModel": category.creator_kind,
        "isActive": bool(category.is_active),
        "createdAt": _iso(category.created_at),
    }


def serialize_product(product: Product, category: Optional[Category] = None) -> Dict[str, Any]:
    return {
        "_id": product.id,
        "name": product.name,
        "slug": product.slug,
        "description": product.description,
        "price": product.price,
        "discountPrice": product.discount_price,
        "category": (
            {"_id": category.id, "name": category.name, "slug": category.slug}
            if category is not None
            else product.category_id
        ),
        "images": list(product.images or []),
        "brand": product.brand,
        "stock": int(product.stock or 0),
        "sku": product.sku,
        "variants": list(product.variants or []),
        "specifications": list(product.specifications or []),
        "tags": list(product.tags or []),
        "ratingsAverage": product.ratings_average,
        "ratingsQuantity": int(product.ratings_quantity or 0),
        "isActive": bool(product.is_active),
        "createdAt": _iso(product.created_at),
    }


def serialize_order(order: Order, product: Optional[Product] = None) -> Dict[str, Any]:
    return {
        "_id": order.id,
        "product": (
            {"_id": product.id, "name": product.name, "price": product.price}
            if product is not None
            else order.product_id
        ),
        "fullName": order.full_name,
        "phone": order.phone,
        "address": order.address,
        "city": order.city,
        "state": order.state,
        "pincode": order.pincode,
        "paymentMethod": order.payment_method,
        "paymentStatus": order.payment_status,
        "amount": order.amount,
        "createdAt": _iso(order.created_at),
    }


def serialize_contact(contact: Contact) -> Dict[str, Any]:
    return {
        "_id": contact.id,
        "name": contact.name,
        "email": contact.email,
        "subject": contact.subject,
        "message": contact.message,
        "createdAt": _iso(contact.created_at),
    }
