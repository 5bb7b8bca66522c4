"""User and admin account services."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.admin import ADMIN_ROLES, Admin
from models.user import User
from models.video import Video
from services.errors import InvalidInput, NotFound, Unauthorized
from services.passwords import hash_password, verify_password
from services.serializers import serialize_admin, serialize_user, serialize_videos
from services.session_token import create_session_token

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("street", "city", "state", "zipCode", "country")


def issue_user_token(user: User) -> Dict[str, Any]:
    return create_session_token(user.id, kind="user", role=user.role)


def issue_admin_token(admin: Admin) -> Dict[str, Any]:
    return create_session_token(admin.id, kind="admin", role=admin.role)


async def register_user_service(
    *,
    username: str,
    email: str,
    password: str,
    db: AsyncSession,
) -> User:
    normalized_email = email.strip().lower()
    existing = await db.execute(
        select(User.id).where(or_(func.lower(User.email) == normalized_email, User.username == username))
    )
    if existing.first() is not None:
        raise InvalidInput("User already exists with this email or username")

    user = User(
        username=username,
        email=normalized_email,
        password_hash=hash_password(password),
        role="user",
    )
    db.add(user)
    await db.commit()
    logger.info("user_registered user=%s", user.id)
    return user


async def login_user_service(email: str, password: str, db: AsyncSession) -> User:
    result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.password_hash):
        raise Unauthorized("Invalid credentials")
    if not user.is_active:
        raise Unauthorized("Your account has been deactivated")
    logger.info("user_login user=%s", user.id)
    return user


async def login_admin_service(email: str, password: str, db: AsyncSession) -> Admin:
    result = await db.execute(select(Admin).where(func.lower(Admin.email) == email.strip().lower()))
    admin = result.scalar_one_or_none()
    if admin is None or not verify_password(password, admin.password_hash):
        raise Unauthorized("Invalid credentials")
    if not admin.is_active:
        raise Unauthorized("Your account has been deactivated")
    admin.last_login = datetime.now(timezone.utc)
    await db.commit()
    logger.info("admin_login admin=%s", admin.id)
    return admin


async def register_admin_service(
    *,
    name: str,
    email: str,
    password: str,
    role: str,
    db: AsyncSession,
) -> Dict[str, Any]:
    if role not in ADMIN_ROLES:
        raise InvalidInput("Invalid admin role")
    normalized_email = email.strip().lower()
    existing = await db.execute(select(Admin.id).where(func.lower(Admin.email) == normalized_email))
    if existing.first() is not None:
        raise InvalidInput("Admin already exists with this email")
    admin = Admin(name=name, email=normalized_email, password_hash=hash_password(password), role=role)
    db.add(admin)
    await db.commit()
    logger.info("admin_registered admin=%s role=%s", admin.id, role)
    return serialize_admin(admin)


async def update_user_details_service(user: User, changes: Dict[str, Any], db: AsyncSession) -> Dict[str, Any]:
    username = changes.get("username")
    email = changes.get("email")
    if username and username != user.username:
        clash = await db.execute(select(User.id).where(User.username == username, User.id != user.id))
        if clash.first() is not None:
            raise InvalidInput("Username is already taken")
        user.username = username
    if email and email.strip().lower() != user.email:
        normalized_email = email.strip().lower()
        clash = await db.execute(
            select(User.id).where(func.lower(User.email) == normalized_email, User.id != user.id)
        )
        if clash.first() is not None:
            raise InvalidInput("Email is already registered")
        user.email = normalized_email
    if "phoneNumber" in changes:
        user.phone_number = changes.get("phoneNumber")
    await db.commit()
    return serialize_user(user)


def _with_single_default(addresses: List[Dict[str, Any]], default_id: Optional[str]) -> List[Dict[str, Any]]:
    """Keep at most one default address; ``default_id`` wins when given."""
    if default_id is None:
        defaults = [address["_id"] for address in addresses if address.get("isDefault")]
        default_id = defaults[-1] if defaults else None
    return [{**address, "isDefault": address["_id"] == default_id} for address in addresses]


async def add_address_service(user: User, payload: Dict[str, Any], db: AsyncSession) -> Dict[str, Any]:
    missing = [field for field in ADDRESS_FIELDS if not str(payload.get(field) or "").strip()]
    if missing:
        raise InvalidInput(f"Missing address fields: {', '.join(missing)}")
    address = {field: str(payload[field]).strip() for field in ADDRESS_FIELDS}
    address["_id"] = str(uuid.uuid4())
    address["isDefault"] = bool(payload.get("isDefault"))

    addresses = list(user.addresses or []) + [address]
    user.addresses = _with_single_default(addresses, address["_id"] if address["isDefault"] else None)
    await db.commit()
    return serialize_user(user)


async def update_address_service(
    user: User,
    address_id: str,
    payload: Dict[str, Any],
    db: AsyncSession,
) -> Dict[str, Any]:
    addresses = [dict(address) for address in user.addresses or []]
    target = next((address for address in addresses if address.get("_id") == address_id), None)
    if target is None:
        raise NotFound("Address not found")

    for field in ADDRESS_FIELDS:
        value = payload.get(field)
        if value:
            target[field] = str(value).strip()

    default_id = None
    if payload.get("isDefault") is not None:
        target["isDefault"] = bool(payload["isDefault"])
        if target["isDefault"]:
            default_id = address_id
    user.addresses = _with_single_default(addresses, default_id)
    await db.commit()
    return serialize_user(user)


async def delete_address_service(user: User, address_id: str, db: AsyncSession) -> Dict[str, Any]:
    user.addresses = [dict(address) for address in user.addresses or [] if address.get("_id") != address_id]
    await db.commit()
    return serialize_user(user)


async def public_profile_service(user_id: str, db: AsyncSession) -> Dict[str, Any]:
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise NotFound("User not found")
    result = await db.execute(
        select(Video)
        .where(Video.creator_kind == "User", Video.creator_id == user.id, Video.status == "approved")
        .order_by(Video.created_at.desc())
    )
    videos = await serialize_videos(db, result.scalars().all())
    return {
        "user": {
            "_id": user.id,
            "username": user.username,
            "profilePicture": user.profile_picture,
            "subscribersCount": len(user.subscribers or []),
        },
        "videos": videos,
    }


async def list_users_service(db: AsyncSession) -> Dict[str, Any]:
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    data = [serialize_user(user) for user in result.scalars().all()]
    return {"count": len(data), "data": data}


async def set_user_active_service(user_id: str, is_active: bool, db: AsyncSession) -> Dict[str, Any]:
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise NotFound("User not found")
    user.is_active = bool(is_active)
    await db.commit()
    logger.info("user_active_changed user=%s active=%s", user.id, user.is_active)
    return serialize_user(user)
