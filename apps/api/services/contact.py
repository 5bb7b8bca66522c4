"""Contact form submissions."""

import logging
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.contact import Contact
from services.errors import NotFound
from services.serializers import serialize_contact

logger = logging.getLogger(__name__)


async def submit_contact_service(name: str, email: str, subject: str, message: str, db: AsyncSession) -> Dict[str, Any]:
    contact = Contact(name=name.strip(), email=email.lower(), subject=subject.strip() or "General Inquiry", message=message)
    db.add(contact)
    await db.commit()
    logger.info("contact_submitted contact=%s", contact.id)
    return serialize_contact(contact)


async def list_contacts_service(db: AsyncSession) -> Dict[str, Any]:
    result = await db.execute(select(Contact).order_by(Contact.created_at.desc(), Contact.id))
    data = [serialize_contact(contact) for contact in result.scalars().all()]
    return {"count": len(data), "data": data}


async def delete_contact_service(contact_id: str, db: AsyncSession) -> Dict[str, Any]:
    contact = (await db.execute(select(Contact).where(Contact.id == contact_id))).scalar_one_or_none()
    if contact is None:
        raise NotFound(f"Contact submission not found with id of {contact_id}")
    await db.delete(contact)
    await db.commit()
    return {}
