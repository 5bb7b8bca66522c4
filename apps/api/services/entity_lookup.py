"""Resolve polymorphic creator references to concrete User/Admin rows."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Tuple, Type

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.admin import Admin
from models.user import User
from services.identity import CreatorRef


class EntityLookup:
    """Maps a creator kind to the model that stores it."""

    def __init__(self, models: Optional[Dict[str, Type[Any]]] = None):
        self._models: Dict[str, Type[Any]] = models or {"User": User, "Admin": Admin}

    def model_for(self, kind: str) -> Type[Any]:
        try:
            return self._models[kind]
        except KeyError as exc:
            raise ValueError(f"No entity registered for kind {kind}") from exc

    async def get(self, db: AsyncSession, ref: CreatorRef) -> Optional[Any]:
        model = self.model_for(ref.kind)
        result = await db.execute(select(model).where(model.id == ref.id))
        return result.scalar_one_or_none()

    async def get_many(self, db: AsyncSession, refs: Iterable[CreatorRef]) -> Dict[Tuple[str, str], Any]:
        ids_by_kind: Dict[str, set] = {}
        for ref in refs:
            ids_by_kind.setdefault(ref.kind, set()).add(ref.id)

        resolved: Dict[Tuple[str, str], Any] = {}
        for kind, ids in ids_by_kind.items():
            model = self.model_for(kind)
            result = await db.execute(select(model).where(model.id.in_(sorted(ids))))
            for row in result.scalars().all():
                resolved[(kind, row.id)] = row
        return resolved


entity_lookup = EntityLookup()


def creator_summary(entity: Any) -> Optional[Dict[str, Any]]:
    """Public projection of a creator, whichever kind it is."""
    if entity is None:
        return None
    if isinstance(entity, Admin):
        return {
            "_id": entity.id,
            "name": entity.name,
            "profileImage": entity.profile_image,
        }
    return {
        "_id": entity.id,
        "username": entity.username,
        "profilePicture": entity.profile_picture,
        "subscribersCount": len(entity.subscribers or []),
    }
