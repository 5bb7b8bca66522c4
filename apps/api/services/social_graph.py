"""Mirrored subscription/like relationships between users and videos.

Each relationship lives on both documents: the source keeps the outgoing id
list (``subscribed_to``, ``liked_videos``) and the target keeps the incoming
one (``subscribers``, ``likes``). ``GraphMutator.toggle_edge`` is the only
writer of both sides. The two rows are written in one session commit; on a
store without multi-row transactions a failure between the writes would leave
a one-sided edge that only a repair pass could fix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Type

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.user import User
from models.video import Video
from services.errors import InvalidOperation, NotFound
from services.identity import contains_id, normalize_id, without_id
from services.serializers import serialize_videos

logger = logging.getLogger(__name__)


class EdgeKind(str, Enum):
    SUBSCRIPTION = "subscription"
    LIKE = "like"


@dataclass(frozen=True)
class EdgeSpec:
    source_model: Type[Any]
    source_field: str
    source_label: str
    target_model: Type[Any]
    target_field: str
    target_label: str
    allow_self: bool = True
    self_message: str = ""


EDGE_SPECS: Dict[EdgeKind, EdgeSpec] = {
    EdgeKind.SUBSCRIPTION: EdgeSpec(
        source_model=User,
        source_field="subscribed_to",
        source_label="User",
        target_model=User,
        target_field="subscribers",
        target_label="Creator",
        allow_self=False,
        self_message="You cannot subscribe to yourself",
    ),
    EdgeKind.LIKE: EdgeSpec(
        source_model=User,
        source_field="liked_videos",
        source_label="User",
        target_model=Video,
        target_field="likes",
        target_label="Video",
    ),
}


@dataclass
class ToggleResult:
    active: bool
    source: Any
    target: Any
    target_count: int


async def _load(db: AsyncSession, model: Type[Any], entity_id: str) -> Any:
    result = await db.execute(select(model).where(model.id == entity_id))
    return result.scalar_one_or_none()


class GraphMutator:
    def __init__(self, specs: Dict[EdgeKind, EdgeSpec] = EDGE_SPECS):
        self._specs = specs

    async def toggle_edge(
        self,
        db: AsyncSession,
        source_id: str,
        target_id: str,
        kind: EdgeKind,
    ) -> ToggleResult:
        """Flip the edge source -> target and mirror it on the target."""
        spec = self._specs[kind]
        source_id = normalize_id(source_id)
        target_id = normalize_id(target_id)

        if not spec.allow_self and source_id == target_id:
            raise InvalidOperation(spec.self_message)

        source = await _load(db, spec.source_model, source_id)
        if source is None:
            raise NotFound(f"{spec.source_label} not found")
        target = await _load(db, spec.target_model, target_id)
        if target is None:
            raise NotFound(f"{spec.target_label} not found")

        outgoing = list(getattr(source, spec.source_field) or [])
        incoming = list(getattr(target, spec.target_field) or [])
        was_active = contains_id(outgoing, target_id)

        if was_active:
            outgoing = without_id(outgoing, target_id)
            incoming = without_id(incoming, source_id)
        else:
            if not contains_id(outgoing, target_id):
                outgoing.append(target_id)
            if not contains_id(incoming, source_id):
                incoming.append(source_id)

        # JSON columns only register changes on reassignment.
        setattr(source, spec.source_field, outgoing)
        setattr(target, spec.target_field, incoming)
        await db.commit()

        logger.info(
            "graph_edge_toggled kind=%s source=%s target=%s active=%s",
            kind.value,
            source_id,
            target_id,
            not was_active,
        )
        return ToggleResult(
            active=not was_active,
            source=source,
            target=target,
            target_count=len(incoming),
        )


graph_mutator = GraphMutator()


async def toggle_subscription_service(subscriber_id: str, creator_id: str, db: AsyncSession) -> Dict[str, Any]:
    result = await graph_mutator.toggle_edge(db, subscriber_id, creator_id, EdgeKind.SUBSCRIPTION)
    return {
        "isSubscribed": result.active,
        "subscribersCount": result.target_count,
    }


async def toggle_like_service(user_id: str, video_id: str, db: AsyncSession) -> Dict[str, Any]:
    result = await graph_mutator.toggle_edge(db, user_id, video_id, EdgeKind.LIKE)
    video_payload = (await serialize_videos(db, [result.target]))[0]
    return {
        "isLiked": result.active,
        "likesCount": result.target_count,
        "video": video_payload,
    }
