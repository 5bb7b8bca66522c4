"""Video search and related-video discovery.

Both entry points fan out independent retrieval strategies, each on its own
session, wait for all of them, then merge the ranked lists keeping the first
occurrence of every video. Only approved videos are ever returned.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import timezone
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import snowballstemmer
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from config import settings
from models.video import Video
from services.errors import NotFound
from services.identity import TAG_SEPARATOR, normalize_id
from services.serializers import serialize_videos

logger = logging.getLogger(__name__)

WORD_RE = re.compile(r"\w+", re.UNICODE)
SCAN_BATCH_SIZE = 100
STOP_WORDS = {
    "a", "an", "and", "are", "as", "at", "be", "but", "by", "for", "from", "how",
    "in", "into", "is", "it", "its", "of", "on", "or", "that", "the", "this",
    "to", "was", "what", "when", "where", "which", "who", "why", "will", "with",
}


def split_keywords(query: Optional[str]) -> List[str]:
    return [token for token in (query or "").split() if token]


_english_stemmer = snowballstemmer.stemmer("english")


@lru_cache(maxsize=4096)
def stem(word: str) -> str:
    """English Snowball stem, so "games" and "game" share a term."""
    return _english_stemmer.stemWord(word)


def prefilter_token(term: str) -> str:
    """Substring used to prefilter SQL rows for words stemming to ``term``.

    Snowball rewrites a trailing ``y`` to ``i`` ("city" -> "citi"), so that
    letter is dropped from the ``LIKE`` pattern.
    """
    if term.endswith("i") and len(term) > 2:
        return term[:-1]
    return term


def text_terms(text: Optional[str]) -> List[str]:
    terms: List[str] = []
    for word in WORD_RE.findall((text or "").lower()):
        if word in STOP_WORDS:
            continue
        token = stem(word)
        if token not in terms:
            terms.append(token)
    return terms


def _field_score(text: Optional[str], terms: Sequence[str]) -> float:
    tokens = [stem(word) for word in WORD_RE.findall((text or "").lower()) if word not in STOP_WORDS]
    if not tokens:
        return 0.0
    score = 0.0
    for term in terms:
        count = tokens.count(term)
        if not count:
            continue
        # Each repeat of a term is worth half the previous one.
        frequency = 2.0 - 2.0 ** (1 - count)
        score += frequency * (0.5 + 0.5 * count / len(tokens))
    return score


def text_relevance(video: Video, terms: Sequence[str]) -> float:
    """Relevance of a video's title and description to the given stemmed terms."""
    return _field_score(video.title, terms) + _field_score(video.description, terms)


def like_pattern(token: str) -> str:
    escaped = token.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _recency(video: Video) -> float:
    created = video.created_at
    if created is None:
        return 0.0
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.timestamp()


def _popularity_key(video: Video):
    return (-int(video.views or 0), -_recency(video), video.id)


def merge_unique(ranked_lists: Iterable[Sequence[Video]], limit: int) -> List[Video]:
    """Concatenate ranked lists, keep the first occurrence of each id, truncate."""
    seen = set()
    merged: List[Video] = []
    for ranked in ranked_lists:
        for video in ranked:
            if video.id in seen:
                continue
            seen.add(video.id)
            merged.append(video)
            if len(merged) >= limit:
                return merged
    return merged


async def _collect(
    db: AsyncSession,
    stmt,
    predicate: Callable[[Video], bool],
    limit: int,
) -> List[Video]:
    """Page through an ordered query until ``limit`` rows satisfy ``predicate``."""
    collected: List[Video] = []
    offset = 0
    while len(collected) < limit:
        result = await db.execute(stmt.offset(offset).limit(SCAN_BATCH_SIZE))
        batch = result.scalars().all()
        for video in batch:
            if predicate(video):
                collected.append(video)
                if len(collected) >= limit:
                    break
        if len(batch) < SCAN_BATCH_SIZE:
            break
        offset += SCAN_BATCH_SIZE
    return collected


def _approved(exclude_ids: Iterable[str] = ()):
    stmt = select(Video).where(Video.status == "approved")
    excluded = [video_id for video_id in exclude_ids if video_id]
    if excluded:
        stmt = stmt.where(Video.id.notin_(excluded))
    return stmt


async def text_match(
    session_maker: async_sessionmaker,
    search_text: str,
    limit: int,
    exclude_id: Optional[str] = None,
) -> List[Video]:
    """Word-level match on title and description ranked by relevance, views, recency.

    At most ``TEXT_MATCH_SCAN_LIMIT`` candidates, the most viewed first, are
    loaded and scored.
    """
    terms = text_terms(search_text)
    if not terms:
        return []

    clauses = []
    for term in terms:
        pattern = like_pattern(prefilter_token(term))
        clauses.append(Video.title.ilike(pattern, escape="\\"))
        clauses.append(Video.description.ilike(pattern, escape="\\"))
    scan_limit = max(int(settings.TEXT_MATCH_SCAN_LIMIT), limit)
    stmt = (
        _approved([exclude_id] if exclude_id else [])
        .where(or_(*clauses))
        .order_by(Video.views.desc(), Video.created_at.desc(), Video.id)
        .limit(scan_limit)
    )

    async with session_maker() as db:
        candidates = (await db.execute(stmt)).scalars().all()

    scored = [(text_relevance(video, terms), video) for video in candidates]
    scored = [pair for pair in scored if pair[0] > 0]
    scored.sort(key=lambda pair: (-pair[0],) + _popularity_key(pair[1]))
    return [video for _, video in scored[:limit]]


async def pattern_match(
    session_maker: async_sessionmaker,
    keywords: Sequence[str],
    limit: int,
) -> List[Video]:
    """Case-insensitive substring match of any keyword on title, description or a tag."""
    needles = [keyword.lower() for keyword in keywords if keyword]
    if not needles:
        return []

    clauses = []
    for needle in needles:
        pattern = like_pattern(needle)
        clauses.append(Video.title.ilike(pattern, escape="\\"))
        clauses.append(Video.description.ilike(pattern, escape="\\"))
        clauses.append(Video.tag_blob.ilike(pattern, escape="\\"))
    stmt = (
        _approved()
        .where(or_(*clauses))
        .order_by(Video.views.desc(), Video.created_at.desc(), Video.id)
    )

    def _hit(video: Video) -> bool:
        fields = [video.title or "", video.description or ""] + [str(tag) for tag in video.tags or []]
        return any(needle in field.lower() for needle in needles for field in fields)

    async with session_maker() as db:
        return await _collect(db, stmt, _hit, limit)


async def context_match(
    session_maker: async_sessionmaker,
    seed: Video,
    limit: int,
) -> List[Video]:
    """Videos sharing the seed's category or any of its tags, most viewed first."""
    seed_tags = {str(tag) for tag in seed.tags or []}
    clauses = []
    if seed.category_id:
        clauses.append(Video.category_id == seed.category_id)
    for tag in seed_tags:
        token = tag.replace(TAG_SEPARATOR, " ")
        clauses.append(Video.tag_blob.like(like_pattern(f"{TAG_SEPARATOR}{token}{TAG_SEPARATOR}"), escape="\\"))
    if not clauses:
        return []

    stmt = (
        _approved([seed.id])
        .where(or_(*clauses))
        .order_by(Video.views.desc(), Video.created_at.desc(), Video.id)
    )

    def _related(video: Video) -> bool:
        if seed.category_id and video.category_id == seed.category_id:
            return True
        return bool(seed_tags.intersection(str(tag) for tag in video.tags or []))

    async with session_maker() as db:
        return await _collect(db, stmt, _related, limit)


async def latest_approved(
    session_maker: async_sessionmaker,
    exclude_ids: Iterable[str],
    limit: int,
) -> List[Video]:
    if limit <= 0:
        return []
    stmt = _approved(exclude_ids).order_by(Video.created_at.desc(), Video.id).limit(limit)
    async with session_maker() as db:
        return list((await db.execute(stmt)).scalars().all())


async def search_videos(session_maker: async_sessionmaker, query: Optional[str]) -> List[Video]:
    limit = max(int(settings.SEARCH_RESULT_LIMIT), 1)
    query_text = (query or "").strip()
    keywords = split_keywords(query_text)
    if not keywords:
        return []

    ranked = await asyncio.gather(
        text_match(session_maker, query_text, limit),
        pattern_match(session_maker, keywords, limit),
    )
    return merge_unique(ranked, limit)


async def related_videos(session_maker: async_sessionmaker, video_id: str) -> List[Video]:
    limit = max(int(settings.RELATED_RESULT_LIMIT), 1)
    async with session_maker() as db:
        seed = (await db.execute(select(Video).where(Video.id == normalize_id(video_id)))).scalar_one_or_none()
    if seed is None:
        raise NotFound(f"Video not found with id of {video_id}")

    branches = [context_match(session_maker, seed, limit)]
    if (seed.title or "").strip():
        branches.append(text_match(session_maker, seed.title, limit, exclude_id=seed.id))
    ranked = await asyncio.gather(*branches)
    selected = merge_unique(ranked, limit)

    if len(selected) < limit:
        exclude = [seed.id] + [video.id for video in selected]
        selected.extend(await latest_approved(session_maker, exclude, limit - len(selected)))
    return selected


async def search_videos_service(session_maker: async_sessionmaker, query: Optional[str]) -> Dict[str, Any]:
    videos = await search_videos(session_maker, query)
    async with session_maker() as db:
        data = await serialize_videos(db, videos)
    logger.info("video_search query=%r results=%s", (query or "").strip(), len(data))
    return {"count": len(data), "data": data}


async def related_videos_service(session_maker: async_sessionmaker, video_id: str) -> Dict[str, Any]:
    videos = await related_videos(session_maker, video_id)
    async with session_maker() as db:
        data = await serialize_videos(db, videos)
    logger.info("video_related seed=%s results=%s", video_id, len(data))
    return {"count": len(data), "data": data}
