"""Shared identity and id-collection helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, List


CREATOR_KINDS = ("User", "Admin")
TAG_SEPARATOR = "|"
SLUG_RE = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class CreatorRef:
    """Tagged reference to whoever created a video or category."""

    kind: str
    id: str

    def __post_init__(self) -> None:
        if self.kind not in CREATOR_KINDS:
            raise ValueError(f"Unknown creator kind: {self.kind}")


def normalize_id(value: Any) -> str:
    return str(value or "").strip()


def dedupe_ids(values: Iterable[Any]) -> List[str]:
    """Return ids in first-seen order with duplicates and blanks removed."""
    seen = set()
    unique: List[str] = []
    for value in values or []:
        token = normalize_id(value)
        if not token or token in seen:
            continue
        seen.add(token)
        unique.append(token)
    return unique


def contains_id(values: Iterable[Any], target: Any) -> bool:
    token = normalize_id(target)
    return any(normalize_id(value) == token for value in values or [])


def without_id(values: Iterable[Any], target: Any) -> List[str]:
    token = normalize_id(target)
    return [normalize_id(value) for value in values or [] if normalize_id(value) != token]


def normalize_tags(value: Any) -> List[str]:
    """Accept a comma separated string or a list and return trimmed tags.

    Duplicate tags are kept; blank entries are dropped.
    """
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = []
        for item in value:
            parts.extend(str(item).split(",") if isinstance(item, str) else [str(item)])
    else:
        parts = [str(value)]
    return [part.strip() for part in parts if part and part.strip()]


def build_tag_blob(tags: Iterable[str]) -> str:
    """Flatten tags into a delimited string that SQL ``LIKE`` can search."""
    cleaned = [str(tag).replace(TAG_SEPARATOR, " ") for tag in tags or []]
    if not cleaned:
        return ""
    return TAG_SEPARATOR + TAG_SEPARATOR.join(cleaned) + TAG_SEPARATOR


def slugify(name: str, fallback: str = "item") -> str:
    slug = SLUG_RE.sub("-", (name or "").strip().lower()).strip("-")
    return slug or fallback
