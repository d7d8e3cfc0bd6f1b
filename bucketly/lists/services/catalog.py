"""Discovery of public lists and the global item catalogue."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Any, Optional

from firebase_admin import firestore

from bucketly import constants
from bucketly.core.sanitization import sanitize_search_query
from bucketly.utils import as_utc, doc_to_dict, paginate, sort_newest_first, utcnow

from .core import hydrate_lists

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


def _public_lists(db: Client, category: Optional[str] = None) -> list[dict[str, Any]]:
    query = db.collection(constants.BUCKET_LISTS).where(
        filter=firestore.FieldFilter("is_public", "==", True)
    )
    if category:
        query = query.where(filter=firestore.FieldFilter("category", "==", category))
    return [doc_to_dict(doc) for doc in query.stream()]


def _matches(row: dict[str, Any], needle: str, fields: tuple[str, ...]) -> bool:
    return any(needle in (row.get(field) or "").lower() for field in fields)


def fetch_public_lists(
    db: Client,
    category: Optional[str] = None,
    user_id: Optional[str] = None,
    page: int = 0,
    page_size: int = constants.PUBLIC_LISTS_PAGE_SIZE,
) -> dict[str, Any]:
    """Fetch one page of public lists, newest first."""
    result = paginate(sort_newest_first(_public_lists(db, category)), page, page_size)
    result["data"] = hydrate_lists(db, result["data"], user_id)
    return result


def search_lists(
    db: Client,
    query: str,
    category: Optional[str] = None,
    user_id: Optional[str] = None,
) -> list[dict[str, Any]]:
    """Case-insensitive search over public list names and descriptions."""
    needle = sanitize_search_query(query).lower()
    if not needle:
        return []
    matches = [
        row
        for row in sort_newest_first(_public_lists(db, category))
        if _matches(row, needle, ("name", "description"))
    ]
    return hydrate_lists(db, matches[: constants.SEARCH_RESULTS_LIMIT], user_id)


def fetch_trending_lists(
    db: Client, user_id: Optional[str] = None, limit: int = constants.TRENDING_LIMIT
) -> list[dict[str, Any]]:
    """Public lists created recently, most followed first."""
    since = utcnow() - datetime.timedelta(days=constants.TRENDING_WINDOW_DAYS)
    recent = [
        row
        for row in _public_lists(db)
        if isinstance(row.get("created_at"), datetime.datetime)
        and as_utc(row["created_at"]) >= since
    ]
    recent.sort(key=lambda row: row.get("follower_count") or 0, reverse=True)
    return hydrate_lists(db, recent[:limit], user_id)


def fetch_global_items(
    db: Client,
    category: Optional[str] = None,
    query: Optional[str] = None,
    page: int = 0,
    page_size: int = constants.PUBLIC_LISTS_PAGE_SIZE,
) -> dict[str, Any]:
    """Browse the curated item catalogue, highest points first."""
    collection = db.collection(constants.GLOBAL_ITEMS)
    if category:
        collection = collection.where(
            filter=firestore.FieldFilter("category", "==", category)
        )
    items = [doc_to_dict(doc) for doc in collection.stream()]

    needle = sanitize_search_query(query).lower()
    if needle:
        items = [
            row for row in items if _matches(row, needle, ("title", "description"))
        ]
    items.sort(key=lambda row: row.get("points") or 0, reverse=True)
    return paginate(items, page, page_size)
