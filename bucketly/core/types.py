"""Core data types for the bucketly application."""

from typing import Any, Optional, TypedDict


class FirestoreDocument(TypedDict, total=False):
    """Generic Firestore document structure."""

    id: str
    created_at: Any
    updated_at: Any


class Profile(FirestoreDocument, total=False):
    """A user's profile with the counters badges are evaluated against."""

    username: str
    email: str
    avatar_url: Optional[str]
    bio: Optional[str]
    is_private: bool
    items_completed: int
    lists_created: int
    lists_following: int
    total_points: int
    global_rank: Optional[int]
    followers_count: int
    following_count: int


class BadgeCriteria(TypedDict, total=False):
    """Criteria descriptor stored on a badge document."""

    type: str
    target: int


class APIResponse(TypedDict):
    """Generic API response structure."""

    success: bool
    message: str
    data: Any
