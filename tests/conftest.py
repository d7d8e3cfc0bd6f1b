"""Common fixtures and mockfirestore patches for tests."""

from __future__ import annotations

from typing import Any, Optional
from unittest.mock import MagicMock, patch

import pytest
from google.api_core.exceptions import AlreadyExists
from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference

from bucketly import create_app


class MockBatch:
    """Collects writes and applies them to the mock database on commit."""

    def __init__(self, db: Any) -> None:
        self.db = db
        self.writes: list[tuple[str, Any, Any]] = []
        self.commit = MagicMock(side_effect=self._real_commit)

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.writes.append(("set", ref, data))

    def update(self, ref: Any, data: Any) -> None:
        self.writes.append(("update", ref, data))

    def delete(self, ref: Any) -> None:
        self.writes.append(("delete", ref, None))

    def _real_commit(self) -> None:
        for action, ref, data in self.writes:
            if action == "set":
                ref.set(data)
            elif action == "update":
                ref.update(data)
            else:
                ref.delete()
        self.writes = []


def patch_mockfirestore() -> None:
    """Teach mockfirestore about FieldFilter, create(), batches and get_all."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = collection_where

    # Firestore never streams documents that do not exist.
    if not hasattr(CollectionReference, "_orig_stream"):
        CollectionReference._orig_stream = CollectionReference.stream

        def existing_only(self: Any, *args: Any, **kwargs: Any) -> Any:
            return (doc for doc in self._orig_stream(*args, **kwargs) if doc.exists)

        CollectionReference.stream = existing_only

    def doc_ref_eq(self: Any, other: Any) -> bool:
        if not isinstance(other, DocumentReference):
            return False
        return self._path == other._path

    if not hasattr(DocumentReference, "_orig_eq"):
        DocumentReference._orig_eq = DocumentReference.__eq__
        DocumentReference.__eq__ = doc_ref_eq
        DocumentReference.__hash__ = lambda self: hash(tuple(self._path))

    if not hasattr(DocumentReference, "create"):

        def create(self: Any, data: dict[str, Any]) -> None:
            if self.get().exists:
                raise AlreadyExists(f"Document already exists: {'/'.join(self._path)}")
            self.set(data)

        DocumentReference.create = create

    if not hasattr(MockFirestore, "get_all"):

        def get_all(self: Any, references: Any, *args: Any, **kwargs: Any) -> Any:
            return [ref.get() for ref in references]

        MockFirestore.get_all = get_all

    if not hasattr(MockFirestore, "batch"):
        MockFirestore.batch = lambda self: MockBatch(self)


@pytest.fixture
def db() -> MockFirestore:
    patch_mockfirestore()
    return MockFirestore()


@pytest.fixture
def app():
    app = create_app({"TESTING": True, "WTF_CSRF_ENABLED": False})
    with app.app_context():
        yield app


@pytest.fixture
def client(app, db):
    """A test client whose routes talk to the mock database."""
    with patch("firebase_admin.firestore.client", return_value=db):
        yield app.test_client()


def add_profile(db: Any, user_id: str, **fields: Any) -> dict[str, Any]:
    """Store a profile with zeroed counters plus the given fields."""
    profile = {
        "username": user_id,
        "email": f"{user_id}@example.com",
        "items_completed": 0,
        "lists_created": 0,
        "lists_following": 0,
        "total_points": 0,
        "global_rank": None,
        "followers_count": 0,
        "following_count": 0,
        **fields,
    }
    db.collection("profiles").document(user_id).set(profile)
    return profile


def login(client: Any, user_id: str, is_admin: bool = False) -> None:
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["is_admin"] = is_admin
