"""
Shared fixtures for the Contesto test-suite.

- ``mock_db``: database whose collections are AsyncMock-backed
- ``memory_db``: small in-memory collections for multi-step flows
- ``client``: FastAPI TestClient with the database and token verifier overridden
"""
import copy
import pytest
from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from contesto.main import app
from contesto.database import get_database
from contesto.routes.auth.dependencies import get_auth_service


# ==================== AsyncMock collections ====================

def make_cursor(documents=None):
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=list(documents or []))
    cursor.sort = MagicMock(return_value=cursor)
    cursor.limit = MagicMock(return_value=cursor)
    return cursor


def make_collection():
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock(return_value=SimpleNamespace(inserted_id=ObjectId()))
    collection.update_one = AsyncMock(
        return_value=SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
    )
    collection.update_many = AsyncMock(
        return_value=SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)
    )
    collection.delete_one = AsyncMock(return_value=SimpleNamespace(deleted_count=1))
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.find = MagicMock(return_value=make_cursor())
    collection.aggregate = MagicMock(return_value=make_cursor())
    return collection


class FakeSession:
    """Stands in for a motor client session; records commit/abort"""

    def __init__(self):
        self.committed = False
        self.aborted = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def start_transaction(self):
        session = self

        class _Transaction:
            async def __aenter__(self):
                return session

            async def __aexit__(self, exc_type, exc, tb):
                if exc_type is None:
                    session.committed = True
                else:
                    session.aborted = True
                return False

        return _Transaction()


def make_db(collection_factory=make_collection):
    db = MagicMock()
    for name in ("users", "creators", "contests", "participants", "payments", "submissions"):
        setattr(db, name, collection_factory())
    db.session = FakeSession()
    db.client.start_session = AsyncMock(return_value=db.session)
    return db


@pytest.fixture
def mock_db():
    return make_db()


# ==================== In-memory collections ====================

def _matches(document, query):
    for key, condition in query.items():
        value = document.get(key)
        if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
            for op, operand in condition.items():
                if op == "$ne" and value == operand:
                    return False
                if op == "$in" and value not in operand:
                    return False
        elif value != condition:
            return False
    return True


class MemoryCollection:
    """Just enough of a motor collection for the service flows under test"""

    def __init__(self, unique=()):
        self.documents = []
        self.unique = [tuple(keys) for keys in unique]

    def _check_unique(self, candidate):
        for keys in self.unique:
            for existing in self.documents:
                if all(existing.get(k) == candidate.get(k) for k in keys):
                    raise DuplicateKeyError(f"duplicate key {keys}")

    async def find_one(self, query, projection=None, **kwargs):
        for document in self.documents:
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    async def insert_one(self, document, **kwargs):
        document.setdefault("_id", ObjectId())
        self._check_unique(document)
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    def _apply(self, document, update):
        document.update(update.get("$set", {}))
        for key in update.get("$unset", {}):
            document.pop(key, None)

    async def update_one(self, query, update, upsert=False, **kwargs):
        for document in self.documents:
            if _matches(document, query):
                before = dict(document)
                self._apply(document, update)
                return SimpleNamespace(matched_count=1, modified_count=int(before != document), upserted_id=None)
        if upsert:
            document = {k: v for k, v in query.items() if not isinstance(v, dict)}
            document.update(update.get("$setOnInsert", {}))
            document.update(update.get("$set", {}))
            result = await self.insert_one(document)
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=result.inserted_id)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    async def update_many(self, query, update, **kwargs):
        modified = 0
        for document in self.documents:
            if _matches(document, query):
                self._apply(document, update)
                modified += 1
        return SimpleNamespace(matched_count=modified, modified_count=modified, upserted_id=None)

    async def count_documents(self, query, **kwargs):
        return sum(1 for document in self.documents if _matches(document, query))


@pytest.fixture
def memory_db():
    db = MagicMock()
    db.users = MemoryCollection(unique=[("email",)])
    db.creators = MemoryCollection(unique=[("email",)])
    db.contests = MemoryCollection()
    db.participants = MemoryCollection(unique=[("contestId", "userEmail")])
    db.payments = MemoryCollection(unique=[("transactionId",)])
    db.submissions = MemoryCollection(unique=[("contestId", "userEmail")])
    db.session = FakeSession()
    db.client.start_session = AsyncMock(side_effect=lambda: FakeSession())
    return db


# ==================== Identity ====================

class FakeAuthService:
    """Maps bearer tokens straight to emails"""

    def __init__(self, tokens=None):
        self.tokens = tokens or {}

    async def verify_token(self, token):
        email = self.tokens.get(token)
        if email is None:
            return None
        return {"uid": f"uid-{email}", "email": email, "email_verified": True}


TOKENS = {
    "admin-token": "admin@example.com",
    "creator-token": "creator@example.com",
    "user-token": "user@example.com",
    "other-token": "other@example.com",
}


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_service():
    return FakeAuthService(TOKENS)


@pytest.fixture
def client(mock_db, auth_service):
    app.dependency_overrides[get_database] = lambda: mock_db
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    # Not entered as a context manager, so the lifespan (Mongo, Stripe) never runs
    yield TestClient(app)
    app.dependency_overrides.clear()


def users_by_email(*users):
    """find_one side effect resolving users by their email"""
    index = {user["email"]: user for user in users}

    async def find_one(query, projection=None, **kwargs):
        return index.get(query.get("email"))

    return find_one


def user_doc(email, role="user", name=None):
    return {"_id": ObjectId(), "email": email, "role": role, "name": name or email.split("@")[0]}


def contest_doc(**overrides):
    now = datetime.utcnow()
    contest = {
        "_id": ObjectId(),
        "name": "Logo Design Sprint",
        "description": "Design a logo for a coffee shop",
        "category": "design",
        "prizeMoney": 500.0,
        "entryFee": 10.0,
        "taskInstruction": "Upload a link to your design",
        "participationEndAt": now + timedelta(days=3),
        "creatorEmail": "creator@example.com",
        "creatorName": "creator",
        "status": "approved",
        "contestStatus": "open",
        "createdAt": now,
        "updatedAt": now,
    }
    contest.update(overrides)
    return contest
