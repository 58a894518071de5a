# shared fixtures for backend api tests
# provides mock db, test users, psychologist profiles, auth tokens, and httpx test clients

import copy

import pytest
import pytest_asyncio
from unittest.mock import MagicMock
from bson import ObjectId
from pymongo import ReturnDocument

from httpx import AsyncClient, ASGITransport

from app.main import app
from app.client.mirror import LocalMirror
from app.services.db import get_db
from app.services.auth_service import hash_password, create_access_token
from app.dependencies import get_current_user


# test ids, fixed so every import of this module agrees
PARENT_OID = ObjectId("64b000000000000000000001")
PARENT_2_OID = ObjectId("64b000000000000000000002")
PSYCHOLOGIST_OID = ObjectId("64b000000000000000000003")
PSYCHOLOGIST_2_OID = ObjectId("64b000000000000000000004")
UNAPPROVED_OID = ObjectId("64b000000000000000000005")
ADMIN_OID = ObjectId("64b000000000000000000006")

PARENT_ID = str(PARENT_OID)
PARENT_2_ID = str(PARENT_2_OID)
PSYCHOLOGIST_ID = str(PSYCHOLOGIST_OID)
PSYCHOLOGIST_2_ID = str(PSYCHOLOGIST_2_OID)
UNAPPROVED_ID = str(UNAPPROVED_OID)
ADMIN_ID = str(ADMIN_OID)

PASSWORD = "pathify123"
PASSWORD_HASH = hash_password(PASSWORD)


def _user(oid, email, name, role, approved=True):
    return {
        "_id": oid,
        "email": email,
        "hashed_password": PASSWORD_HASH,
        "name": name,
        "role": role,
        "phone": None,
        "approved": approved,
        "created_at": "2025-01-10T00:00:00+00:00",
        "updated_at": "2025-01-10T00:00:00+00:00",
    }


# test user documents (as they'd appear from mongodb)

PARENT_DOC = _user(PARENT_OID, "maya.parent@email.com", "Maya Haddad", "customer")
PARENT_2_DOC = _user(PARENT_2_OID, "omar.parent@email.com", "Omar Saleh", "customer")
PSYCHOLOGIST_DOC = _user(PSYCHOLOGIST_OID, "sarah.johnson@pathify.com", "Dr. Sarah Johnson", "psychologist")
PSYCHOLOGIST_2_DOC = _user(PSYCHOLOGIST_2_OID, "michael.chen@pathify.com", "Dr. Michael Chen", "psychologist")
UNAPPROVED_DOC = _user(UNAPPROVED_OID, "james.wilson@pathify.com", "Dr. James Wilson", "psychologist", approved=False)
ADMIN_DOC = _user(ADMIN_OID, "admin@pathify.com", "Super Admin", "admin")


def _profile(user_id, psychologist_id, name, email, rating, completed, approved=True):
    return {
        "user_id": user_id,
        "psychologist_id": psychologist_id,
        "name": name,
        "email": email,
        "title": "Child Psychologist",
        "specializations": ["Child Development", "Assessment"],
        "experience": "5+ years",
        "rating": rating,
        "completed_assessments": completed,
        "description": "Experienced with school-age children.",
        "available": True,
        "approved": approved,
        "approved_by": "admin@pathify.com" if approved else None,
        "approved_at": "2025-01-11T00:00:00+00:00" if approved else None,
        "rejected_by": None,
        "rejected_at": None,
        "rejection_reason": None,
        "registered_at": "2025-01-10T00:00:00+00:00",
    }


PROFILE_DOC = _profile(PSYCHOLOGIST_ID, "psy001", "Dr. Sarah Johnson", "sarah.johnson@pathify.com", 4.8, 100)
PROFILE_2_DOC = _profile(PSYCHOLOGIST_2_ID, "psy002", "Dr. Michael Chen", "michael.chen@pathify.com", 4.9, 40)
UNAPPROVED_PROFILE_DOC = _profile(
    UNAPPROVED_ID, "psy003", "Dr. James Wilson", "james.wilson@pathify.com", 5.0, 0, approved=False
)


# sample data

SAMPLE_CHILD = {
    "child_id": "child_aya000001",
    "parent_id": PARENT_ID,
    "name": "Aya",
    "age": 8,
    "gender": "female",
    "interests": ["drawing", "puzzles"],
    "notes": "Shy in new groups",
    "status": "available",
    "psychologist_id": None,
    "request_id": None,
    "created_at": "2025-02-01T00:00:00+00:00",
    "updated_at": "2025-02-01T00:00:00+00:00",
}


def complete_answers():
    """a full answer set, one per catalog game"""
    from app.services.games import GAME_CATALOG
    return [
        {
            "gameTitle": game["game_title"],
            "question": game["text"],
            "answer": game["options"][0],
            "category": game["category"],
            "timestamp": "2025-02-03T10:00:00+00:00",
        }
        for game in GAME_CATALOG
    ]


# async cursor mock

class AsyncCursorMock:
    """mock for motor's async cursor, supports async for and chained methods"""

    def __init__(self, data=None):
        self._data = list(data or [])
        self._index = 0

    def sort(self, key_or_list, direction=None):
        keys = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction or 1)]
        for key, order in reversed(keys):
            self._data.sort(key=lambda d: (0, "") if d.get(key) is None else (1, d.get(key)), reverse=order < 0)
        return self

    def skip(self, n):
        self._data = self._data[n:]
        return self

    def limit(self, n):
        self._data = self._data[:n]
        return self

    def __aiter__(self):
        self._index = 0
        return self

    async def __anext__(self):
        if self._index >= len(self._data):
            raise StopAsyncIteration
        item = self._data[self._index]
        self._index += 1
        return item

    async def to_list(self, length=None):
        if length is not None:
            return self._data[:length]
        return self._data


class MockCollection:
    """mock for a motor collection with async methods"""

    def __init__(self, data=None):
        self._data = data or []
        self.inserted = []
        # true for a generic write failure, or an exception instance to raise
        self.fail_next_insert = False
        self.fail_next_update = False

    def find(self, query=None, projection=None):
        results = self._data
        if query:
            results = [d for d in results if self._matches(d, query)]
        return AsyncCursorMock(results)

    async def find_one(self, query=None, projection=None):
        if not query:
            return self._data[0] if self._data else None
        for doc in self._data:
            if self._matches(doc, query):
                return doc
        return None

    async def insert_one(self, doc):
        if self.fail_next_insert:
            error = self.fail_next_insert
            self.fail_next_insert = False
            if isinstance(error, Exception):
                raise error
            raise RuntimeError("simulated write failure")
        oid = doc.get("_id", ObjectId())
        doc["_id"] = oid
        self._data.append(doc)
        self.inserted.append(doc)
        result = MagicMock()
        result.inserted_id = oid
        return result

    async def count_documents(self, query=None):
        if not query:
            return len(self._data)
        return len([d for d in self._data if self._matches(d, query)])

    @staticmethod
    def _apply(doc, update):
        if "$set" in update:
            doc.update(update["$set"])
        for key, amount in update.get("$inc", {}).items():
            doc[key] = (doc.get(key) or 0) + amount

    async def update_one(self, query, update, upsert=False):
        if self.fail_next_update:
            self.fail_next_update = False
            raise RuntimeError("simulated write failure")
        result = MagicMock()
        result.modified_count = 0
        for doc in self._data:
            if self._matches(doc, query):
                self._apply(doc, update)
                result.modified_count = 1
                break
        return result

    async def find_one_and_update(self, query, update, return_document=ReturnDocument.BEFORE):
        for doc in self._data:
            if self._matches(doc, query):
                before = copy.deepcopy(doc)
                self._apply(doc, update)
                return doc if return_document == ReturnDocument.AFTER else before
        return None

    async def delete_one(self, query):
        result = MagicMock()
        result.deleted_count = 0
        for doc in self._data:
            if self._matches(doc, query):
                self._data.remove(doc)
                result.deleted_count = 1
                break
        return result

    async def delete_many(self, query):
        keep = [d for d in self._data if not self._matches(d, query)]
        result = MagicMock()
        result.deleted_count = len(self._data) - len(keep)
        self._data[:] = keep
        return result

    async def create_index(self, *args, **kwargs):
        return "mock_index"

    def _matches(self, doc, query):
        """basic mongodb query matching for tests"""
        for key, value in query.items():
            if key == "$or":
                if not any(self._matches(doc, cond) for cond in value):
                    return False
                continue
            doc_val = doc.get(key)
            if isinstance(value, dict):
                if "$in" in value and doc_val not in value["$in"]:
                    return False
                if "$ne" in value and doc_val == value["$ne"]:
                    return False
            elif doc_val != value:
                return False
        return True


class MockDatabase:
    """mock database that mimics the Database class"""

    def __init__(self):
        self.users = MockCollection([
            copy.deepcopy(PARENT_DOC),
            copy.deepcopy(PARENT_2_DOC),
            copy.deepcopy(PSYCHOLOGIST_DOC),
            copy.deepcopy(PSYCHOLOGIST_2_DOC),
            copy.deepcopy(UNAPPROVED_DOC),
            copy.deepcopy(ADMIN_DOC),
        ])
        self.psychologists = MockCollection([
            copy.deepcopy(PROFILE_DOC),
            copy.deepcopy(PROFILE_2_DOC),
            copy.deepcopy(UNAPPROVED_PROFILE_DOC),
        ])
        self.children = MockCollection([copy.deepcopy(SAMPLE_CHILD)])
        self.assessment_requests = MockCollection([])
        self.game_results = MockCollection([])
        self.ai_analysis = MockCollection([])

    async def connect(self):
        pass

    async def close(self):
        pass

    async def ensure_indexes(self):
        pass


def seeded_mirror():
    """in-memory local mirror holding the same profiles and child as MockDatabase"""
    mirror = LocalMirror()
    mirror.data["psychologists"] = [
        copy.deepcopy(PROFILE_DOC), copy.deepcopy(PROFILE_2_DOC), copy.deepcopy(UNAPPROVED_PROFILE_DOC),
    ]
    mirror.data["children"] = [copy.deepcopy(SAMPLE_CHILD)]
    return mirror


@pytest.fixture
def mock_db():
    """create a fresh mock database for each test"""
    return MockDatabase()


@pytest.fixture(params=["mongo", "mirror"])
def store(request):
    """each workflow test runs against the mock motor db and the client mirror"""
    if request.param == "mongo":
        return MockDatabase()
    return seeded_mirror()


def user_dict(doc):
    """user dict as get_current_user would return it"""
    user = copy.deepcopy(doc)
    user["id"] = str(user.pop("_id"))
    return user


def act_as(doc):
    """switch the authenticated user for the shared test app"""
    async def override_get_current_user():
        return user_dict(doc)
    app.dependency_overrides[get_current_user] = override_get_current_user


def token_for(doc):
    """jwt access token for a test user"""
    return create_access_token({"sub": str(doc["_id"]), "role": doc["role"]})


@pytest.fixture
def admin_token():
    return token_for(ADMIN_DOC)


@pytest_asyncio.fixture
async def client(mock_db):
    """httpx async test client with only the database mocked"""

    async def override_get_db():
        return mock_db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _client_as(mock_db, doc):
    async def override_get_db():
        return mock_db

    app.dependency_overrides[get_db] = override_get_db
    act_as(doc)
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest_asyncio.fixture
async def customer_client(mock_db):
    """client authenticated as the parent who owns SAMPLE_CHILD"""
    async with await _client_as(mock_db, PARENT_DOC) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def psychologist_client(mock_db):
    """client authenticated as psychologist psy001"""
    async with await _client_as(mock_db, PSYCHOLOGIST_DOC) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_client(mock_db):
    """client authenticated as the admin"""
    async with await _client_as(mock_db, ADMIN_DOC) as ac:
        yield ac
    app.dependency_overrides.clear()
