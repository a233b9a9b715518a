import asyncio
import copy
import os
import re

# Cheap hashes for the test run; must be set before padel_api is imported.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from padel_api.core.config import settings
from padel_api.crud import user as user_crud
from padel_api.main import app
from padel_api.schemas.user import UserCreate

UNIQUE_FIELDS = ("name", "email", "phone")


def _matches(document: dict, query: dict) -> bool:
    for key, condition in query.items():
        if key == "$or":
            if not any(_matches(document, clause) for clause in condition):
                return False
        elif isinstance(condition, dict):
            value = document.get(key)
            if "$ne" in condition and value == condition["$ne"]:
                return False
            if "$regex" in condition:
                flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                if value is None or not re.search(condition["$regex"], str(value), flags):
                    return False
        elif document.get(key) != condition:
            return False
    return True


class _FakeCursor:
    def __init__(self, documents):
        self._documents = documents

    async def to_list(self, length=None):
        return self._documents if length is None else self._documents[:length]


class _InsertResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class FakeUserCollection:
    """In-memory stand-in for the Motor 'users' collection, with unique name/email/phone."""

    def __init__(self, foreign=None):
        self.documents = {}
        self.foreign = foreign or {}
        self.updates = []

    def _check_unique(self, document: dict) -> None:
        for other in self.documents.values():
            if other["_id"] == document["_id"]:
                continue
            for field in UNIQUE_FIELDS:
                if other.get(field) == document.get(field):
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: users index: {field}_1",
                        code=11000,
                        details={"keyValue": {field: document.get(field)}},
                    )

    def _find(self, query: dict):
        for document in self.documents.values():
            if _matches(document, query):
                return document
        return None

    async def insert_one(self, document: dict):
        document = copy.deepcopy(document)
        document.setdefault("_id", ObjectId())
        self._check_unique(document)
        self.documents[document["_id"]] = document
        return _InsertResult(document["_id"])

    async def find_one(self, query: dict):
        found = self._find(query)
        return copy.deepcopy(found) if found else None

    async def find_one_and_update(self, query: dict, update: dict, return_document=None):
        self.updates.append(copy.deepcopy(update))
        found = self._find(query)
        if found is None:
            return None
        updated = copy.deepcopy(found)
        updated.update(copy.deepcopy(update["$set"]))
        self._check_unique(updated)
        self.documents[found["_id"]] = updated
        return copy.deepcopy(updated)

    async def find_one_and_delete(self, query: dict):
        found = self._find(query)
        if found is None:
            return None
        return self.documents.pop(found["_id"])

    def aggregate(self, pipeline):
        results = [copy.deepcopy(document) for document in self.documents.values()]
        for stage in pipeline:
            if "$match" in stage:
                results = [document for document in results if _matches(document, stage["$match"])]
            elif "$sort" in stage:
                for field, direction in reversed(list(stage["$sort"].items())):
                    results.sort(key=lambda document: document.get(field), reverse=direction < 0)
            elif "$lookup" in stage:
                lookup = stage["$lookup"]
                foreign = self.foreign.get(lookup["from"], [])
                for document in results:
                    keys = document.get(lookup["localField"], [])
                    document[lookup["as"]] = [
                        copy.deepcopy(other) for other in foreign if other[lookup["foreignField"]] in keys
                    ]
            elif "$project" in stage:
                kept = set(stage["$project"]) | {"_id"}
                results = [{key: value for key, value in document.items() if key in kept} for document in results]
        return _FakeCursor(results)


@pytest.fixture
def users_collection(monkeypatch) -> FakeUserCollection:
    collection = FakeUserCollection()
    monkeypatch.setattr(user_crud, "get_user_collection", lambda: collection)
    return collection


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    directory = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(directory))
    return directory


@pytest.fixture
def client(users_collection, upload_dir) -> TestClient:
    return TestClient(app)


@pytest.fixture
def register(client):
    def _register(files=None, **overrides):
        form = {"name": "ana", "email": "ana@x.com", "password": "abcdefgh", "phone": "123456789"}
        form.update(overrides)
        form = {key: value for key, value in form.items() if value is not None}
        return client.post("/api/v1/users", data=form, files=files)

    return _register


@pytest.fixture
def login(client):
    def _login(user_data: str, password: str) -> str:
        response = client.post("/api/v1/users/login", json={"userData": user_data, "password": password})
        assert response.status_code == 200, response.text
        return response.json()["token"]

    return _login


@pytest.fixture
def admin_token(users_collection, login) -> str:
    asyncio.run(user_crud.create_user(
        UserCreate(name="root", email="root@club.com", password="rootpass1", phone=600000000, role="admin")
    ))
    return login("root", "rootpass1")
