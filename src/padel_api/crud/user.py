# src/padel_api/crud/user.py

import re
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import FrozenSet, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from padel_api import db
from padel_api.core.config import settings
from padel_api.core.errors import DuplicateUserError, StoreError
from padel_api.core.security import get_password_hash
from padel_api.schemas.user import UserCreate, UserInDB, UserUpdate

UNIQUE_FIELDS = ("name", "email", "phone")


def get_user_collection():
    if db.mongo_client is None:
        raise StoreError("connect", "MongoDB is not connected")
    return db.mongo_client[settings.MONGO_DB_NAME]["users"]


@contextmanager
def _store_errors(operation: str):
    """Turns driver errors into DuplicateUserError / StoreError."""
    try:
        yield
    except DuplicateKeyError as e:
        key_value = (e.details or {}).get("keyValue") or {}
        fields = [field for field in UNIQUE_FIELDS if field in key_value]
        raise DuplicateUserError(fields) from e
    except PyMongoError as e:
        raise StoreError(operation, str(e)) from e


def _object_id(user_id: str) -> Optional[ObjectId]:
    return ObjectId(user_id) if ObjectId.is_valid(user_id) else None


async def create_user(user: UserCreate) -> UserInDB:
    """Hashes the password and inserts a new user."""
    collection = get_user_collection()
    now = datetime.now(timezone.utc)

    user_dict_to_insert = user.model_dump()
    user_dict_to_insert.update(
        password=get_password_hash(user.password),
        padel_matches=[],
        created_at=now,
        updated_at=now,
    )

    with _store_errors("create_user"):
        result = await collection.insert_one(user_dict_to_insert)
        created_user_data = await collection.find_one({"_id": result.inserted_id})
    return UserInDB.model_validate(created_user_data)


async def get_user_by_id(user_id: str) -> Optional[UserInDB]:
    object_id = _object_id(user_id)
    if object_id is None:
        return None
    collection = get_user_collection()
    with _store_errors("get_user_by_id"):
        user_data = await collection.find_one({"_id": object_id})
    if user_data:
        return UserInDB.model_validate(user_data)
    return None


async def get_user_by_identity(name_or_email: str) -> Optional[UserInDB]:
    """Looks a user up by name or by email."""
    collection = get_user_collection()
    with _store_errors("get_user_by_identity"):
        user_data = await collection.find_one(
            {"$or": [{"name": name_or_email}, {"email": name_or_email}]}
        )
    if user_data:
        return UserInDB.model_validate(user_data)
    return None


async def find_matching(
    name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[int] = None,
    exclude_id: Optional[str] = None,
) -> Optional[UserInDB]:
    """Returns a user sharing any of the given values, ignoring `exclude_id`."""
    clauses = [
        {field: value}
        for field, value in (("name", name), ("email", email), ("phone", phone))
        if value is not None
    ]
    if not clauses:
        return None

    query = {"$or": clauses}
    excluded = _object_id(exclude_id) if exclude_id else None
    if excluded is not None:
        query["_id"] = {"$ne": excluded}

    collection = get_user_collection()
    with _store_errors("find_matching"):
        user_data = await collection.find_one(query)
    if user_data:
        return UserInDB.model_validate(user_data)
    return None


async def update_user(user_id: str, user_update: UserUpdate) -> Optional[UserInDB]:
    """
    Writes the supplied fields onto the stored document with one atomic $set,
    so concurrent updates of other fields are not lost.
    A supplied password is plaintext and gets hashed here, once.
    """
    object_id = _object_id(user_id)
    if object_id is None:
        return None
    collection = get_user_collection()
    changes = user_update.model_dump(exclude_none=True)

    if "password" in changes:
        changes["password"] = get_password_hash(changes["password"])
    changes["updated_at"] = datetime.now(timezone.utc)

    with _store_errors("update_user"):
        result = await collection.find_one_and_update(
            {"_id": object_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER
        )
    if result:
        return UserInDB.model_validate(result)
    return None


async def delete_user(user_id: str) -> Optional[UserInDB]:
    object_id = _object_id(user_id)
    if object_id is None:
        return None
    collection = get_user_collection()
    with _store_errors("delete_user"):
        user_to_delete = await collection.find_one_and_delete({"_id": object_id})
    if user_to_delete:
        return UserInDB.model_validate(user_to_delete)
    return None


async def list_users(query: dict, fields: FrozenSet[str]) -> List[dict]:
    """
    Returns the users matching `query`, newest first, reduced to `fields`.
    Match references are expanded from the padelMatches collection.
    """
    pipeline = [{"$match": query}, {"$sort": {"created_at": -1}}]
    if "padel_matches" in fields:
        pipeline.append({
            "$lookup": {
                "from": "padelMatches",
                "localField": "padel_matches",
                "foreignField": "_id",
                "as": "padel_matches",
            }
        })
    pipeline.append({"$project": {field: 1 for field in fields if field != "_id"}})

    collection = get_user_collection()
    with _store_errors("list_users"):
        return await collection.aggregate(pipeline).to_list(length=None)


async def find_users_by_name(name: str, fields: FrozenSet[str]) -> List[dict]:
    """Case-insensitive partial match on the name."""
    return await list_users({"name": {"$regex": re.escape(name), "$options": "i"}}, fields)


async def find_users_by_phone(phone: int, fields: FrozenSet[str]) -> List[dict]:
    return await list_users({"phone": phone}, fields)
