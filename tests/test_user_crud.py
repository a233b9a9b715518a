import asyncio

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from padel_api import db
from padel_api.core import security
from padel_api.core.errors import DuplicateUserError, StoreError
from padel_api.crud import user as user_crud
from padel_api.schemas.user import UserCreate, UserUpdate
from padel_api.services import user_rules


def _create(**fields):
    data = {'name': 'ana', 'email': 'ana@x.com', 'password': 'abcdefgh', 'phone': 123456789}
    data.update(fields)
    return asyncio.run(user_crud.create_user(UserCreate(**data)))


def test_create_hashes_password_once(users_collection) -> None:
    user = _create()

    stored = users_collection.documents[user.id]
    assert stored['password'] != 'abcdefgh'
    assert security.verify_password('abcdefgh', stored['password'])
    assert stored['role'] == 'user'
    assert stored['padel_matches'] == []
    assert stored['created_at'] == stored['updated_at']


def test_create_translates_unique_index_violation(users_collection) -> None:
    _create()

    with pytest.raises(DuplicateUserError) as excinfo:
        _create(name='other', email='other@x.com')

    assert excinfo.value.fields == ['phone']


def test_lookup_by_identity_and_id(users_collection) -> None:
    user = _create()

    assert asyncio.run(user_crud.get_user_by_identity('ana')).id == user.id
    assert asyncio.run(user_crud.get_user_by_identity('ana@x.com')).id == user.id
    assert asyncio.run(user_crud.get_user_by_identity('nobody')) is None
    assert asyncio.run(user_crud.get_user_by_id(str(user.id))).name == 'ana'
    assert asyncio.run(user_crud.get_user_by_id('not-an-object-id')) is None


def test_find_matching_ignores_missing_values_and_excluded_id(users_collection) -> None:
    user = _create()

    assert asyncio.run(user_crud.find_matching()) is None
    assert asyncio.run(user_crud.find_matching(phone=123456789)).id == user.id
    assert asyncio.run(user_crud.find_matching(email='ana@x.com', exclude_id=str(user.id))) is None


def test_update_merges_and_rehashes_only_new_password(users_collection) -> None:
    user = _create()
    original_hash = users_collection.documents[user.id]['password']

    renamed = asyncio.run(user_crud.update_user(str(user.id), UserUpdate(name='ana maria')))
    assert renamed.name == 'ana maria'
    assert renamed.email == 'ana@x.com'
    assert renamed.password == original_hash

    updated = asyncio.run(user_crud.update_user(str(user.id), UserUpdate(password='newsecret1')))
    assert updated.password != 'newsecret1'
    assert security.verify_password('newsecret1', updated.password)
    assert updated.updated_at >= updated.created_at


def test_update_sets_only_supplied_fields(users_collection) -> None:
    user = _create()
    # another writer changes the phone after the caller loaded the record
    users_collection.documents[user.id]['phone'] = 987654321

    renamed = asyncio.run(user_crud.update_user(str(user.id), UserUpdate(name='ana maria')))

    assert set(users_collection.updates[-1]['$set']) == {'name', 'updated_at'}
    assert renamed.phone == 987654321
    assert users_collection.documents[user.id]['phone'] == 987654321


def test_update_and_delete_missing_user(users_collection) -> None:
    assert asyncio.run(user_crud.update_user(str(ObjectId()), UserUpdate(name='x'))) is None
    assert asyncio.run(user_crud.delete_user(str(ObjectId()))) is None
    assert asyncio.run(user_crud.delete_user('bad-id')) is None


def test_delete_removes_record(users_collection) -> None:
    user = _create()

    deleted = asyncio.run(user_crud.delete_user(str(user.id)))

    assert deleted.id == user.id
    assert asyncio.run(user_crud.get_user_by_id(str(user.id))) is None


def test_find_by_name_escapes_regex(users_collection) -> None:
    _create()
    _create(name='a.b', email='ab@x.com', phone=222333444)

    found = asyncio.run(user_crud.find_users_by_name('a.', user_rules.PUBLIC_FIELDS))

    assert [user['name'] for user in found] == ['a.b']
    assert set(found[0]) <= user_rules.PUBLIC_FIELDS


def test_driver_errors_become_store_errors(monkeypatch) -> None:
    class BrokenCollection:
        async def find_one(self, query):
            raise PyMongoError('connection reset')

    monkeypatch.setattr(user_crud, 'get_user_collection', lambda: BrokenCollection())

    with pytest.raises(StoreError) as excinfo:
        asyncio.run(user_crud.get_user_by_identity('ana'))

    assert excinfo.value.operation == 'get_user_by_identity'
    assert 'connection reset' in str(excinfo.value)


def test_collection_requires_connection(monkeypatch) -> None:
    monkeypatch.setattr(db, 'mongo_client', None)

    with pytest.raises(StoreError):
        user_crud.get_user_collection()
