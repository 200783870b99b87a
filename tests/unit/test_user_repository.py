"""Unit tests for MongoUserRepository against a mocked async collection."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from errors import EmailAlreadyExistsError
from repositories.user_repository import MongoUserRepository
from schemas.models.user import UserDoc


# ── Helpers ───────────────────────────────────────────────────────────────────


def _make_repo():
    col = MagicMock()
    col.insert_one = AsyncMock()
    col.find_one = AsyncMock(return_value=None)
    col.find_one_and_update = AsyncMock(return_value=None)
    col.create_index = AsyncMock()
    db = MagicMock()
    db.__getitem__.return_value = col
    return MongoUserRepository(db), col, db


def _doc(**overrides):
    base = {
        "_id": ObjectId(),
        "email": "a@b.com",
        "password_hash": "$argon2id$hash",
        "email_verified": False,
        "verify_token": "ab12cd",
        "role": "USER",
        "is_active": True,
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    base.update(overrides)
    return base


# ── Indexes ───────────────────────────────────────────────────────────────────


class TestEnsureIndexes:
    async def test_uses_users_collection(self):
        _, _, db = _make_repo()
        db.__getitem__.assert_called_with("users")

    async def test_unique_email_index(self):
        repo, col, _ = _make_repo()
        await repo.ensure_indexes()
        calls = col.create_index.await_args_list
        assert any(c.args[0] == [("email", 1)] and c.kwargs.get("unique") for c in calls)
        assert any(c.args[0] == [("pending_new_email", 1)] for c in calls)


# ── create ────────────────────────────────────────────────────────────────────


class TestCreate:
    async def test_inserts_and_returns_with_id(self):
        repo, col, _ = _make_repo()
        new_id = ObjectId()
        col.insert_one.return_value = MagicMock(inserted_id=new_id)
        user = UserDoc(email="a@b.com", password_hash="h", verify_token="ab12cd")

        created = await repo.create(user)

        assert created.id == new_id
        inserted = col.insert_one.await_args.args[0]
        assert "_id" not in inserted or inserted["_id"] == new_id
        assert inserted["email"] == "a@b.com"
        assert inserted["email_verified"] is False
        assert inserted["created_at"] is not None
        assert inserted["updated_at"] is not None

    async def test_duplicate_maps_to_email_already_exists(self):
        repo, col, _ = _make_repo()
        col.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")
        with pytest.raises(EmailAlreadyExistsError):
            await repo.create(UserDoc(email="a@b.com", password_hash="h"))


# ── finders ───────────────────────────────────────────────────────────────────


class TestFind:
    async def test_find_by_email(self):
        repo, col, _ = _make_repo()
        col.find_one.return_value = _doc()
        user = await repo.find_by_email("a@b.com")
        assert isinstance(user, UserDoc)
        assert user.email == "a@b.com"
        col.find_one.assert_awaited_once_with({"email": "a@b.com"})

    async def test_find_by_email_missing(self):
        repo, _, _ = _make_repo()
        assert await repo.find_by_email("nobody@b.com") is None

    async def test_find_by_pending_email(self):
        repo, col, _ = _make_repo()
        col.find_one.return_value = _doc(pending_new_email="new@b.com")
        user = await repo.find_by_pending_email("new@b.com")
        assert user.pending_new_email == "new@b.com"
        col.find_one.assert_awaited_once_with({"pending_new_email": "new@b.com"})

    async def test_find_by_id(self):
        repo, col, _ = _make_repo()
        oid = ObjectId()
        col.find_one.return_value = _doc(_id=oid)
        user = await repo.find_by_id(str(oid))
        assert user.user_id == str(oid)
        col.find_one.assert_awaited_once_with({"_id": oid})

    async def test_find_by_invalid_id(self):
        repo, col, _ = _make_repo()
        assert await repo.find_by_id("not-an-objectid") is None
        col.find_one.assert_not_awaited()


# ── update ────────────────────────────────────────────────────────────────────


class TestUpdate:
    async def test_sets_fields_and_updated_at(self):
        repo, col, _ = _make_repo()
        oid = ObjectId()
        col.find_one_and_update.return_value = _doc(_id=oid, email_verified=True)

        user = await repo.update(str(oid), {"email_verified": True})

        assert user.email_verified is True
        query, update = col.find_one_and_update.await_args.args
        assert query == {"_id": oid}
        assert update["$set"]["email_verified"] is True
        assert "updated_at" in update["$set"]
        assert col.find_one_and_update.await_args.kwargs["return_document"] is ReturnDocument.AFTER

    async def test_expected_is_folded_into_filter(self):
        repo, col, _ = _make_repo()
        oid = ObjectId()
        await repo.update(
            str(oid), {"refresh_token_hash": "new"}, expected={"refresh_token_hash": "old"}
        )
        query, _ = col.find_one_and_update.await_args.args
        assert query == {"_id": oid, "refresh_token_hash": "old"}

    async def test_lost_race_returns_none(self):
        repo, col, _ = _make_repo()
        col.find_one_and_update.return_value = None
        result = await repo.update(
            str(ObjectId()), {"verify_token": None}, expected={"verify_token": "ab12cd"}
        )
        assert result is None

    async def test_invalid_id_returns_none(self):
        repo, col, _ = _make_repo()
        assert await repo.update("bogus", {"email_verified": True}) is None
        col.find_one_and_update.assert_not_awaited()

    async def test_duplicate_email_maps_to_conflict(self):
        repo, col, _ = _make_repo()
        col.find_one_and_update.side_effect = DuplicateKeyError("E11000 duplicate key")
        with pytest.raises(EmailAlreadyExistsError):
            await repo.update(str(ObjectId()), {"email": "taken@b.com"})
