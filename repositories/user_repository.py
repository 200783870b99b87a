"""
User persistence for the account lifecycle.

UserRepository is the protocol AuthService depends on; MongoUserRepository
implements it on the async pymongo driver (`users` collection).

update() takes an optional ``expected`` mapping that is folded into the
filter, turning the write into a compare-and-swap: when another request has
already changed one of those fields, nothing is written and None is returned.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from pymongo import ASCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from errors import EmailAlreadyExistsError
from schemas.models.base import parse_object_id
from schemas.models.user import UserDoc
from shared.datetime_utils import utcnow
from shared.logging import get_logger

log = get_logger(__name__)

USERS_COLLECTION = "users"


class UserRepository(Protocol):
    async def create(self, user: UserDoc) -> UserDoc: ...

    async def find_by_email(self, email: str) -> Optional[UserDoc]: ...

    async def find_by_pending_email(self, email: str) -> Optional[UserDoc]: ...

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]: ...

    async def update(
        self,
        user_id: str,
        fields: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Optional[UserDoc]: ...


class MongoUserRepository:
    def __init__(self, db: AsyncDatabase) -> None:
        self._col: AsyncCollection = db[USERS_COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("email", ASCENDING)], unique=True)
        await self._col.create_index([("pending_new_email", ASCENDING)], sparse=True)
        log.info("user_indexes_ensured", collection=USERS_COLLECTION)

    async def create(self, user: UserDoc) -> UserDoc:
        now = utcnow()
        doc = user.to_mongo()
        doc["created_at"] = doc.get("created_at") or now
        doc["updated_at"] = now
        try:
            result = await self._col.insert_one(doc)
        except DuplicateKeyError as exc:
            # Race: email registered between the existence check and the insert
            log.warning("user_create_failed", reason="duplicate_email")
            raise EmailAlreadyExistsError() from exc
        doc["_id"] = result.inserted_id
        return UserDoc.from_mongo(doc)

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        return UserDoc.from_mongo(await self._col.find_one({"email": email}))

    async def find_by_pending_email(self, email: str) -> Optional[UserDoc]:
        return UserDoc.from_mongo(await self._col.find_one({"pending_new_email": email}))

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        return UserDoc.from_mongo(await self._col.find_one({"_id": oid}))

    async def update(
        self,
        user_id: str,
        fields: Mapping[str, Any],
        *,
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Optional[UserDoc]:
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        query: dict[str, Any] = {"_id": oid}
        if expected:
            query.update(expected)
        try:
            doc = await self._col.find_one_and_update(
                query,
                {"$set": {**fields, "updated_at": utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            # Only the unique email index can collide (email-change promotion)
            log.warning("user_update_failed", reason="duplicate_email", user_id=user_id)
            raise EmailAlreadyExistsError() from exc
        return UserDoc.from_mongo(doc)
