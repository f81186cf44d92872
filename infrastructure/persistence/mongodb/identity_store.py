"""MongoDB implementation of IIdentityStore."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from domain.identity.core.entities.identity import Identity
from domain.identity.core.entities.subscription_event import SubscriptionEvent
from domain.identity.core.exceptions.identity_errors import ConflictError, NotFoundError
from domain.identity.core.ports.identity_store import IIdentityStore
from domain.identity.core.value_objects.email import Email
from domain.identity.core.value_objects.identity_id import IdentityId
from domain.identity.core.value_objects.enums import (
    AccountStatus,
    PaymentStatus,
    Role,
    SubscriptionStatus,
)
from domain.identity.core.value_objects.system_settings import (
    DEFAULT_SETTINGS,
    SystemSettings,
)

from .base import MongoBaseRepository

logger = logging.getLogger(__name__)

SETTINGS_COLLECTION = "system_settings"
HISTORY_COLLECTION = "subscription_history"
SESSIONS_COLLECTION = "sessions"
DEPENDENT_COLLECTIONS = ("meals", "favorites")


class MongoIdentityStore(MongoBaseRepository[Identity], IIdentityStore):
    """Durable identity store backed by MongoDB (motor).

    Collections:
    - identities: one document per identity, ``_id`` = identity id,
      ``password_hash`` stored alongside and never mapped to the entity
    - system_settings: ``{_id: key, value}``
    - subscription_history: append-only audit rows
    - sessions: active sessions per identity
    - meals / favorites: dependent data, deleted by ``user_id``

    Storage-level guarantees (see ``initialize``):
    - unique index on ``email``
    - partial unique index on ``role`` for ``role == "superadmin"``
    """

    backend_name = "mongodb"

    @property
    def collection_name(self) -> str:
        """MongoDB collection name."""
        return "identities"

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def to_document(self, entity: Identity) -> Dict[str, Any]:
        """Convert Identity entity to MongoDB document.

        Args:
            entity: Domain entity

        Returns:
            dict: MongoDB document (without password hash)
        """
        return {
            "_id": str(entity.identity_id),
            "email": entity.email.value,
            "name": entity.name,
            "role": entity.role.value,
            "status": entity.status.value,
            "subscription_status": entity.subscription_status.value,
            "payment_status": entity.payment_status.value,
            "age": entity.age,
            "weight": entity.weight,
            "height": entity.height,
            "activity_level": entity.activity_level,
            "goal": entity.goal,
            "daily_goal": entity.daily_goal,
            "target_weight": entity.target_weight,
            "subscription_end_date": self.datetime_to_iso(entity.subscription_end_date),
            "is_demo": entity.is_demo,
            "created_at": self.datetime_to_iso(entity.created_at),
            "updated_at": self.datetime_to_iso(entity.updated_at),
            "last_login": self.datetime_to_iso(entity.last_login),
        }

    def from_document(self, doc: Dict[str, Any]) -> Identity:
        """Convert MongoDB document to Identity entity.

        Args:
            doc: MongoDB document

        Returns:
            Identity: Domain entity
        """
        return Identity(
            identity_id=IdentityId(doc["_id"]),
            email=Email(doc["email"]),
            name=doc.get("name", ""),
            role=Role(doc.get("role", Role.USER.value)),
            status=AccountStatus(doc.get("status", AccountStatus.ACTIVE.value)),
            subscription_status=SubscriptionStatus(
                doc.get("subscription_status", SubscriptionStatus.FREE.value)
            ),
            payment_status=PaymentStatus(doc.get("payment_status", PaymentStatus.NONE.value)),
            age=doc.get("age"),
            weight=doc.get("weight"),
            height=doc.get("height"),
            activity_level=doc.get("activity_level"),
            goal=doc.get("goal"),
            daily_goal=doc.get("daily_goal"),
            target_weight=doc.get("target_weight"),
            subscription_end_date=self.iso_to_datetime(doc.get("subscription_end_date")),
            is_demo=doc.get("is_demo", False),
            created_at=self.iso_to_datetime(doc["created_at"]) or datetime.now(timezone.utc),
            updated_at=self.iso_to_datetime(doc["updated_at"]) or datetime.now(timezone.utc),
            last_login=self.iso_to_datetime(doc.get("last_login")),
        )

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    async def ping(self) -> None:
        try:
            await self._db.command("ping")
        except PyMongoError as e:
            raise self._failure("ping", "admin", e) from e

    async def initialize(self) -> None:
        """Create indexes and default settings if absent."""
        try:
            await self.collection.create_index(
                [("email", ASCENDING)], name="idx_email_unique", unique=True
            )
            await self.collection.create_index(
                [("role", ASCENDING)],
                name="idx_single_superadmin",
                unique=True,
                partialFilterExpression={"role": Role.SUPERADMIN.value},
            )
            await self._db[HISTORY_COLLECTION].create_index(
                [("user_id", ASCENDING), ("timestamp", DESCENDING)], name="idx_user_timestamp"
            )
            await self._db[SESSIONS_COLLECTION].create_index(
                [("identity_id", ASCENDING)], name="idx_identity"
            )
        except PyMongoError as e:
            raise self._failure("create_index", None, e) from e

        for key, value in DEFAULT_SETTINGS.items():
            await self._update_one(
                {"_id": key},
                {"$setOnInsert": {"value": value}},
                upsert=True,
                collection=SETTINGS_COLLECTION,
            )

    # ------------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------------

    async def find_by_email(self, email: str) -> Optional[Identity]:
        doc = await self._find_one({"email": Email.normalize(email)})
        return self.from_document(doc) if doc else None

    async def find_by_id(self, identity_id: str) -> Optional[Identity]:
        doc = await self._find_one({"_id": identity_id})
        return self.from_document(doc) if doc else None

    async def insert(self, identity: Identity, secret_hash: str) -> None:
        document = self.to_document(identity)
        document["password_hash"] = secret_hash
        try:
            await self._insert_one(document)
        except DuplicateKeyError as e:
            raise ConflictError(self._conflict_reason(e)) from e

    async def update(self, identity: Identity) -> None:
        identity_id = str(identity.identity_id)
        if await self._replace({"_id": identity_id}, identity) == 0:
            raise NotFoundError(identity_id)

    async def update_if_unchanged(self, identity: Identity, expected: Identity) -> bool:
        filter_dict = {
            "_id": str(identity.identity_id),
            "role": expected.role.value,
            "status": expected.status.value,
            "subscription_status": expected.subscription_status.value,
        }
        return await self._replace(filter_dict, identity) == 1

    async def touch_last_login(self, identity_id: str, at: datetime) -> None:
        await self._update_one(
            {"_id": identity_id}, {"$set": {"last_login": self.datetime_to_iso(at)}}
        )

    async def _replace(self, filter_dict: Dict[str, Any], identity: Identity) -> int:
        """``$set`` every field except id and last_login on the first match."""
        document = self.to_document(identity)
        del document["_id"]
        del document["last_login"]
        try:
            return await self._update_one(filter_dict, {"$set": document})
        except DuplicateKeyError as e:
            raise ConflictError(self._conflict_reason(e)) from e

    async def delete(self, identity_id: str) -> bool:
        return await self._delete_many({"_id": identity_id}) > 0

    async def list_by_role(self, role: Role) -> List[Identity]:
        docs = await self._find_many({"role": role.value})
        return [self.from_document(doc) for doc in docs]

    async def list_all(self) -> List[Identity]:
        docs = await self._find_many({}, sort=[("created_at", DESCENDING)])
        return [self.from_document(doc) for doc in docs]

    async def get_secret_hash(self, identity_id: str) -> Optional[str]:
        doc = await self._find_one({"_id": identity_id}, projection={"password_hash": 1})
        return doc.get("password_hash") if doc else None

    async def delete_dependent_records(self, identity_id: str) -> int:
        removed = 0
        for name in DEPENDENT_COLLECTIONS:
            removed += await self._delete_many({"user_id": identity_id}, collection=name)
        return removed

    @staticmethod
    def _conflict_reason(error: DuplicateKeyError) -> str:
        details = error.details or {}
        key_pattern = details.get("keyPattern") or {}
        if "role" in key_pattern:
            return "superadmin_exists"
        if "email" in key_pattern:
            return "email_exists"
        return "identity_exists"

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def read_settings(self) -> SystemSettings:
        docs = await self._find_many({}, collection=SETTINGS_COLLECTION)
        return SystemSettings.from_mapping({doc["_id"]: doc.get("value") for doc in docs})

    async def write_setting(self, key: str, value: Any) -> None:
        await self._update_one(
            {"_id": key},
            {"$set": {"value": value, "updated_at": datetime.now(timezone.utc).isoformat()}},
            upsert=True,
            collection=SETTINGS_COLLECTION,
        )

    async def compare_and_set_setting(self, key: str, expected: Any, value: Any) -> bool:
        """Conditional write with find_one_and_update.

        A missing document is created (upsert). When the document exists
        with a different value the upsert collides on ``_id`` and the write
        is reported as lost.
        """
        try:
            doc = await self._db[SETTINGS_COLLECTION].find_one_and_update(
                {"_id": key, "value": expected},
                {"$set": {"value": value, "updated_at": datetime.now(timezone.utc).isoformat()}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            return False
        except PyMongoError as e:
            raise self._failure("find_one_and_update", SETTINGS_COLLECTION, e) from e
        return doc is not None

    # ------------------------------------------------------------------
    # Subscription audit log
    # ------------------------------------------------------------------

    async def append_subscription_event(self, event: SubscriptionEvent) -> None:
        document = event.to_dict()
        document["_id"] = event.event_id
        await self._insert_one(document, collection=HISTORY_COLLECTION)

    async def list_subscription_events(
        self, user_id: Optional[str] = None, limit: Optional[int] = None
    ) -> List[SubscriptionEvent]:
        filter_dict = {"user_id": user_id} if user_id else {}
        docs = await self._find_many(
            filter_dict,
            sort=[("timestamp", DESCENDING)],
            limit=limit,
            collection=HISTORY_COLLECTION,
        )
        return [SubscriptionEvent.from_dict(doc) for doc in docs]

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def open_session(self, identity_id: str) -> str:
        session_id = str(uuid.uuid4())
        await self._insert_one(
            {
                "_id": session_id,
                "identity_id": identity_id,
                "created_at": datetime.now(timezone.utc).isoformat(),
            },
            collection=SESSIONS_COLLECTION,
        )
        return session_id

    async def invalidate_sessions(self, identity_id: str) -> int:
        removed = await self._delete_many(
            {"identity_id": identity_id}, collection=SESSIONS_COLLECTION
        )
        logger.info(
            "Sessions invalidated",
            extra={"identity_id": identity_id, "count": removed},
        )
        return removed

    async def has_active_session(self, identity_id: str) -> bool:
        return await self._count({"identity_id": identity_id}, collection=SESSIONS_COLLECTION) > 0

    async def has_session(self, identity_id: str, session_id: str) -> bool:
        filter_dict = {"_id": session_id, "identity_id": identity_id}
        return await self._count(filter_dict, collection=SESSIONS_COLLECTION) > 0

    async def close_session(self, session_id: str) -> bool:
        return await self._delete_many({"_id": session_id}, collection=SESSIONS_COLLECTION) > 0
