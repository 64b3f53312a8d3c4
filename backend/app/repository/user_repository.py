from pymongo import ReturnDocument
from pymongo.collection import Collection
from typing import Optional, Dict, Any
from datetime import datetime
from bson import ObjectId
from bson.errors import InvalidId

from app.models.quota import PlanTier, QuotaState


def _object_id(user_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError):
        return None


class UserRepository:
    """Repository for user data operations in MongoDB"""

    def __init__(self, collection: Collection):
        """
        Initialize the repository with a MongoDB collection

        Args:
            collection: MongoDB collection for users
        """
        self.collection = collection

    def ensure_indexes(self):
        """Create unique index on email"""
        self.collection.create_index("email", unique=True)

    def create_user(self, name: str, email: str, password_hash: str) -> Dict[str, Any]:
        """
        Create a new user in the database

        Args:
            name: User's name
            email: User's email (must be unique)
            password_hash: Hashed password

        Returns:
            Created user document
        """
        now = datetime.utcnow()
        user_doc = {
            "name": name,
            "email": email.lower(),  # Store emails in lowercase for consistency
            "password_hash": password_hash,
            "plan": PlanTier.FREE.value,
            "daily_requests_count": 0,
            "last_request_date": None,
            "fact_checks_count": 0,
            "created_at": now,
            "updated_at": now
        }

        result = self.collection.insert_one(user_doc)
        user_doc["_id"] = result.inserted_id
        return user_doc

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """
        Find a user by email

        Args:
            email: User's email

        Returns:
            User document if found, None otherwise
        """
        return self.collection.find_one({"email": email.lower()})

    def find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        """
        Find a user by ID

        Args:
            user_id: User's ObjectId as string

        Returns:
            User document if found, None otherwise
        """
        oid = _object_id(user_id)
        if oid is None:
            return None
        return self.collection.find_one({"_id": oid})

    def email_exists(self, email: str) -> bool:
        """
        Check if an email already exists

        Args:
            email: Email to check

        Returns:
            True if email exists, False otherwise
        """
        return self.collection.count_documents({"email": email.lower()}) > 0

    def get_quota_state(self, user_id: str) -> Optional[QuotaState]:
        """
        Read the user's quota counter

        Args:
            user_id: User's ObjectId as string

        Returns:
            QuotaState, or None for an unknown user
        """
        user = self.find_by_id(user_id)
        if user is None:
            return None
        return QuotaState(
            daily_requests_count=user.get("daily_requests_count") or 0,
            # None until the first counted request
            last_request_date=user.get("last_request_date") or datetime.min,
            plan=user.get("plan") or PlanTier.FREE.value,
        )

    def reset_daily_count_if_stale(self, user_id: str, day_start: datetime, now: datetime) -> bool:
        """
        Zero the counter if the last counted request is older than day_start.

        The date condition lives in the filter, so of two concurrent callers
        on a new day only the first one resets.

        Args:
            user_id: User's ObjectId as string
            day_start: Midnight of the current day
            now: Current time

        Returns:
            True if the counter was reset
        """
        oid = _object_id(user_id)
        if oid is None:
            return False
        result = self.collection.update_one(
            {
                "_id": oid,
                "$or": [
                    {"last_request_date": {"$lt": day_start}},
                    {"last_request_date": None},
                ],
            },
            {"$set": {"daily_requests_count": 0, "last_request_date": now}}
        )
        return result.modified_count > 0

    def try_consume(self, user_id: str, limit: Optional[int], now: datetime) -> Optional[QuotaState]:
        """
        Atomically count one request, refusing once the ceiling is reached.

        Args:
            user_id: User's ObjectId as string
            limit: Daily ceiling, None for no ceiling
            now: Current time

        Returns:
            Updated QuotaState, or None if the ceiling was already reached
        """
        oid = _object_id(user_id)
        if oid is None:
            return None

        query = {"_id": oid}
        if limit is not None:
            query["daily_requests_count"] = {"$lt": limit}

        user = self.collection.find_one_and_update(
            query,
            {
                "$inc": {"daily_requests_count": 1},
                "$set": {"last_request_date": now}
            },
            return_document=ReturnDocument.AFTER
        )
        if user is None:
            return None
        return QuotaState(
            daily_requests_count=user["daily_requests_count"],
            last_request_date=user["last_request_date"],
            plan=user.get("plan") or PlanTier.FREE.value,
        )

    def set_plan(self, user_id: str, plan: PlanTier) -> Optional[Dict[str, Any]]:
        """
        Change the user's plan tier

        Args:
            user_id: User's ObjectId as string
            plan: New plan

        Returns:
            Updated user document, None if not found
        """
        oid = _object_id(user_id)
        if oid is None:
            return None
        return self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": {"plan": plan.value, "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER
        )

    def adjust_fact_checks_count(self, user_id: str, delta: int):
        oid = _object_id(user_id)
        if oid is None:
            return
        self.collection.update_one({"_id": oid}, {"$inc": {"fact_checks_count": delta}})

    def reset_fact_checks_count(self, user_id: str):
        oid = _object_id(user_id)
        if oid is None:
            return
        self.collection.update_one({"_id": oid}, {"$set": {"fact_checks_count": 0}})

    def update_profile(self, user_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply profile changes

        Args:
            user_id: User's ObjectId as string
            changes: Field values to set

        Returns:
            Updated user document, None if not found
        """
        oid = _object_id(user_id)
        if oid is None:
            return None
        return self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": {**changes, "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER
        )

    def set_password_hash(self, user_id: str, password_hash: str) -> bool:
        oid = _object_id(user_id)
        if oid is None:
            return False
        result = self.collection.update_one(
            {"_id": oid},
            {"$set": {"password_hash": password_hash, "updated_at": datetime.utcnow()}}
        )
        return result.matched_count > 0

    def set_subscription(
        self,
        user_id: str,
        plan: PlanTier,
        status: str,
        expires_at: Optional[datetime] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Record a subscription change reported by the store

        Args:
            user_id: User's ObjectId as string
            plan: Plan tier the user is now on
            status: Subscription status (active, canceled, past_due, none)
            expires_at: End of the paid period, if known

        Returns:
            Updated user document, None if not found
        """
        oid = _object_id(user_id)
        if oid is None:
            return None
        changes = {"plan": plan.value, "subscription_status": status, "updated_at": datetime.utcnow()}
        if expires_at is not None:
            changes["premium_expires_at"] = expires_at
        return self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": changes},
            return_document=ReturnDocument.AFTER
        )

    def delete_user(self, user_id: str) -> bool:
        oid = _object_id(user_id)
        if oid is None:
            return False
        return self.collection.delete_one({"_id": oid}).deleted_count > 0
