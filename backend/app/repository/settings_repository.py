from datetime import datetime

from pymongo import ReturnDocument
from pymongo.collection import Collection

from app.core.config import DEFAULT_FREE_DAILY_LIMIT, DEFAULT_PREMIUM_DAILY_LIMIT
from app.models.quota import GlobalLimits, GlobalLimitsUpdate

GLOBAL_SETTINGS_ID = "global"


class SettingsRepository:
    """
    Single document holding the global daily limits.

    Never cached: every read goes to the database so admin changes apply
    on the very next quota check.
    """

    def __init__(self, collection: Collection):
        self.collection = collection

    def _defaults(self) -> dict:
        return {
            "free_daily_limit": DEFAULT_FREE_DAILY_LIMIT,
            "premium_daily_limit": DEFAULT_PREMIUM_DAILY_LIMIT,
        }

    def get_limits(self) -> GlobalLimits:
        """
        Read the current limits, inserting the defaults on first use.

        Returns:
            GlobalLimits
        """
        doc = self.collection.find_one_and_update(
            {"_id": GLOBAL_SETTINGS_ID},
            {"$setOnInsert": {**self._defaults(), "updated_at": datetime.utcnow()}},
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return GlobalLimits(
            free_daily_limit=doc["free_daily_limit"],
            premium_daily_limit=doc["premium_daily_limit"],
        )

    def update_limits(self, update: GlobalLimitsUpdate) -> GlobalLimits:
        """
        Apply a partial update to the limits.

        Args:
            update: Fields to change; unset fields keep their value

        Returns:
            GlobalLimits after the update
        """
        changes = update.model_dump(exclude_none=True)
        operation = {"$set": {**changes, "updated_at": datetime.utcnow()}}

        missing_defaults = {k: v for k, v in self._defaults().items() if k not in changes}
        if missing_defaults:
            operation["$setOnInsert"] = missing_defaults

        self.collection.update_one({"_id": GLOBAL_SETTINGS_ID}, operation, upsert=True)
        return self.get_limits()
