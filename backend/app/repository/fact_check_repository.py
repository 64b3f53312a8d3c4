import math
from datetime import datetime
from typing import Dict, Optional, Tuple, List

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.collection import Collection

from app.models.verdict import StoredFactCheck, VerdictRecord, VerdictStats


class FactCheckRepository:
    """Per-user verdict history."""

    def __init__(self, collection: Collection):
        self.collection = collection

    def ensure_indexes(self):
        self.collection.create_index([("user_id", 1), ("saved_at", DESCENDING)])

    def save(self, user_id: str, record: VerdictRecord) -> StoredFactCheck:
        """
        Persist a verdict for a user.

        Args:
            user_id (str): Owner
            record (VerdictRecord): Verdict to store

        Returns:
            StoredFactCheck: The stored record with its new id
        """
        doc = record.model_dump()
        doc["verdict"] = record.verdict.value
        doc["_id"] = str(ObjectId())
        doc["user_id"] = user_id
        doc["saved_at"] = datetime.utcnow()

        self.collection.insert_one(doc)
        return self._to_model(doc)

    def get(self, user_id: str, fact_check_id: str) -> Optional[StoredFactCheck]:
        doc = self.collection.find_one({"_id": fact_check_id, "user_id": user_id})
        return self._to_model(doc) if doc else None

    def list(self, user_id: str, page: int = 1, limit: int = 20) -> Tuple[List[StoredFactCheck], int]:
        """
        One page of a user's history, newest first.

        Args:
            user_id (str): Owner
            page (int): 1-based page number
            limit (int): Page size

        Returns:
            tuple: (records on the page, total count)
        """
        query = {"user_id": user_id}
        cursor = (
            self.collection.find(query)
            .sort([("saved_at", DESCENDING), ("_id", DESCENDING)])
            .skip((page - 1) * limit)
            .limit(limit)
        )
        total = self.collection.count_documents(query)
        return [self._to_model(doc) for doc in cursor], total

    def delete(self, user_id: str, fact_check_id: str) -> bool:
        result = self.collection.delete_one({"_id": fact_check_id, "user_id": user_id})
        return result.deleted_count > 0

    def delete_all(self, user_id: str) -> int:
        result = self.collection.delete_many({"user_id": user_id})
        return result.deleted_count

    def stats(self, user_id: str) -> VerdictStats:
        """Count a user's records per verdict."""
        pipeline = [
            {"$match": {"user_id": user_id}},
            {"$group": {"_id": "$verdict", "count": {"$sum": 1}}},
        ]
        verdicts: Dict[str, int] = {}
        for row in self.collection.aggregate(pipeline):
            verdicts[row["_id"]] = row["count"]
        return VerdictStats(total=sum(verdicts.values()), verdicts=verdicts)

    @staticmethod
    def total_pages(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0

    def _to_model(self, doc: dict) -> StoredFactCheck:
        return StoredFactCheck.model_validate({**doc, "id": doc["_id"]})
