import logging

from pymongo import MongoClient
from pymongo.errors import ConnectionFailure

from app.core.config import MONGO_URI, MONGO_DB_NAME

logger = logging.getLogger(__name__)

# MongoClient connects lazily; nothing touches the server until the first query
client = MongoClient(MONGO_URI, serverSelectionTimeoutMS=5000)
db = client[MONGO_DB_NAME]

# Collections
users_collection = db["users"]
fact_checks_collection = db["fact_checks"]
settings_collection = db["settings"]


def check_connection() -> bool:
    """Ping MongoDB and log the outcome."""
    try:
        client.admin.command('ping')
        logger.info("MongoDB connection is successful")
        return True
    except ConnectionFailure as e:
        logger.error("MongoDB connection failed: %s", e)
        return False
