"""
Database connection management.
Handles the MongoDB client and the job collection handle.
"""

import logging

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.write_concern import WriteConcern

from leasequeue.config import Settings, get_settings
from leasequeue.db.models import JOB_INDEXES

logger = logging.getLogger(__name__)

# Global client instance
_client: MongoClient | None = None


def get_client(settings: Settings | None = None) -> MongoClient:
    """
    Get or create the MongoDB client.

    Returns:
        MongoClient: The shared client instance.
    """
    global _client
    if _client is None:
        settings = settings or get_settings()
        _client = MongoClient(
            settings.mongodb_url,
            serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms,
        )
        logger.info("MongoDB client created", extra={"database": settings.mongodb_database})
    return _client


def build_write_concern(settings: Settings) -> WriteConcern:
    """
    Build the write concern applied to every queue mutation.

    A reservation acknowledged by fewer nodes than this can be lost on
    failover and claimed a second time.
    """
    w: str | int = settings.queue_write_concern
    if w != "majority":
        w = int(w)
    return WriteConcern(w=w, j=settings.queue_journal, wtimeout=settings.queue_wtimeout_ms)


def get_collection(
    settings: Settings | None = None,
    client: MongoClient | None = None,
) -> Collection:
    """
    Get the job collection with the configured write concern.

    Args:
        settings: Settings to use. Defaults to the cached settings.
        client: Client to use. Defaults to the shared client.

    Returns:
        Collection: The job collection.
    """
    settings = settings or get_settings()
    client = client or get_client(settings)
    return client[settings.mongodb_database].get_collection(
        settings.queue_collection,
        write_concern=build_write_concern(settings),
    )


def ensure_indexes(collection: Collection) -> list[str]:
    """
    Create the indexes the claim and reclaim queries rely on.
    Safe to call on every startup.

    Returns:
        Names of the indexes.
    """
    names = collection.create_indexes(JOB_INDEXES)
    logger.info("Job indexes ensured", extra={"collection": collection.name, "indexes": names})
    return names


def close_client() -> None:
    """
    Close the MongoDB client.
    Should be called on process shutdown.
    """
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB client closed")
