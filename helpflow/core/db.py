# helpflow/core/db.py
from typing import Optional

import certifi
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from helpflow.core.config import settings

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


def get_client() -> AsyncIOMotorClient:
    """
    Single Motor client. TLS uses the certifi CA bundle so mongodb+srv
    (Atlas) works on every platform; set MONGO_TLS=false for a plain local mongod.
    """
    global _client
    if _client is None:
        kwargs = {"serverSelectionTimeoutMS": 20000}
        if settings.mongo_tls:
            kwargs.update(tls=True, tlsCAFile=certifi.where())
        _client = AsyncIOMotorClient(settings.mongo_url, **kwargs)
    return _client


def get_db() -> AsyncIOMotorDatabase:
    global _db
    if _db is None:
        _db = get_client()[settings.db_name]
    return _db


async def close_db() -> None:
    """Closes the global client. Called from helpflow.main on shutdown."""
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
