# helpflow/core/indexes.py
import logging

from helpflow.core.config import settings
from helpflow.models.status import STATUS_SYNONYMS

logger = logging.getLogger(__name__)


async def ensure_core_indexes(db):
    requests = db[settings.requests_collection]
    await requests.create_index("id", unique=True)
    await requests.create_index([("status", 1)])
    await requests.create_index([("client_id", 1)])
    await requests.create_index([("developer_id", 1)])
    await requests.create_index([("created_at", -1)])
    await requests.create_index([("completion_date", -1)])

    # history: append-only, read per request in changed_at order
    history = db[settings.history_collection]
    await history.create_index("id", unique=True)
    await history.create_index([("request_id", 1), ("changed_at", 1)])
    await history.create_index([("changed_by", 1), ("changed_at", 1)])

    # one application per developer and request
    matches = db[settings.matches_collection]
    await matches.create_index("id", unique=True)
    await matches.create_index([("request_id", 1), ("developer_id", 1)], unique=True)
    await matches.create_index([("developer_id", 1), ("created_at", -1)])


async def migrate_request_statuses(db):
    """Rewrites legacy status spellings stored by older clients onto canonical codes."""
    requests = db[settings.requests_collection]
    fixed = 0
    for legacy, canonical in STATUS_SYNONYMS.items():
        res = await requests.update_many({"status": legacy}, {"$set": {"status": canonical.value}})
        fixed += res.modified_count
    if fixed:
        logger.info("migrate_request_statuses: %d requests normalized", fixed)


async def startup_tasks(db):
    await ensure_core_indexes(db)
    await migrate_request_statuses(db)
