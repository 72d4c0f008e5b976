# helpflow/api/routes/statuses.py
from fastapi import APIRouter

from helpflow.models.status import registry_entries

router = APIRouter()


@router.get("")
async def list_statuses():
    return {"items": [e._asdict() for e in registry_entries()]}
