# helpflow/api/routes/applications.py
from fastapi import APIRouter, Depends, HTTPException

from helpflow.api.deps import get_current_actor, get_engine, get_repository, require_role
from helpflow.api.routes.requests import load_visible
from helpflow.models.common import Role
from helpflow.models.request import ApplicationPayload, DecisionPayload
from helpflow.services import match_service

router = APIRouter()


@router.post("/requests/{request_id}/applications", status_code=201)
async def apply(request_id: str, payload: ApplicationPayload, current=Depends(require_role([Role.DEVELOPER])), engine=Depends(get_engine)):
    try:
        out = await match_service.submit_application(engine, request_id, current["id"], payload)
    except LookupError as e:
        raise HTTPException(404, str(e))
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"application": out.match, "transitions": out.transitions}


@router.get("/requests/{request_id}/applications")
async def list_applications(request_id: str, current=Depends(get_current_actor), repo=Depends(get_repository)):
    await load_visible(request_id, current, repo)
    items = await repo.list_matches(request_id)
    # developers only see their own application
    if current["role"] == Role.DEVELOPER:
        items = [m for m in items if m.developer_id == current["id"]]
    return {"items": items}


@router.post("/applications/{match_id}/decision")
async def decide(match_id: str, payload: DecisionPayload, current=Depends(require_role([Role.CLIENT])), engine=Depends(get_engine)):
    try:
        out = await match_service.decide_application(engine, match_id, current["id"], payload.status)
    except LookupError as e:
        raise HTTPException(404, str(e))
    except PermissionError as e:
        raise HTTPException(403, str(e))
    if out.transition is not None and not out.transition.ok:
        raise HTTPException(409, out.transition.message)
    return {"application": out.match, "transition": out.transition}
