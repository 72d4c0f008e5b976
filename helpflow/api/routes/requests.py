# helpflow/api/routes/requests.py
from fastapi import APIRouter, Depends, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from helpflow.api.deps import get_current_actor, get_engine, get_repository, require_role
from helpflow.models.common import Role
from helpflow.models.request import RequestCreate, TransitionPayload
from helpflow.models.status import RequestStatus, parse_status
from helpflow.services import match_service
from helpflow.services import request_service as svc
from helpflow.services.transition_engine import TransitionErrorKind
from helpflow.services.transitions import rules_for

router = APIRouter()

HTTP_STATUS_BY_KIND = {
    TransitionErrorKind.NOT_FOUND: 404,
    TransitionErrorKind.INVALID_STATUS: 422,
    TransitionErrorKind.FORBIDDEN: 403,
    TransitionErrorKind.NOT_ASSIGNED: 403,
    TransitionErrorKind.CONFLICT: 409,
    TransitionErrorKind.UNKNOWN: 500,
}

# reached by applying, not through the generic transition endpoint
APPLICATION_ONLY = frozenset({RequestStatus.DEV_REQUESTED})


def ensure_visible(doc, actor):
    # clients only see their own requests
    if actor["role"] == Role.CLIENT and doc.client_id != actor["id"]:
        raise HTTPException(403, "Not authorized")


async def load_visible(request_id, actor, repo):
    doc = await svc.get_request(repo, request_id)
    if not doc:
        raise HTTPException(404, "Request not found")
    ensure_visible(doc, actor)
    return doc


@router.post("", status_code=201)
async def create_request(payload: RequestCreate, current=Depends(require_role([Role.CLIENT])), engine=Depends(get_engine)):
    return await svc.create_request(engine, current["id"], payload)


@router.get("/{request_id}")
async def get_request(request_id: str, current=Depends(get_current_actor), repo=Depends(get_repository)):
    return await load_visible(request_id, current, repo)


@router.get("/{request_id}/transitions")
async def available_transitions(request_id: str, current=Depends(get_current_actor), repo=Depends(get_repository)):
    doc = await load_visible(request_id, current, repo)
    rules = [r for r in rules_for(doc.status, current["role"]) if r.to_status not in APPLICATION_ONLY]
    return {"status": doc.status, "rules": rules}


@router.post("/{request_id}/transition")
async def transition(request_id: str, payload: TransitionPayload, current=Depends(get_current_actor), engine=Depends(get_engine)):
    await load_visible(request_id, current, engine.repository)
    # applying leaves an application for the client to decide on
    if current["role"] == Role.DEVELOPER and parse_status(payload.to_status) in APPLICATION_ONLY:
        raise HTTPException(400, f"Apply through /requests/{request_id}/applications to request assignment")
    details = {}
    comment = (payload.comment or "").strip()
    if comment:
        details["comment"] = comment
    res = await engine.attempt_transition(request_id, payload.to_status, current["role"], current["id"], details=details)
    if not res.ok:
        return JSONResponse(status_code=HTTP_STATUS_BY_KIND[res.kind], content=jsonable_encoder(res))
    follow = await match_service.run_follow_ups(engine, res, current["id"])
    final = follow[-1] if follow and follow[-1].ok else res
    return JSONResponse(status_code=200, content=jsonable_encoder(final))


@router.get("/{request_id}/history")
async def history(request_id: str, current=Depends(get_current_actor), repo=Depends(get_repository)):
    await load_visible(request_id, current, repo)
    return {"items": await svc.get_history(repo, request_id)}
