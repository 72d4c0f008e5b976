# helpflow/api/deps.py
from typing import List

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from helpflow.core.security import decode_token
from helpflow.models.common import Role, parse_role
from helpflow.repositories.base import RequestRepository
from helpflow.services.transition_engine import TransitionEngine

security = HTTPBearer()


async def get_current_actor(credentials: HTTPAuthorizationCredentials = Depends(security)):
    try:
        payload = decode_token(credentials.credentials)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    actor_id = payload.get("sub")
    role = parse_role(payload.get("role"))
    # system transitions never come in over HTTP
    if not actor_id or role is None or role == Role.SYSTEM:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return {"id": actor_id, "role": role}


def require_role(roles: List[Role]):
    async def checker(actor=Depends(get_current_actor)):
        if actor["role"] not in roles:
            raise HTTPException(status_code=403, detail="Not authorized")
        return actor
    return checker


def get_repository(request: Request) -> RequestRepository:
    return request.app.state.repository


def get_engine(repo: RequestRepository = Depends(get_repository)) -> TransitionEngine:
    return TransitionEngine(repo)
