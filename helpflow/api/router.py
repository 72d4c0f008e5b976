# helpflow/api/router.py
from fastapi import APIRouter

from helpflow.api.routes import applications, requests, statuses

api_router = APIRouter()
api_router.include_router(statuses.router, prefix="/statuses", tags=["statuses"])
api_router.include_router(requests.router, prefix="/requests", tags=["requests"])
api_router.include_router(applications.router, tags=["applications"])
