# helpflow/main.py
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from helpflow.api.router import api_router
from helpflow.core.config import settings
from helpflow.core.log_config import configure_logging
from helpflow.repositories.base import RequestRepository

APP_NAME = os.getenv("APP_NAME", "helpflow")
APP_VERSION = os.getenv("APP_VERSION", "0.1.0")

DEFAULT_CORS_ORIGINS = {
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8080",
    "http://127.0.0.1:8080",
}

logger = logging.getLogger(__name__)


def build_repository() -> RequestRepository:
    if settings.repository_backend == "memory":
        from helpflow.repositories.memory import InMemoryRequestRepository
        return InMemoryRequestRepository()
    from helpflow.repositories.requests_repo import MongoRequestRepository
    return MongoRequestRepository()


def create_app(repository: RequestRepository | None = None) -> FastAPI:
    configure_logging()
    app = FastAPI(title=APP_NAME, version=APP_VERSION)

    # CORS first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(set(settings.cors_origins) | DEFAULT_CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1024)

    injected = repository is not None
    app.state.repository = repository if injected else build_repository()
    app.include_router(api_router, prefix="")

    @app.get("/health")
    async def health():
        return {"ok": True}

    @app.on_event("startup")
    async def startup():
        if injected or settings.repository_backend != "mongo":
            return
        from helpflow.core.indexes import startup_tasks
        await startup_tasks(app.state.repository.db)
        logger.info("startup: indexes ensured on %s", settings.db_name)

    @app.on_event("shutdown")
    async def shutdown_db_client():
        if injected or settings.repository_backend != "mongo":
            return
        from helpflow.core.db import close_db
        await close_db()

    return app


app = create_app()

# Optional local runner
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("helpflow.main:app", reload=True, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
