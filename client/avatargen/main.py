"""FastAPI application entrypoint for the avatar upload client."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from supabase import Client

from .config import Settings, get_settings
from .routers import auth, uploads
from .services.auth_session import SessionContext, create_supabase_client
from .services.avatar_storage import AvatarStorage
from .services.file_selector import FileSelector
from .services.generation_backend import GenerationBackend
from .services.status_reporter import StatusReporter
from .services.upload_pipeline import UploadOrchestrator

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    supabase: Optional[Client] = None,
    backend: Optional[GenerationBackend] = None,
) -> FastAPI:
    """Wire the auth, storage and backend collaborators into a FastAPI app."""

    settings = settings or get_settings()
    client = supabase or create_supabase_client(settings)
    backend = backend or GenerationBackend(settings.api_url, timeout=settings.backend_timeout)

    session_context = SessionContext(client)
    reporter = StatusReporter()
    orchestrator = UploadOrchestrator(
        AvatarStorage(client, bucket=settings.avatar_bucket),
        backend,
        reporter=reporter,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        with session_context.subscribe():
            logger.info("Avatar upload client ready (bucket=%s)", settings.avatar_bucket)
            yield

    application = FastAPI(
        title="Avatar Upload Client",
        description="Uploads a selfie to Supabase Storage and hands it off for avatar generation.",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.session_context = session_context
    application.state.file_selector = FileSelector()
    application.state.orchestrator = orchestrator
    application.include_router(auth.router)
    application.include_router(uploads.router)

    @application.get("/")
    async def root() -> dict[str, str]:
        """Lightweight health endpoint for service discovery."""
        return {"service": "avatargen", "status": "ok"}

    return application


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=get_settings().log_level)
    uvicorn.run(create_app(), host="127.0.0.1", port=8000)
