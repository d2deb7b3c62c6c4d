"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..app import Application
from .routes import (
    admin,
    attachments,
    control,
    conversations,
    observability,
    profiles,
    unread,
)


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Create and configure FastAPI application.

    The lifespan starts the application unless it was started by the caller,
    and only stops what it started.
    """
    application = application or Application()

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        owned = not application.is_started
        if owned:
            await application.start()
        yield
        if owned:
            await application.stop()

    fastapi_app = FastAPI(
        title="Estate Chat API",
        description="Conversations and messaging between users, listers and support",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Enable CORS
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:5174"],  # Vite default
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    fastapi_app.include_router(conversations.create_conversations_router(application))
    fastapi_app.include_router(attachments.create_attachments_router(application))
    fastapi_app.include_router(unread.create_unread_router(application))
    fastapi_app.include_router(profiles.create_profiles_router(application))
    fastapi_app.include_router(admin.create_admin_router(application))
    fastapi_app.include_router(observability.create_observability_router(application))
    fastapi_app.include_router(control.create_control_router(application))

    return fastapi_app
