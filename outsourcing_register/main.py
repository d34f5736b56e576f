"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from outsourcing_register.api.v1 import router as v1_router
from outsourcing_register.core.config import settings
from outsourcing_register.core.database import Store
from outsourcing_register.services.auth_context import AuthContext
from outsourcing_register.services.backup import BackupCoordinator
from outsourcing_register.services.database_location import get_effective_database_path
from outsourcing_register.services.session_store import JsonFileKeyValueStore, KeyValueStore


def create_app(database_path: Path | None = None, storage: KeyValueStore | None = None) -> FastAPI:
    """
    Build the app. The store is opened and the auth context initialised on startup,
    and both are released on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        store = Store(database_path or get_effective_database_path(), echo=settings.DEBUG).open()
        auth = AuthContext(store, storage or JsonFileKeyValueStore(settings.session_store_path))
        auth.init()
        app.state.store = store
        app.state.auth = auth
        app.state.backup = BackupCoordinator(store)
        try:
            yield
        finally:
            auth.teardown()
            store.close()

    app = FastAPI(
        title="Outsourcing Register API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.APP_ENV == "dev" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(v1_router, prefix=settings.API_V1_PREFIX)

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "Outsourcing Register API"}

    return app


app = create_app()
