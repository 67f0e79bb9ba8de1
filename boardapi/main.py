import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from boardapi.bootstrap import build_components
from boardapi.cache import cache
from boardapi.config import Settings, settings as default_settings
from boardapi.database import async_session
from boardapi.errors import install_error_handlers
from boardapi.logging_config import setup_logging
from boardapi.middleware import AccessLogMiddleware
from boardapi.routers import articles, boards, users
from boardapi.services.revocation_service import RevocationStore

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


async def purge_expired_revocations(app: FastAPI) -> None:
    components = app.state.components
    try:
        async with async_session() as session:
            removed = await RevocationStore(session).purge_expired(components.clock())
            await session.commit()
        logger.info("Purged %d expired revocation entries", removed)
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Revocation purge skipped: %s", exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    try:
        await cache.connect(app.state.components.settings.REDIS_URL)
    except Exception as exc:
        logger.warning("Cache unavailable, continuing without it: %s", exc)
    await purge_expired_revocations(app)
    yield
    # Shutdown
    await cache.disconnect()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL, "structured" if settings.LOG_FORMAT == "structured" else "dev")

    app = FastAPI(
        title="Board API",
        description="Bulletin board backend with token sessions and per-author cooldowns",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.components = build_components(settings)

    # Middleware
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    # Routers
    app.include_router(users.router)
    app.include_router(boards.router)
    app.include_router(articles.router)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": VERSION, "cache": cache.stats}

    return app


app = create_app()
