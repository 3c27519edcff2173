import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__, config
from .alarms import AlarmBook
from .errors import PersistenceError, TurnWorkError
from .events import EventBook
from .registry import CycleRegistry
from .routes import router
from .store import SqliteStore

logger = logging.getLogger(__name__)


def create_app(db_path: Optional[str] = None) -> FastAPI:
    store = SqliteStore(db_path or config.DB_PATH)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # One registry per process, handed to routes through app.state.
        app.state.registry = CycleRegistry(store).load()
        app.state.alarms = AlarmBook(store).load()
        app.state.events = EventBook(store).load()
        logger.info(
            "Loaded %d cycle(s) and %d shift type(s) from %s",
            len(app.state.registry.cycles()),
            len(app.state.registry.shift_types()),
            store.db_path,
        )
        yield

    app = FastAPI(title="TurnWork API", version=__version__, lifespan=lifespan)

    origins = config.allowed_origins()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_origin_regex=None if origins else config.CORS_ALLOW_ORIGIN_REGEX,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TurnWorkError)
    async def _turnwork_error(request: Request, exc: TurnWorkError):
        if isinstance(exc, PersistenceError):
            logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    app.include_router(router)
    return app


logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()
