import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quizbuilder_backend.api.access import access_router
from quizbuilder_backend.api.quizzes import quiz_router
from quizbuilder_backend.database import _engine
from quizbuilder_backend.model import Base
from quizbuilder_backend.permissions.auth import get_current_actor
from quizbuilder_backend.settings import settings

logger = logging.getLogger(__name__)


def startup_logic():
    # Production schemas are managed outside the application
    Base.metadata.create_all(bind=_engine)
    logger.info("Database tables created")


@asynccontextmanager
async def lifespan(app: FastAPI):

    if settings.DEBUG_MODE != "production":
        startup_logic()

    yield


def create_app(lifespan_handler=lifespan) -> FastAPI:

    app = FastAPI(lifespan=lifespan_handler)

    origins = [
        "*"
    ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Total-Count"],
    )

    app.include_router(
        access_router,
        prefix="/api",
        tags=["access"],
        dependencies=[Depends(get_current_actor)]
    )

    app.include_router(
        quiz_router,
        prefix="/api",
        tags=["quizzes"],
        dependencies=[Depends(get_current_actor)]
    )

    @app.get("/", status_code=200)
    def home():
        return {"status": "ok"}

    return app


app = create_app()
