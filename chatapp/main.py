# chatapp/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatapp.common.fanout import FanOut
from chatapp.common.presence import PresenceRegistry
from chatapp.core.config import settings
from chatapp.core.exceptions import register_error_handlers
from chatapp.db.base_class import Base
from chatapp.db.session import engine

# Import every model so create_all sees its table
from chatapp.models import friendship, message, notification, post, user  # noqa: F401
from chatapp.routers import auth, friendship as friendship_router, messages, notifications, posts, realtime

logging.basicConfig(
    level=settings.LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)

    presence = PresenceRegistry()
    app.state.presence = presence
    app.state.fanout = FanOut(presence)
    logger.info("Realtime services started")
    try:
        yield
    finally:
        await presence.close()
        logger.info("Realtime services stopped")


def create_app() -> FastAPI:
    app = FastAPI(title="chatapp", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(auth.router, prefix="/auth", tags=["auth"])
    app.include_router(friendship_router.router, prefix="/friendship", tags=["friendship"])
    app.include_router(messages.router, prefix="/messages", tags=["messages"])
    app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
    app.include_router(posts.router, prefix="/posts", tags=["posts"])
    app.include_router(realtime.router, tags=["realtime"])

    @app.get("/")
    def read_root():
        return {"message": "chatapp API is running"}

    return app


app = create_app()
