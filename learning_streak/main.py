from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from learning_streak.core.config import settings
from learning_streak.core.security import initialize_firebase
from learning_streak.core.logging import get_logger, setup_logging
from learning_streak.utils.error_handler import setup_exception_handlers
from learning_streak.api.v1 import streak

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    logger.info("Starting Learning Streak API")
    initialize_firebase()

    yield
    logger.info("Shutting down Learning Streak API")


app = FastAPI(
    lifespan=lifespan,
    title="Learning Streak API",
    description="Daily learning streaks with milestone messages",
    version="0.1.0",
    docs_url="/",
    redoc_url="/redoc",
)

setup_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

#api routes
app.include_router(streak.router, prefix="/api/v1/streak", tags=["Streak"])


@app.get("/health")
async def health_check():
    return {"status": "ok"}
