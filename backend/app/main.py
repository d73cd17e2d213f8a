from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .core.config import settings
from .core.logging_config import setup_logging
from .services.dispatcher import AggregationDispatcher

# Routers
from .routers.health import router as health_router
from .routers.analytics import router as analytics_router

# ---------------------------------------------------------
# Logging & App init
# ---------------------------------------------------------
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # one aggregation worker for the lifetime of the app
    dispatcher = AggregationDispatcher().start()
    app.state.dispatcher = dispatcher
    try:
        yield
    finally:
        dispatcher.dispose()
        app.state.dispatcher = None
        logger.info("Application shutdown complete")


api = FastAPI(title=settings.project_name, lifespan=lifespan)

# ---------------------------------------------------------
# CORS middleware
# ---------------------------------------------------------
api.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------
# Routers
# ---------------------------------------------------------

# Health: expose /health
api.include_router(health_router, prefix="/health", tags=["health"])

api.include_router(analytics_router, prefix="/analytics", tags=["analytics"])


@api.get("/")
def root():
    return {
        "status": "ok",
        "project": settings.project_name,
        "env": settings.env,
    }


# This is what pytest imports: from backend.app.main import app
app = api
