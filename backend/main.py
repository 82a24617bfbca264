from contextlib import asynccontextmanager
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.settings import get_settings
from server.api import router as chart_router
from server.orchestrator import ChartPipeline

logger = logging.getLogger("uvicorn.error")
load_dotenv()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    app.state.pipeline = ChartPipeline(settings)
    logger.info(
        "Chart pipeline ready (prompt cache %d, config cache %d, max points %d)",
        settings.prompt_cache_size,
        settings.config_cache_size,
        settings.max_points,
    )
    try:
        yield
    finally:
        app.state.pipeline.dispose()
        app.state.pipeline = None


app = FastAPI(
    title="Chart Pipeline",
    description="Turn loosely structured data into chart configurations",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chart_router)
