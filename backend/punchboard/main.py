import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from punchboard.api.employees import router as employees_router
from punchboard.api.exceptions import router as exceptions_router
from punchboard.api.locations import router as locations_router
from punchboard.api.stats import router as stats_router
from punchboard.core.config import settings
from punchboard.services.sheet_source import SheetSource

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the sheet source for the lifetime of the process."""
    app.state.source = SheetSource.from_settings()
    if not settings.SHEET_CSV_URL:
        logger.warning("SHEET_CSV_URL is not set; every endpoint will report an empty day.")

    yield

    await app.state.source.aclose()
    logger.info("Shutting down Punchboard backend.")


app = FastAPI(
    title="Punchboard API",
    description="Attendance dashboard: shifts, KPIs and exceptions derived from punch logs.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(stats_router, prefix="/api", tags=["Stats"])
app.include_router(locations_router, prefix="/api/locations", tags=["Locations"])
app.include_router(exceptions_router, prefix="/api/exceptions", tags=["Exceptions"])
app.include_router(employees_router, prefix="/api/employee", tags=["Employees"])


@app.get("/health", tags=["System"])
async def health_check() -> dict:
    return {"status": "ok"}
