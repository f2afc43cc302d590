"""Application entry point for the ehostelz API service."""

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from loguru import logger

from ehostelz.api.routes.hostels import router as hostels_router
from ehostelz.api.routes.locations import router as locations_router
from ehostelz.api.routes.search_filters import router as search_filters_router
from ehostelz.api.routes.student import router as student_router
from ehostelz.core.config import settings
from ehostelz.core.deps import close_clients, get_chain_registry, get_option_cell
from ehostelz.core.logging import setup_logging
from ehostelz.core.middleware import BodySizeLimitMiddleware, RequestContextLogMiddleware
from ehostelz.core.rate_limit import init_rate_limiter
from ehostelz.selection.cell import CachedFetchCell
from ehostelz.selection.registry import ChainRegistry

setup_logging("DEBUG" if settings.DEBUG else "INFO")

app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)

init_rate_limiter(app)

app.add_middleware(RequestContextLogMiddleware)


def _cors_origins() -> list[str]:
    if settings.ENV == "prod":
        if not settings.CORS_ALLOWED_ORIGINS:
            raise RuntimeError("CORS_ALLOWED_ORIGINS must be configured for prod")
        return settings.CORS_ALLOWED_ORIGINS
    return settings.CORS_ALLOWED_ORIGINS or ["http://localhost:5173"]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "X-Request-ID",
    ],
)

app.add_middleware(BodySizeLimitMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.on_event("startup")
async def startup_event():
    logger.bind(apex=settings.APEX_API_BASE, env=settings.ENV).info("service_started")


@app.on_event("shutdown")
async def shutdown_event():
    """Close the outbound HTTP session on shutdown."""
    close_clients()


@app.get("/api/healthz", tags=["system"], summary="Liveness probe")
def healthz() -> dict[str, str]:
    """Simple liveness probe that load balancers and monitors can call."""

    return {"status": "ok"}


@app.get("/api/readyz", tags=["system"], summary="Readiness probe")
async def readyz(
    cell: CachedFetchCell = Depends(get_option_cell),
    registry: ChainRegistry = Depends(get_chain_registry),
):
    registry.evict_expired()
    return {"ready": True, "option_cache": cell.stats(), "active_chains": len(registry)}


app.include_router(locations_router, prefix="/api")
app.include_router(search_filters_router, prefix="/api")
app.include_router(hostels_router, prefix="/api")
app.include_router(student_router, prefix="/api")
