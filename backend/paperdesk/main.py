import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from paperdesk.auth.router import router as auth_router
from paperdesk.config import settings
from paperdesk.esign.router import router as esign_router
from paperdesk.middleware import CorrelationIDMiddleware
from paperdesk.storage.router import router as storage_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s %s (%s)", settings.app_name, settings.app_version, settings.environment)
    # Startup: bootstrap the first signatory if needed
    from paperdesk.auth.service import bootstrap_signatory

    await bootstrap_signatory()
    yield
    logger.info("Shutting down %s", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.backend_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(storage_router, prefix="/api/files", tags=["Files"])
app.include_router(esign_router, prefix="/api/esign", tags=["E-Sign"])


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "version": settings.app_version}
