import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from tailorbook.api.deps import get_store
from tailorbook.api.routers import dashboard_router, maintenance_router, orders_router, settings_router
from tailorbook.core.config import get_settings
from tailorbook.core.exceptions import BackupError
from tailorbook.core.logging import configure_logging
from tailorbook.services.maintenance.backup_service import BackupService

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title=f"{settings.PROJECT_NAME} API", version=settings.VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(orders_router.router, prefix=settings.API_V1_STR)
app.include_router(settings_router.router, prefix=settings.API_V1_STR)
app.include_router(maintenance_router.router, prefix=settings.API_V1_STR)
app.include_router(dashboard_router.router, prefix=settings.API_V1_STR)


def _resolve_store():
    return app.dependency_overrides.get(get_store, get_store)()


@app.on_event("startup")
async def startup():
    configure_logging(settings.LOG_LEVEL)
    try:
        result = await BackupService.auto_backup(_resolve_store())
    except BackupError as e:
        # Startup continues without a backup
        logger.error(f"Auto backup failed: {e}")
        return
    if result.removed:
        logger.info(f"Removed {len(result.removed)} old auto backups")


@app.on_event("shutdown")
async def shutdown():
    await _resolve_store().close()


@app.get("/", tags=["Root"])
async def read_root():
    return {"message": f"Welcome to the {settings.PROJECT_NAME} API"}


if __name__ == "__main__":
    uvicorn.run("tailorbook.server:app", host="127.0.0.1", port=8000, reload=True)
