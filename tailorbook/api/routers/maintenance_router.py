from fastapi import APIRouter, Depends, HTTPException, status

from tailorbook.api.deps import get_store
from tailorbook.core.exceptions import (
    BackupError,
    BackupNotFoundError,
    ExportError,
    ImportFileNotFoundError,
    RestoreError,
)
from tailorbook.db.store import TailorStore
from tailorbook.schemas.maintenance import (
    BackupRequest,
    ExportRequest,
    LegacyImportRequest,
    RestoreRequest,
)
from tailorbook.schemas.results import BackupResult, ExportResult, ImportResult, RestoreResult
from tailorbook.services.maintenance.backup_service import BackupService
from tailorbook.services.maintenance.export_service import ExportService
from tailorbook.services.maintenance.legacy_import import LegacyImportService

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/backup", response_model=BackupResult)
async def create_backup(request: BackupRequest, store: TailorStore = Depends(get_store)):
    """
    Copy the database file to the requested path or a timestamped default.
    """
    try:
        return await BackupService.backup(store, request.destination)
    except BackupError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.post("/restore", response_model=RestoreResult)
async def restore_backup(request: RestoreRequest, store: TailorStore = Depends(get_store)):
    try:
        return await BackupService.restore(store, request.source)
    except BackupNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except RestoreError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.post("/export", response_model=ExportResult)
async def export_csv(request: ExportRequest, store: TailorStore = Depends(get_store)):
    try:
        return await ExportService.export_csv(store, request.destination)
    except ExportError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.post("/import-legacy", response_model=ImportResult)
async def import_legacy(request: LegacyImportRequest, store: TailorStore = Depends(get_store)):
    """
    Merge a line-delimited JSON file from the old storage format.
    """
    try:
        return await LegacyImportService.import_file(store, request.path)
    except ImportFileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
