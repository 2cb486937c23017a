from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DUPLICATE_ORDER_ERROR = "Order with this ID already exists"
ORDER_NOT_FOUND_ERROR = "Order not found"


class OperationResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    error: Optional[str] = None


class SaveResult(OperationResult):
    id: Optional[int] = None
    unique_id: Optional[str] = Field(None, alias='uniqueID')


class UpdateResult(OperationResult):
    changes: int = 0


class DeleteResult(OperationResult):
    changes: int = 0


class SettingResult(OperationResult):
    pass


class BackupResult(OperationResult):
    path: str
    message: str = "Backup created successfully"


class AutoBackupResult(OperationResult):
    skipped: bool = False
    path: Optional[str] = None
    message: str = ""
    removed: List[str] = []


class RestoreResult(OperationResult):
    message: str = "Database restored successfully"
    current_backup: Optional[str] = None
    count: int = 0


class ExportResult(OperationResult):
    path: str
    count: int
    message: str = ""


class ImportResult(OperationResult):
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    total_lines: int = 0
    errors: List[str] = []
