from typing import Optional

from pydantic import BaseModel


class BackupRequest(BaseModel):
    destination: Optional[str] = None


class RestoreRequest(BaseModel):
    source: str


class ExportRequest(BaseModel):
    destination: Optional[str] = None


class LegacyImportRequest(BaseModel):
    path: str
