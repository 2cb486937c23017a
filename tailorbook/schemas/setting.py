from typing import Optional

from pydantic import BaseModel


class SettingUpdate(BaseModel):
    value: str


class SettingValue(BaseModel):
    key: str
    value: Optional[str] = None
