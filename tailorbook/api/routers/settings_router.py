from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from tailorbook.api.deps import get_store
from tailorbook.core.config import get_settings
from tailorbook.db.store import TailorStore
from tailorbook.schemas.results import SettingResult
from tailorbook.schemas.setting import SettingUpdate, SettingValue

router = APIRouter(prefix="/settings", tags=["settings"])

FONT_SIZE_KEY = "fontSize"


@router.get("", response_model=Dict[str, str])
async def get_all_settings(store: TailorStore = Depends(get_store)):
    return await store.get_all_settings()


@router.get("/{key}", response_model=SettingValue)
async def get_setting(
    key: str,
    default: Optional[str] = Query(None, description="Returned when the key is not stored"),
    store: TailorStore = Depends(get_store)
):
    if default is None and key == FONT_SIZE_KEY:
        default = get_settings().DEFAULT_FONT_SIZE
    return SettingValue(key=key, value=await store.get_setting(key, default))


@router.put("/{key}", response_model=SettingResult)
async def set_setting(key: str, setting: SettingUpdate, store: TailorStore = Depends(get_store)):
    """
    Create or replace a setting value.
    """
    return await store.set_setting(key, setting.value)
