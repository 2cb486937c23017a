from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from tailorbook.db.models.setting import Setting


async def get_setting_value(db: AsyncSession, key: str) -> Optional[str]:
    result = await db.execute(select(Setting.value).where(Setting.key == key))
    return result.scalars().first()


async def get_all_settings(db: AsyncSession) -> Dict[str, str]:
    result = await db.execute(select(Setting.key, Setting.value))
    return {row.key: row.value for row in result}


async def upsert_setting(db: AsyncSession, key: str, value: str) -> None:
    """Creates the setting or replaces its value."""
    stmt = insert(Setting).values(key=key, value=value)
    stmt = stmt.on_conflict_do_update(
        index_elements=[Setting.key],
        set_={'value': value, 'updated_at': func.now()}
    )
    await db.execute(stmt)
    await db.commit()
