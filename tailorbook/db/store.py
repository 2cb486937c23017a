"""
Persistence gateway for order and setting records.

``TailorStore`` owns the SQLite file under ``<base_dir>/database``. Nothing
touches the file until the first operation, which creates the directory,
quarantines a file that is not a database, creates the tables and indexes
and adds any optional column an older file is missing. Every later operation
reuses that one-time initialization.
"""
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError
from sqlalchemy import inspect, text
from sqlalchemy.exc import DatabaseError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from tailorbook.core.config import get_settings
from tailorbook.core.exceptions import DatabaseInitializationError
from tailorbook.crud import order as order_crud
from tailorbook.crud import setting as setting_crud
from tailorbook.db.base import Base, build_engine, build_session_factory
from tailorbook.db.models import Order
from tailorbook.schemas.order import OrderCreate, OrderRead
from tailorbook.schemas.results import (
    DUPLICATE_ORDER_ERROR,
    ORDER_NOT_FOUND_ERROR,
    DeleteResult,
    SaveResult,
    SettingResult,
    UpdateResult,
)

logger = logging.getLogger(__name__)

SQLITE_SIDECARS = ("-wal", "-shm")


def validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(parts)


def _read_models(rows) -> List[OrderRead]:
    orders = []
    for row in rows:
        try:
            orders.append(OrderRead.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping unreadable order {row.unique_id}: {validation_message(e)}")
    return orders


def _column_names(sync_conn, table_name: str) -> set:
    return {column["name"] for column in inspect(sync_conn).get_columns(table_name)}


def _create_indexes(sync_conn) -> None:
    # create_all skips indexes of tables that already exist
    for table in Base.metadata.sorted_tables:
        for index in table.indexes:
            try:
                index.create(bind=sync_conn, checkfirst=True)
            except SQLAlchemyError as e:
                logger.warning(f"Failed to create index {index.name}: {e}")


def _is_optional_text_column(column) -> bool:
    default = column.server_default
    return (
        not column.primary_key
        and column.nullable
        and default is not None
        and isinstance(getattr(default, "arg", None), str)
    )


class TailorStore:
    """Owned handle on the local database file."""

    def __init__(self, base_dir: Optional[Union[str, Path]] = None):
        settings = get_settings()
        self.db_dir = Path(base_dir) / "database" if base_dir is not None else settings.database_dir
        self.db_path = self.db_dir / settings.DATABASE_FILENAME
        self.backup_dir = self.db_dir / "backups"
        self.auto_backup_dir = self.backup_dir / "auto"
        self.export_dir = self.db_dir / "exports"

        self._engine: Optional[AsyncEngine] = None
        self._session_factory = None
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    # --- lifecycle ---

    async def ensure_initialized(self) -> None:
        """Run initialization once; concurrent callers wait for the same run."""
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return
            await self._initialize()
            self._initialized = True

    async def _initialize(self) -> None:
        try:
            self.db_dir.mkdir(parents=True, exist_ok=True)
            if self.db_path.exists():
                await self._quarantine_if_corrupt()

            self._engine = build_engine(self.db_path)
            self._session_factory = build_session_factory(self._engine)

            await self._enable_wal()
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            await self._ensure_columns()
            async with self._engine.begin() as conn:
                await conn.run_sync(_create_indexes)
        except (OSError, SQLAlchemyError) as e:
            logger.error(f"Failed to initialize database at {self.db_path}: {e}")
            await self._dispose()
            raise DatabaseInitializationError(f"Failed to initialize database: {e}") from e

    async def _quarantine_if_corrupt(self) -> None:
        probe = build_engine(self.db_path)
        corrupt = False
        try:
            async with probe.connect() as conn:
                await conn.execute(text("SELECT count(*) FROM sqlite_master"))
        except DatabaseError as e:
            if "not a database" not in str(e):
                raise
            corrupt = True
        finally:
            await probe.dispose()

        if corrupt:
            suffix = f".backup.{int(time.time() * 1000)}"
            quarantined = self.db_path.with_name(self.db_path.name + suffix)
            self.db_path.rename(quarantined)
            for sidecar in SQLITE_SIDECARS:
                path = self.db_path.with_name(self.db_path.name + sidecar)
                if path.exists():
                    path.rename(quarantined.with_name(quarantined.name + sidecar))
            logger.warning(f"{self.db_path} is not a SQLite database, moved it to {quarantined}")

    async def _enable_wal(self) -> None:
        try:
            async with self._engine.connect() as conn:
                await conn.exec_driver_sql("PRAGMA journal_mode=WAL")
        except SQLAlchemyError as e:
            logger.warning(f"Failed to enable WAL mode: {e}")

    async def _ensure_columns(self) -> None:
        """Add optional columns that an older database file does not have yet."""
        table = Order.__table__
        async with self._engine.connect() as conn:
            existing = await conn.run_sync(_column_names, table.name)

        missing = [c for c in table.columns if c.name not in existing and _is_optional_text_column(c)]
        for column in missing:
            try:
                async with self._engine.begin() as conn:
                    # Re-check, another initializer may have added it meanwhile
                    if column.name in await conn.run_sync(_column_names, table.name):
                        continue
                    column_type = column.type.compile(dialect=conn.dialect)
                    default = column.server_default.arg.replace("'", "''")
                    await conn.exec_driver_sql(
                        f"ALTER TABLE {table.name} ADD COLUMN {column.name} {column_type} DEFAULT '{default}'"
                    )
                logger.info(f"Added column {table.name}.{column.name}")
            except SQLAlchemyError as e:
                logger.warning(f"Failed to add column {column.name}: {e}")

    async def _dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None

    async def close(self) -> None:
        """Close the connection; the next operation initializes again."""
        async with self._init_lock:
            await self._dispose()
            self._initialized = False

    async def reopen(self) -> None:
        await self.close()
        await self.ensure_initialized()

    async def checkpoint(self) -> None:
        """Fold the write-ahead log into the main file so a plain copy is complete."""
        if not self._initialized:
            return
        async with self._engine.connect() as conn:
            await conn.exec_driver_sql("PRAGMA wal_checkpoint(TRUNCATE)")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        await self.ensure_initialized()
        db = self._session_factory()
        try:
            yield db
        finally:
            await db.close()

    # --- orders ---

    async def list_orders(self) -> List[OrderRead]:
        """All orders, highest unique id first. Read failures yield an empty list."""
        async with self.session() as db:
            try:
                rows = await order_crud.list_orders(db)
            except SQLAlchemyError as e:
                logger.warning(f"Error getting all orders: {e}")
                return []
            return _read_models(rows)

    async def get_order(self, unique_id: Union[str, int]) -> Optional[OrderRead]:
        async with self.session() as db:
            row = await order_crud.get_order_by_unique_id(db, str(unique_id))
            found = _read_models([row]) if row else []
            return found[0] if found else None

    async def search_orders(self, query: str) -> List[OrderRead]:
        async with self.session() as db:
            rows = await order_crud.search_orders(db, query.strip())
            return _read_models(rows)

    async def list_orders_by_status(self, status: str) -> List[OrderRead]:
        async with self.session() as db:
            rows = await order_crud.list_orders_by_status(db, status)
            return _read_models(rows)

    async def list_overdue_orders(self, today: Optional[date] = None) -> List[OrderRead]:
        """Undelivered orders whose delivery date has passed, earliest first."""
        today = (today or date.today()).isoformat()
        async with self.session() as db:
            rows = await order_crud.list_overdue_orders(db, today)
            return _read_models(rows)

    async def count_orders(self) -> int:
        async with self.session() as db:
            return await order_crud.count_orders(db)

    async def next_unique_id(self) -> int:
        """
        One past the highest stored unique id, computed from the file at call time.
        Returns 1 for an empty table or when the read fails.
        """
        try:
            async with self.session() as db:
                max_id = await order_crud.get_max_unique_id(db)
        except (SQLAlchemyError, DatabaseInitializationError) as e:
            logger.warning(f"Error getting next unique ID: {e}")
            return 1
        return (max_id or 0) + 1

    async def save_order(self, data: Union[OrderCreate, Mapping[str, Any]]) -> SaveResult:
        try:
            order = data if isinstance(data, OrderCreate) else OrderCreate.model_validate(data)
        except ValidationError as e:
            return SaveResult(success=False, error=validation_message(e))

        async with self.session() as db:
            try:
                return await self.save_in_session(db, order)
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Error saving order: {e}")
                return SaveResult(success=False, error=str(e))

    async def save_in_session(self, db: AsyncSession, order: OrderCreate) -> SaveResult:
        if order.unique_id is None:
            next_id = (await order_crud.get_max_unique_id(db) or 0) + 1
            order = order.model_copy(update={"unique_id": str(next_id)})
        try:
            db_order = await order_crud.insert_order(db, order)
        except IntegrityError as e:
            await db.rollback()
            if "UNIQUE constraint failed" in str(e.orig):
                logger.warning(f"Order {order.unique_id} already exists")
                return SaveResult(success=False, error=DUPLICATE_ORDER_ERROR)
            return SaveResult(success=False, error=str(e.orig))
        return SaveResult(success=True, id=db_order.id, unique_id=db_order.unique_id)

    async def update_order(self, data: Union[OrderCreate, Mapping[str, Any]]) -> UpdateResult:
        try:
            order = data if isinstance(data, OrderCreate) else OrderCreate.model_validate(data)
        except ValidationError as e:
            return UpdateResult(success=False, error=validation_message(e))
        if order.unique_id is None:
            return UpdateResult(success=False, error="uniqueID is required")

        async with self.session() as db:
            try:
                return await self.update_in_session(db, order)
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Error updating order: {e}")
                return UpdateResult(success=False, error=str(e))

    async def update_in_session(self, db: AsyncSession, order: OrderCreate) -> UpdateResult:
        changes = await order_crud.update_order(db, order)
        if changes == 0:
            return UpdateResult(success=False, error=ORDER_NOT_FOUND_ERROR)
        return UpdateResult(success=True, changes=changes)

    async def delete_order(self, unique_id: Union[str, int]) -> DeleteResult:
        async with self.session() as db:
            try:
                changes = await order_crud.delete_order(db, str(unique_id))
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Error deleting order: {e}")
                return DeleteResult(success=False, error=str(e))
        return DeleteResult(success=changes > 0, changes=changes)

    async def update_order_status(self, unique_id: Union[str, int], new_status: str) -> UpdateResult:
        """Set a new status and append it to the order's history."""
        async with self.session() as db:
            try:
                db_order = await order_crud.get_order_by_unique_id(db, str(unique_id))
                if db_order is None:
                    return UpdateResult(success=False, error=ORDER_NOT_FOUND_ERROR)
                await order_crud.append_status(db, db_order, new_status)
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Error updating order status: {e}")
                return UpdateResult(success=False, error=str(e))
        return UpdateResult(success=True, changes=1)

    # --- settings ---

    async def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        async with self.session() as db:
            try:
                value = await setting_crud.get_setting_value(db, key)
            except SQLAlchemyError as e:
                logger.warning(f"Error getting setting {key}: {e}")
                return default
        return value if value is not None else default

    async def set_setting(self, key: str, value: Any) -> SettingResult:
        async with self.session() as db:
            try:
                await setting_crud.upsert_setting(db, key, str(value))
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Error saving setting {key}: {e}")
                return SettingResult(success=False, error=str(e))
        return SettingResult(success=True)

    async def get_all_settings(self) -> Dict[str, str]:
        async with self.session() as db:
            try:
                return await setting_crud.get_all_settings(db)
            except SQLAlchemyError as e:
                logger.warning(f"Error getting all settings: {e}")
                return {}
