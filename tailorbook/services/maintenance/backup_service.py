import asyncio
import logging
import shutil
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from tailorbook.core.config import get_settings
from tailorbook.core.exceptions import (
    BackupError,
    BackupNotFoundError,
    DatabaseInitializationError,
    RestoreError,
)
from tailorbook.db.store import SQLITE_SIDECARS, TailorStore
from tailorbook.schemas.results import AutoBackupResult, BackupResult, RestoreResult

logger = logging.getLogger(__name__)

AUTO_BACKUP_PREFIX = "auto_backup_"


def file_timestamp() -> str:
    """UTC ISO-8601 timestamp usable in file names, e.g. 2024-05-01T09-30-00."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")


async def _copy_live_file(store: TailorStore, target: Path) -> None:
    await store.checkpoint()
    target.parent.mkdir(parents=True, exist_ok=True)
    await asyncio.to_thread(shutil.copyfile, store.db_path, target)


class BackupService:
    """Backup, restore and startup rotation of the database file."""

    @staticmethod
    async def backup(
        store: TailorStore,
        destination: Optional[Union[str, Path]] = None
    ) -> BackupResult:
        """Copy the live database file to ``destination`` (timestamped default)."""
        target = Path(destination) if destination else store.backup_dir / f"backup_{file_timestamp()}.db"
        try:
            await store.ensure_initialized()
            await _copy_live_file(store, target)
        except (OSError, SQLAlchemyError, DatabaseInitializationError) as e:
            logger.error(f"Error creating backup at {target}: {e}")
            raise BackupError(f"Failed to create backup: {e}") from e

        logger.info(f"Backup created at {target}")
        return BackupResult(success=True, path=str(target))

    @staticmethod
    async def restore(store: TailorStore, source: Union[str, Path]) -> RestoreResult:
        """
        Replace the live database with a backup copy.

        The current file is copied aside before it is overwritten, then the
        store is initialized again against the restored file.
        """
        source = Path(source)
        if not source.is_file():
            raise BackupNotFoundError(f"Backup file not found: {source}")

        safety_copy = None
        try:
            if store.db_path.exists():
                safety_copy = store.db_path.with_name(
                    f"{store.db_path.name}.pre-restore.{int(time.time() * 1000)}.db"
                )
                await _copy_live_file(store, safety_copy)

            await store.close()
            for sidecar in SQLITE_SIDECARS:
                store.db_path.with_name(store.db_path.name + sidecar).unlink(missing_ok=True)
            store.db_path.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.copyfile, source, store.db_path)
            await store.ensure_initialized()
        except (OSError, SQLAlchemyError, DatabaseInitializationError) as e:
            logger.error(f"Error restoring backup {source}: {e}")
            raise RestoreError(f"Failed to restore backup: {e}") from e

        try:
            count = await store.count_orders()
        except SQLAlchemyError as e:
            logger.warning(f"Restored database could not be counted: {e}")
            count = 0

        logger.info(f"Database restored from {source} ({count} orders)")
        return RestoreResult(
            success=True,
            current_backup=str(safety_copy) if safety_copy else None,
            count=count
        )

    @staticmethod
    async def auto_backup(store: TailorStore, retention: Optional[int] = None) -> AutoBackupResult:
        """
        Startup backup with rotation.

        Skips quietly when the database file does not exist yet. Otherwise
        keeps the ``retention`` newest automatic backups, deletes the rest
        and writes a new one.
        """
        if retention is None:
            retention = get_settings().AUTO_BACKUP_RETENTION
        backup_dir = store.auto_backup_dir

        try:
            backup_dir.mkdir(parents=True, exist_ok=True)
            if not store.db_path.exists():
                logger.warning("Auto backup skipped: database file not found (first run)")
                return AutoBackupResult(
                    success=False,
                    skipped=True,
                    message="Database not found - first run"
                )

            existing = sorted(
                backup_dir.glob(f"{AUTO_BACKUP_PREFIX}*"),
                key=lambda p: p.stat().st_mtime,
                reverse=True
            )
            removed = []
            for old in existing[retention:]:
                try:
                    old.unlink()
                    removed.append(str(old))
                except OSError as e:
                    logger.error(f"Error deleting old backup {old}: {e}")

            target = backup_dir / f"{AUTO_BACKUP_PREFIX}{file_timestamp()}.db"
            await _copy_live_file(store, target)
        except (OSError, SQLAlchemyError) as e:
            logger.error(f"Error creating auto backup: {e}")
            raise BackupError(f"Failed to create auto backup: {e}") from e

        logger.info(f"Auto backup created at {target}")
        return AutoBackupResult(
            success=True,
            path=str(target),
            message="Auto backup created",
            removed=removed
        )
