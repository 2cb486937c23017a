"""
Import of the legacy line-delimited JSON data file.

Each non-blank line holds one order keyed by ``uniqueID`` in the UI's camelCase
field names. A bad line is counted and reported, never fatal to the batch.
"""
import asyncio
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from tailorbook.core.exceptions import ImportFileNotFoundError
from tailorbook.crud import order as order_crud
from tailorbook.db.models.order import Order
from tailorbook.db.store import TailorStore, validation_message
from tailorbook.schemas.order import OrderCreate, OrderFields, OrderRead
from tailorbook.schemas.results import ImportResult

logger = logging.getLogger(__name__)

_CREATE_FIELDS = tuple(OrderCreate.model_fields)


def map_legacy_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize a legacy record to order field names with current defaults."""
    fields = OrderFields.model_validate(record).model_dump(by_alias=False)
    if not fields['order_date']:
        created = str(record.get('createdAt') or '')
        fields['order_date'] = created.split('T')[0] if created else date.today().isoformat()
    # Legacy balances are recomputed from the amounts
    fields['balance_amount'] = None
    return {key: fields[key] for key in _CREATE_FIELDS}


def merge_into_existing(existing: Order, imported: Dict[str, Any]) -> Dict[str, Any]:
    """Fill only the existing order's empty fields; the existing unique id is kept."""
    current = OrderRead.model_validate(existing).model_dump(by_alias=False)
    merged = {key: current.get(key) for key in _CREATE_FIELDS}
    for key, value in imported.items():
        if not merged.get(key):
            merged[key] = value
    merged['unique_id'] = existing.unique_id
    return merged


class LegacyImportService:

    @staticmethod
    async def import_file(store: TailorStore, file_path: Union[str, Path]) -> ImportResult:
        path = Path(file_path) if file_path else None
        if path is None or not path.is_file():
            raise ImportFileNotFoundError(f"Legacy data file not found: {file_path}")

        raw = await asyncio.to_thread(path.read_bytes)
        lines = [line for line in raw.splitlines() if line.strip()]
        imported = updated = skipped = 0
        errors: List[str] = []

        # One session for the whole batch, the store has a single connection
        async with store.session() as db:
            for line in lines:
                try:
                    record = json.loads(line.decode('utf-8'))
                except ValueError as e:
                    errors.append(f"Parse error: {e}")
                    skipped += 1
                    continue
                if not isinstance(record, dict) or not record.get('uniqueID'):
                    skipped += 1
                    continue

                unique_id = str(record['uniqueID'])
                try:
                    mapped = map_legacy_record(record)
                    existing = await order_crud.get_order_by_unique_id(db, unique_id)
                    if existing is None:
                        outcome = await store.save_in_session(db, OrderCreate.model_validate(mapped))
                    else:
                        merged = merge_into_existing(existing, mapped)
                        outcome = await store.update_in_session(db, OrderCreate.model_validate(merged))
                except ValidationError as e:
                    errors.append(f"Row uniqueID={unique_id}: {validation_message(e)}")
                    skipped += 1
                    continue
                except SQLAlchemyError as e:
                    await db.rollback()
                    errors.append(f"Row uniqueID={unique_id}: {e}")
                    skipped += 1
                    continue

                if not outcome.success:
                    errors.append(f"Row uniqueID={unique_id}: {outcome.error}")
                    skipped += 1
                elif existing is None:
                    imported += 1
                else:
                    updated += 1

        logger.info(
            f"Legacy import from {path}: {imported} imported, {updated} updated, {skipped} skipped"
        )
        return ImportResult(
            success=True,
            imported=imported,
            updated=updated,
            skipped=skipped,
            total_lines=len(lines),
            errors=errors
        )
