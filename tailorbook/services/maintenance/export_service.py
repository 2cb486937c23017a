import asyncio
import csv
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from sqlalchemy.exc import SQLAlchemyError

from tailorbook.core.exceptions import ExportError
from tailorbook.crud import order as order_crud
from tailorbook.db.store import TailorStore
from tailorbook.schemas.results import ExportResult
from tailorbook.services.maintenance.backup_service import file_timestamp

logger = logging.getLogger(__name__)

# (column, header title) in export order
EXPORT_COLUMNS = [
    ('unique_id', 'ID'),
    ('name', 'Name'),
    ('phone', 'Phone'),
    ('address', 'Address'),
    ('lambai', 'Lambai'),
    ('bazo', 'Bazo'),
    ('shoulder', 'Shoulder'),
    ('shoulder_down', 'Shoulder Down'),
    ('kalar_size', 'Kalar Size'),
    ('chati', 'Chati'),
    ('mora', 'Mora'),
    ('kamar', 'Kamar'),
    ('gira', 'Gira'),
    ('shalwar', 'Shalwar'),
    ('gira_shalwar', 'Gira Shalwar'),
    ('pancha', 'Pancha'),
    ('daman', 'Daman'),
    ('kanda', 'Kanda'),
    ('plat', 'Plat'),
    ('samne', 'Samne'),
    ('samne_size', 'Samne Size'),
    ('dbl_side', 'Side Jeeb'),
    ('pakat', 'Pakat'),
    ('pati', 'Pati'),
    ('kalar_ban', 'Kalar Ban'),
    ('kaf', 'Kaf'),
    ('btn_design', 'Button Design'),
    ('chamak_pati_btn', 'Chamak Pati Button'),
    ('salai', 'Salai'),
    ('design_no', 'Design No'),
    ('karigar_name', 'Karigar'),
    ('size', 'Size'),
    ('notes', 'Notes'),
    ('order_status', 'Order Status'),
    ('order_date', 'Order Date'),
    ('delivery_date', 'Delivery Date'),
    ('items_ordered', 'Items Ordered'),
    ('total_amount', 'Total Amount'),
    ('advance_payment', 'Advance Payment'),
    ('balance_amount', 'Balance Amount'),
    ('priority_level', 'Priority Level'),
    ('created_at', 'Created At'),
    ('updated_at', 'Updated At'),
]

EXPORT_HEADER = [title for _, title in EXPORT_COLUMNS]


def _write_csv(path: Path, rows: Sequence[List[str]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open('w', newline='', encoding='utf-8') as handle:
        # Minimal quoting: fields with a comma, quote or newline are quoted, inner quotes doubled
        writer = csv.writer(handle, quoting=csv.QUOTE_MINIMAL, lineterminator='\n')
        writer.writerow(EXPORT_HEADER)
        writer.writerows(rows)


class ExportService:

    @staticmethod
    async def export_csv(
        store: TailorStore,
        destination: Optional[Union[str, Path]] = None
    ) -> ExportResult:
        """Write every order to a CSV file; defaults to exports/customers_<timestamp>.csv."""
        target = Path(destination) if destination else store.export_dir / f"customers_{file_timestamp()}.csv"

        async with store.session() as db:
            try:
                orders = await order_crud.list_orders(db)
            except SQLAlchemyError as e:
                logger.error(f"Error reading orders for export: {e}")
                raise ExportError(f"Failed to read orders: {e}") from e

        rows = [
            ['' if getattr(order, column) is None else str(getattr(order, column))
             for column, _ in EXPORT_COLUMNS]
            for order in orders
        ]
        try:
            await asyncio.to_thread(_write_csv, target, rows)
        except OSError as e:
            logger.error(f"Error writing CSV export {target}: {e}")
            raise ExportError(f"Failed to write CSV export: {e}") from e

        logger.info(f"Exported {len(rows)} orders to {target}")
        return ExportResult(
            success=True,
            path=str(target),
            count=len(rows),
            message=f"Exported {len(rows)} orders to CSV"
        )
