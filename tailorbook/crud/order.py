import json
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import Integer, cast, delete, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from tailorbook.db.models.order import Order
from tailorbook.schemas.order import OrderCreate

# Columns written by save/update, everything the caller owns
_EDITABLE_COLUMNS = [
    c.name for c in Order.__table__.columns
    if c.name not in ('id', 'unique_id', 'status_history', 'created_at', 'updated_at')
]


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _order_values(order: OrderCreate) -> dict:
    data = order.model_dump(by_alias=False)
    values = {column: data.get(column) for column in _EDITABLE_COLUMNS}
    values['order_date'] = order.order_date or date.today().isoformat()
    values['balance_amount'] = order.resolved_balance()
    return values


def stored_history(raw) -> list:
    """
    Decode the history column as stored, keeping every entry.
    Text that is not a JSON list restarts the history.
    """
    if not raw:
        return []
    try:
        entries = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return entries if isinstance(entries, list) else []


def _ordered_by_unique_id(stmt):
    return stmt.order_by(cast(Order.unique_id, Integer).desc())


async def list_orders(db: AsyncSession) -> Sequence[Order]:
    result = await db.execute(_ordered_by_unique_id(select(Order)))
    return result.scalars().all()


async def get_order_by_unique_id(db: AsyncSession, unique_id: str) -> Optional[Order]:
    result = await db.execute(select(Order).where(Order.unique_id == str(unique_id)))
    return result.scalars().first()


async def search_orders(db: AsyncSession, query: str) -> Sequence[Order]:
    """Case-insensitive substring match on name, phone or unique id."""
    stmt = select(Order).where(
        or_(
            Order.name.icontains(query, autoescape=True),
            Order.phone.icontains(query, autoescape=True),
            Order.unique_id.icontains(query, autoescape=True),
        )
    )
    result = await db.execute(_ordered_by_unique_id(stmt))
    return result.scalars().all()


async def list_orders_by_status(db: AsyncSession, status: str) -> Sequence[Order]:
    stmt = select(Order).where(Order.order_status == status)
    result = await db.execute(_ordered_by_unique_id(stmt))
    return result.scalars().all()


async def list_overdue_orders(db: AsyncSession, today: str) -> Sequence[Order]:
    stmt = select(Order).where(
        Order.order_status != 'delivered',
        Order.delivery_date != '',
        Order.delivery_date < today,
    ).order_by(Order.delivery_date.asc())
    result = await db.execute(stmt)
    return result.scalars().all()


async def get_max_unique_id(db: AsyncSession) -> Optional[int]:
    result = await db.execute(select(func.max(cast(Order.unique_id, Integer))))
    return result.scalar()


async def count_orders(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(Order))
    return result.scalar_one()


async def insert_order(db: AsyncSession, order: OrderCreate) -> Order:
    """
    Insert a new order row and commit.
    The history starts with the initial status so later transitions append to it.
    """
    values = _order_values(order)
    history = [{
        'status': values['order_status'],
        'timestamp': utc_timestamp(),
        'note': 'Order created',
    }]
    db_order = Order(
        unique_id=order.unique_id,
        status_history=json.dumps(history),
        **values
    )
    db.add(db_order)
    await db.commit()
    await db.refresh(db_order)
    return db_order


async def update_order(db: AsyncSession, order: OrderCreate) -> int:
    """Overwrite every editable column of the order; returns the affected row count."""
    stmt = (
        update(Order)
        .where(Order.unique_id == order.unique_id)
        .values(**_order_values(order))
    )
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount


async def delete_order(db: AsyncSession, unique_id: str) -> int:
    result = await db.execute(delete(Order).where(Order.unique_id == str(unique_id)))
    await db.commit()
    return result.rowcount


async def append_status(db: AsyncSession, db_order: Order, new_status: str) -> List[dict]:
    """Record a status transition on an already loaded order."""
    history = stored_history(db_order.status_history)
    history.append({'status': new_status, 'timestamp': utc_timestamp()})
    db_order.order_status = new_status
    db_order.status_history = json.dumps(history)
    await db.commit()
    return history
