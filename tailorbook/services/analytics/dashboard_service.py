import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import String, and_, case, cast, func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from tailorbook.db.models.order import Order
from tailorbook.db.store import TailorStore

logger = logging.getLogger(__name__)


def _month_pattern(year: Optional[int], month: Optional[int]) -> str:
    today = date.today()
    return f"{year or today.year:04d}-{month or today.month:02d}%"


def _in_month(pattern: str):
    # Orders without an order date fall back to their creation time
    return or_(
        Order.order_date.like(pattern),
        and_(Order.order_date == '', cast(Order.created_at, String).like(pattern))
    )


class DashboardService:
    """Read-only summaries for the dashboard screen."""

    @staticmethod
    async def get_stats(store: TailorStore) -> Dict[str, Any]:
        """Total number of orders and the most recently created one."""
        empty = {"total_orders": 0, "latest_order": None}
        async with store.session() as db:
            try:
                total = (await db.execute(select(func.count()).select_from(Order))).scalar_one()
                latest = (await db.execute(
                    select(Order.unique_id, Order.name, Order.created_at)
                    .order_by(Order.created_at.desc(), Order.id.desc())
                    .limit(1)
                )).first()
            except SQLAlchemyError as e:
                logger.warning(f"Error getting database stats: {e}")
                return empty

        return {
            "total_orders": total,
            "latest_order": dict(latest._mapping) if latest else None,
        }

    @staticmethod
    async def get_monthly_summary(
        store: TailorStore,
        year: Optional[int] = None,
        month: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Order count, revenue and average order value for one month.

        Defaults to the current month. ``pending_orders`` counts every pending
        order regardless of month.
        """
        pattern = _month_pattern(year, month)
        empty = {"total_orders": 0, "total_revenue": 0, "avg_order_value": 0, "pending_orders": 0}

        monthly = select(
            func.count(),
            func.coalesce(func.sum(func.coalesce(Order.total_amount, 0)), 0),
            func.coalesce(func.avg(func.coalesce(Order.total_amount, 0)), 0),
        ).where(_in_month(pattern))
        pending = select(func.count()).select_from(Order).where(
            func.coalesce(Order.order_status, 'pending') == 'pending'
        )

        async with store.session() as db:
            try:
                total_orders, total_revenue, avg_order_value = (await db.execute(monthly)).one()
                pending_orders = (await db.execute(pending)).scalar_one()
            except SQLAlchemyError as e:
                logger.warning(f"Error getting monthly summary: {e}")
                return empty

        return {
            "total_orders": total_orders or 0,
            "total_revenue": total_revenue or 0,
            "avg_order_value": float(avg_order_value or 0),
            "pending_orders": pending_orders or 0,
        }

    @staticmethod
    async def get_popular_designs(store: TailorStore, limit: int = 5) -> List[Dict[str, Any]]:
        count = func.count().label("order_count")
        stmt = (
            select(Order.design_no, count)
            .where(Order.design_no.is_not(None), func.trim(Order.design_no) != '')
            .group_by(Order.design_no)
            .order_by(count.desc())
            .limit(limit)
        )
        async with store.session() as db:
            try:
                rows = (await db.execute(stmt)).all()
            except SQLAlchemyError as e:
                logger.warning(f"Error getting popular designs: {e}")
                return []
        return [{"design_no": row.design_no, "count": row.order_count} for row in rows]

    @staticmethod
    async def get_busy_days(
        store: TailorStore,
        year: Optional[int] = None,
        month: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Number of orders per day of the month, oldest day first."""
        pattern = _month_pattern(year, month)
        day = func.date(
            case(
                (or_(Order.order_date == '', Order.order_date.is_(None)), cast(Order.created_at, String)),
                else_=Order.order_date
            )
        ).label("day")
        count = func.count().label("order_count")
        stmt = (
            select(day, count)
            .where(_in_month(pattern))
            .group_by(day)
            .order_by(day.asc())
        )
        async with store.session() as db:
            try:
                rows = (await db.execute(stmt)).all()
            except SQLAlchemyError as e:
                logger.warning(f"Error getting busy days: {e}")
                return []
        return [{"day": row.day, "count": row.order_count} for row in rows]
