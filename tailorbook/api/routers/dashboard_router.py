from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from tailorbook.api.deps import get_store
from tailorbook.db.store import TailorStore
from tailorbook.services.analytics.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=Dict[str, Any])
async def get_stats(store: TailorStore = Depends(get_store)):
    return await DashboardService.get_stats(store)


@router.get("/monthly-summary", response_model=Dict[str, Any])
async def get_monthly_summary(
    year: Optional[int] = Query(None, ge=1),
    month: Optional[int] = Query(None, ge=1, le=12),
    store: TailorStore = Depends(get_store)
):
    """
    Revenue and order counts for a month, the current one by default.
    """
    return await DashboardService.get_monthly_summary(store, year, month)


@router.get("/popular-designs", response_model=List[Dict[str, Any]])
async def get_popular_designs(
    limit: int = Query(5, ge=1, le=50),
    store: TailorStore = Depends(get_store)
):
    return await DashboardService.get_popular_designs(store, limit)


@router.get("/busy-days", response_model=List[Dict[str, Any]])
async def get_busy_days(
    year: Optional[int] = Query(None, ge=1),
    month: Optional[int] = Query(None, ge=1, le=12),
    store: TailorStore = Depends(get_store)
):
    return await DashboardService.get_busy_days(store, year, month)
