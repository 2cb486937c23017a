from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from tailorbook.api.deps import get_store
from tailorbook.db.store import TailorStore
from tailorbook.schemas.order import LookupHit, OrderCreate, OrderRead, OrderStatusUpdate
from tailorbook.schemas.results import DeleteResult, SaveResult, UpdateResult
from tailorbook.services.search.lookup import highlight_text, lookup

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=List[OrderRead])
async def list_orders(
    q: Optional[str] = Query(None, description="Substring of name, phone or ID"),
    store: TailorStore = Depends(get_store)
):
    """All orders, highest ID first, optionally filtered by a server-side search."""
    if q and q.strip():
        return await store.search_orders(q)
    return await store.list_orders()


@router.get("/next-id", response_model=Dict[str, int])
async def next_unique_id(store: TailorStore = Depends(get_store)):
    return {"next_id": await store.next_unique_id()}


@router.get("/lookup", response_model=List[LookupHit])
async def lookup_orders(
    q: str = Query("", description="Search box text"),
    store: TailorStore = Depends(get_store)
):
    """
    Ranked fuzzy lookup over a fresh snapshot of every order,
    with the ID, name and phone highlighted for display.
    """
    snapshot = await store.list_orders()
    query = q.strip().lower()
    return [
        LookupHit(
            order=match.order,
            score=match.score,
            exact_id=match.exact_id,
            highlighted_id=highlight_text(match.order.unique_id, query),
            highlighted_name=highlight_text(match.order.name, query),
            highlighted_phone=highlight_text(match.order.phone, query),
        )
        for match in lookup(snapshot, query)
    ]


@router.get("/overdue", response_model=List[OrderRead])
async def overdue_orders(store: TailorStore = Depends(get_store)):
    return await store.list_overdue_orders()


@router.get("/status/{order_status}", response_model=List[OrderRead])
async def orders_by_status(order_status: str, store: TailorStore = Depends(get_store)):
    return await store.list_orders_by_status(order_status)


@router.get("/{unique_id}", response_model=OrderRead)
async def get_order(unique_id: str, store: TailorStore = Depends(get_store)):
    order = await store.get_order(unique_id)
    if order is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Order with uniqueID={unique_id} not found"
        )
    return order


@router.post("", response_model=SaveResult)
async def save_order(order: OrderCreate, store: TailorStore = Depends(get_store)):
    return await store.save_order(order)


@router.put("/{unique_id}", response_model=UpdateResult)
async def update_order(unique_id: str, order: OrderCreate, store: TailorStore = Depends(get_store)):
    return await store.update_order(order.model_copy(update={"unique_id": unique_id}))


@router.delete("/{unique_id}", response_model=DeleteResult)
async def delete_order(unique_id: str, store: TailorStore = Depends(get_store)):
    return await store.delete_order(unique_id)


@router.patch("/{unique_id}/status", response_model=UpdateResult)
async def update_order_status(
    unique_id: str,
    status_data: OrderStatusUpdate,
    store: TailorStore = Depends(get_store)
):
    return await store.update_order_status(unique_id, status_data.status)
