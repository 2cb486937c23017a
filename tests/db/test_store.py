import asyncio
import json
import sqlite3

import pytest

from tailorbook.core.config import get_settings
from tailorbook.core.exceptions import DatabaseInitializationError
from tailorbook.db.store import TailorStore
from tailorbook.schemas.results import DUPLICATE_ORDER_ERROR, ORDER_NOT_FOUND_ERROR


@pytest.mark.asyncio
async def test_initialization_is_lazy(tmp_path):
    """Test that nothing is created until the first operation"""
    store = TailorStore(base_dir=tmp_path)
    assert not store.db_path.exists()
    assert store.initialized is False

    assert await store.list_orders() == []

    assert store.db_path.exists()
    assert store.initialized is True
    await store.close()


@pytest.mark.asyncio
async def test_concurrent_first_calls_initialize_once(tmp_path):
    store = TailorStore(base_dir=tmp_path)

    results = await asyncio.gather(*(store.count_orders() for _ in range(5)))

    assert results == [0] * 5
    await store.close()


@pytest.mark.asyncio
async def test_save_and_get_order(store, order_factory):
    result = await store.save_order(order_factory("1", total_amount=1500, advance_payment=500))

    assert result.success is True
    assert result.unique_id == "1"
    assert result.id is not None

    order = await store.get_order("1")
    assert order.name == "Ali Khan"
    assert order.balance_amount == 1000
    assert order.order_status == "pending"
    assert order.priority_level == "normal"
    assert order.order_date != ""
    assert [entry.status for entry in order.status_history] == ["pending"]
    assert order.status_history[0].note == "Order created"


@pytest.mark.asyncio
async def test_supplied_balance_is_kept(store, order_factory):
    await store.save_order(order_factory("1", total_amount=1000, advance_payment=200, balance_amount=50))

    order = await store.get_order(1)

    assert order.balance_amount == 50


@pytest.mark.asyncio
async def test_save_duplicate_unique_id(store, order_factory):
    await store.save_order(order_factory("5"))

    result = await store.save_order(order_factory("5", name="Someone Else"))

    assert result.success is False
    assert result.error == DUPLICATE_ORDER_ERROR
    assert (await store.get_order("5")).name == "Ali Khan"
    assert await store.count_orders() == 1


@pytest.mark.asyncio
async def test_save_without_unique_id_assigns_next(store, order_factory):
    await store.save_order(order_factory("9"))

    result = await store.save_order(order_factory(name="Bilal"))

    assert result.success is True
    assert result.unique_id == "10"


@pytest.mark.asyncio
async def test_save_rejects_missing_contact_fields(store, order_factory):
    result = await store.save_order(order_factory("1", phone=""))

    assert result.success is False
    assert "phone" in result.error
    assert await store.count_orders() == 0


@pytest.mark.asyncio
async def test_next_unique_id(store, order_factory):
    assert await store.next_unique_id() == 1

    await store.save_order(order_factory("2"))
    await store.save_order(order_factory("10"))

    assert await store.next_unique_id() == 11


@pytest.mark.asyncio
async def test_list_orders_numeric_descending(store, order_factory):
    for unique_id in ("2", "10", "9"):
        await store.save_order(order_factory(unique_id))

    orders = await store.list_orders()

    assert [order.unique_id for order in orders] == ["10", "9", "2"]


@pytest.mark.asyncio
async def test_update_order(store, order_factory):
    await store.save_order(order_factory("1", total_amount=800))

    result = await store.update_order(order_factory("1", name="Ali Raza", total_amount=1200, advance_payment=200))

    assert result.success is True
    assert result.changes == 1
    order = await store.get_order("1")
    assert order.name == "Ali Raza"
    assert order.balance_amount == 1000
    assert len(order.status_history) == 1


@pytest.mark.asyncio
async def test_update_missing_order(store, order_factory):
    result = await store.update_order(order_factory("42"))

    assert result.success is False
    assert result.error == ORDER_NOT_FOUND_ERROR


@pytest.mark.asyncio
async def test_update_requires_unique_id(store, order_factory):
    result = await store.update_order(order_factory())

    assert result.success is False
    assert result.error == "uniqueID is required"


@pytest.mark.asyncio
async def test_delete_order(store, order_factory):
    await store.save_order(order_factory("1"))

    deleted = await store.delete_order("1")
    missing = await store.delete_order("1")

    assert deleted.success is True
    assert deleted.changes == 1
    assert missing.success is False
    assert missing.changes == 0
    assert await store.get_order("1") is None


@pytest.mark.asyncio
async def test_status_change_appends_history(store, order_factory):
    await store.save_order(order_factory("1"))

    first = await store.update_order_status("1", "in_progress")
    second = await store.update_order_status("1", "delivered")

    assert first.success and second.success
    order = await store.get_order("1")
    assert order.order_status == "delivered"
    assert [entry.status for entry in order.status_history] == ["pending", "in_progress", "delivered"]
    assert all(entry.timestamp.endswith("Z") for entry in order.status_history)


@pytest.mark.asyncio
async def test_status_change_on_missing_order(store):
    result = await store.update_order_status("99", "delivered")

    assert result.success is False
    assert result.error == ORDER_NOT_FOUND_ERROR


@pytest.mark.asyncio
async def test_search_orders(store, order_factory):
    await store.save_order(order_factory("3", name="Ali Khan", phone="03001234567"))
    await store.save_order(order_factory("7", name="Bilal Ahmed", phone="03111112222"))

    by_name = await store.search_orders("ali")
    by_phone = await store.search_orders("0311")
    by_id = await store.search_orders("7")

    assert [order.unique_id for order in by_name] == ["3"]
    assert [order.unique_id for order in by_phone] == ["7"]
    assert "7" in [order.unique_id for order in by_id]


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(store, order_factory):
    await store.save_order(order_factory("1", name="Ali Khan"))

    assert await store.search_orders("%") == []


@pytest.mark.asyncio
async def test_orders_by_status_and_overdue(store, order_factory):
    from datetime import date

    await store.save_order(order_factory("1", delivery_date="2024-01-10"))
    await store.save_order(order_factory("2", delivery_date="2024-01-05", order_status="delivered"))
    await store.save_order(order_factory("3", delivery_date="2024-03-01"))
    await store.save_order(order_factory("4"))

    pending = await store.list_orders_by_status("pending")
    overdue = await store.list_overdue_orders(today=date(2024, 2, 1))

    assert [order.unique_id for order in pending] == ["4", "3", "1"]
    assert [order.unique_id for order in overdue] == ["1"]


@pytest.mark.asyncio
async def test_settings_round_trip(store):
    assert await store.get_setting("fontSize") is None
    assert await store.get_setting("fontSize", "14") == "14"

    assert (await store.set_setting("fontSize", 16)).success is True
    assert (await store.set_setting("fontSize", "18")).success is True

    assert await store.get_setting("fontSize", "14") == "18"
    assert await store.get_all_settings() == {"fontSize": "18"}


@pytest.mark.asyncio
async def test_data_survives_reopen(store, order_factory):
    await store.save_order(order_factory("1"))

    await store.reopen()

    assert (await store.get_order("1")).name == "Ali Khan"


@pytest.mark.asyncio
async def test_corrupt_file_is_quarantined(tmp_path):
    db_dir = tmp_path / "database"
    db_dir.mkdir()
    (db_dir / "data.db").write_bytes(b"this is definitely not a sqlite file" * 100)

    store = TailorStore(base_dir=tmp_path)
    assert await store.list_orders() == []
    await store.close()

    quarantined = list(db_dir.glob("data.db.backup.*"))
    assert len(quarantined) == 1
    assert quarantined[0].read_bytes().startswith(b"this is definitely not")


@pytest.mark.asyncio
async def test_older_file_gets_missing_columns(tmp_path):
    db_dir = tmp_path / "database"
    db_dir.mkdir()
    conn = sqlite3.connect(db_dir / "data.db")
    conn.execute(
        "CREATE TABLE orders ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, unique_id VARCHAR(32) NOT NULL UNIQUE, "
        "name TEXT NOT NULL, phone TEXT NOT NULL, address TEXT NOT NULL, "
        "created_at DATETIME DEFAULT CURRENT_TIMESTAMP, updated_at DATETIME DEFAULT CURRENT_TIMESTAMP)"
    )
    conn.execute("INSERT INTO orders (unique_id, name, phone, address) VALUES ('4', 'Old', '0300', 'Town')")
    conn.commit()
    conn.close()

    store = TailorStore(base_dir=tmp_path)
    order = await store.get_order("4")
    await store.close()

    assert order.name == "Old"
    assert order.order_status == "pending"
    assert order.design_no == ""
    assert order.status_history == []

    conn = sqlite3.connect(db_dir / "data.db")
    columns = {row[1] for row in conn.execute("PRAGMA table_info(orders)")}
    conn.close()
    assert {"order_status", "status_history", "design_no", "priority_level"} <= columns


@pytest.mark.asyncio
async def test_unusable_directory_raises(tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("a file, not a directory")

    store = TailorStore(base_dir=blocker)

    with pytest.raises(DatabaseInitializationError):
        await store.ensure_initialized()
    assert await store.next_unique_id() == 1


def _write_column(store, unique_id, column, value):
    conn = sqlite3.connect(store.db_path)
    conn.execute(f"UPDATE orders SET {column} = ? WHERE unique_id = ?", (value, unique_id))
    conn.commit()
    conn.close()


def _read_history(store, unique_id):
    conn = sqlite3.connect(store.db_path)
    raw = conn.execute("SELECT status_history FROM orders WHERE unique_id = ?", (unique_id,)).fetchone()[0]
    conn.close()
    return json.loads(raw)


@pytest.mark.asyncio
async def test_status_change_keeps_unrecognised_history_entries(store, order_factory):
    await store.save_order(order_factory("1"))
    await store.close()
    _write_column(store, "1", "status_history",
                  json.dumps([{"state": "legacy"}, {"status": "pending", "timestamp": "t"}]))

    result = await store.update_order_status("1", "delivered")
    await store.close()

    assert result.success is True
    history = _read_history(store, "1")
    assert history[:2] == [{"state": "legacy"}, {"status": "pending", "timestamp": "t"}]
    assert history[2]["status"] == "delivered"
    assert len(history) == 3


@pytest.mark.asyncio
async def test_status_change_restarts_unparseable_history(store, order_factory):
    await store.save_order(order_factory("1"))
    await store.close()
    _write_column(store, "1", "status_history", "{not json")

    result = await store.update_order_status("1", "delivered")

    assert result.success is True
    order = await store.get_order("1")
    assert [entry.status for entry in order.status_history] == ["delivered"]


@pytest.mark.asyncio
async def test_null_balance_reads_as_zero(store, order_factory):
    await store.save_order(order_factory("1", total_amount=500))
    await store.save_order(order_factory("2"))
    await store.close()
    _write_column(store, "1", "balance_amount", None)

    orders = await store.list_orders()

    assert [order.unique_id for order in orders] == ["2", "1"]
    assert orders[1].balance_amount == 0
    assert (await store.get_order("1")).balance_amount == 0


def test_default_location_follows_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    get_settings.cache_clear()
    try:
        store = TailorStore()
    finally:
        get_settings.cache_clear()

    assert store.db_dir == tmp_path / "database"
    assert store.db_path == tmp_path / "database" / "data.db"
