import pytest
import pytest_asyncio

from tailorbook.db.store import TailorStore


def make_order(unique_id=None, name="Ali Khan", phone="03001234567", **fields):
    order = {
        "name": name,
        "phone": phone,
        "address": "Main Bazar, Lahore",
    }
    if unique_id is not None:
        order["uniqueID"] = unique_id
    order.update(fields)
    return order


@pytest.fixture
def order_factory():
    """Builds order payloads keyed the way the UI sends them"""
    return make_order


@pytest_asyncio.fixture
async def store(tmp_path):
    """A store on a fresh data directory, closed after the test"""
    tailor_store = TailorStore(base_dir=tmp_path)
    await tailor_store.ensure_initialized()
    yield tailor_store
    await tailor_store.close()
