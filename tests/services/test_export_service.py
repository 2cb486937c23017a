import csv

import pytest

from tailorbook.services.maintenance.export_service import EXPORT_HEADER, ExportService


@pytest.mark.asyncio
async def test_export_reparses_to_stored_values(store, order_factory, tmp_path):
    await store.save_order(order_factory("1", name='Ali "Bhai" Khan', address="House 4, Street 2"))
    await store.save_order(order_factory("2", name="Bilal", notes="line one\nline two"))
    target = tmp_path / "out.csv"

    result = await ExportService.export_csv(store, target)

    assert result.success is True
    assert result.count == 2
    with target.open(newline="", encoding="utf-8") as handle:
        rows = list(csv.reader(handle))

    assert rows[0] == EXPORT_HEADER
    by_id = {row[0]: dict(zip(EXPORT_HEADER, row)) for row in rows[1:]}
    assert set(by_id) == {"1", "2"}
    assert by_id["1"]["Name"] == 'Ali "Bhai" Khan'
    assert by_id["1"]["Address"] == "House 4, Street 2"
    assert by_id["2"]["Notes"] == "line one\nline two"


@pytest.mark.asyncio
async def test_export_doubles_quotes(store, order_factory, tmp_path):
    await store.save_order(order_factory("1", name='Ali "Bhai"'))
    target = tmp_path / "out.csv"

    await ExportService.export_csv(store, target)

    assert '"Ali ""Bhai"""' in target.read_text(encoding="utf-8")


@pytest.mark.asyncio
async def test_export_default_destination(store):
    result = await ExportService.export_csv(store)

    assert result.count == 0
    assert result.path.startswith(str(store.export_dir))
    assert result.path.endswith(".csv")
