import json

import pytest
from pydantic import ValidationError

from tailorbook.core.exceptions import ImportFileNotFoundError
from tailorbook.services.maintenance.legacy_import import LegacyImportService, map_legacy_record


def _write_lines(path, *records):
    lines = [r if isinstance(r, str) else json.dumps(r) for r in records]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_map_legacy_record_defaults():
    mapped = map_legacy_record({
        "uniqueID": 12,
        "name": "Ali",
        "girashalwar": "20",
        "kalar_Ban": "round",
        "totalAmount": "1500",
        "balanceAmount": "99",
        "createdAt": "2023-04-05T10:00:00.000Z",
    })

    assert mapped["unique_id"] == "12"
    assert mapped["gira_shalwar"] == "20"
    assert mapped["kalar_ban"] == "round"
    assert mapped["total_amount"] == 1500
    assert mapped["balance_amount"] is None
    assert mapped["order_date"] == "2023-04-05"
    assert mapped["order_status"] == "pending"


@pytest.mark.asyncio
async def test_import_inserts_merges_and_skips(store, order_factory, tmp_path):
    await store.save_order(order_factory("2", name="Bilal", address="Old Address", notes=""))
    source = _write_lines(
        tmp_path / "data.json",
        {"uniqueID": "1", "name": "Ali Khan", "phone": "0300", "address": "Lahore", "totalAmount": 1000,
         "advancePayment": 300},
        {"uniqueID": "2", "name": "Changed", "phone": "0311", "address": "New", "notes": "from legacy"},
        "{not json",
        {"name": "No Id"},
        {"uniqueID": "3", "name": "Missing Phone", "address": "Lahore"},
    )

    result = await LegacyImportService.import_file(store, source)

    assert result.success is True
    assert result.total_lines == 5
    assert result.imported == 1
    assert result.updated == 1
    assert result.skipped == 3
    assert len(result.errors) == 2

    inserted = await store.get_order("1")
    assert inserted.balance_amount == 700

    merged = await store.get_order("2")
    assert merged.name == "Bilal"
    assert merged.address == "Old Address"
    assert merged.notes == "from legacy"
    assert await store.get_order("3") is None


@pytest.mark.asyncio
async def test_import_missing_file(store, tmp_path):
    with pytest.raises(ImportFileNotFoundError):
        await LegacyImportService.import_file(store, tmp_path / "missing.json")


@pytest.mark.asyncio
async def test_import_skips_line_with_invalid_utf8(store, tmp_path):
    source = tmp_path / "data.json"
    good = json.dumps({"uniqueID": "1", "name": "Ali Khan", "phone": "0300", "address": "Lahore"})
    source.write_bytes(good.encode("utf-8") + b"\n" + b'{"uniqueID": "2", "name": "\xff\xfe bad"}\n')

    result = await LegacyImportService.import_file(store, source)

    assert result.imported == 1
    assert result.skipped == 1
    assert len(result.errors) == 1
    assert (await store.get_order("1")).name == "Ali Khan"
    assert await store.get_order("2") is None


def test_map_legacy_record_rejects_fractional_id():
    with pytest.raises(ValidationError):
        map_legacy_record({"uniqueID": 1.5, "name": "Ali"})


@pytest.mark.asyncio
async def test_fractional_id_does_not_merge_into_existing(store, order_factory, tmp_path):
    await store.save_order(order_factory("1", name="Ali Khan", notes=""))
    source = _write_lines(
        tmp_path / "data.json",
        {"uniqueID": 1.5, "name": "Other", "phone": "0311", "address": "Karachi", "notes": "stray"},
    )

    result = await LegacyImportService.import_file(store, source)

    assert result.updated == 0
    assert result.skipped == 1
    assert (await store.get_order("1")).notes == ""
