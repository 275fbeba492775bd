import uuid

import pytest

from dentalcare.db.row_store import RowStore
from dentalcare.models.inventory import InventoryCategory, StockStatus


@pytest.fixture
def store(db_session):
    return RowStore(db_session)


def _rows(prefix):
    return [
        {
            "name": f"{prefix}-{label}",
            "category": InventoryCategory.hygiene,
            "quantity": quantity,
            "minimum_quantity": 5,
            "status": status,
        }
        for label, quantity, status in [
            ("b", 3, StockStatus.low_stock),
            ("a", 40, StockStatus.in_stock),
            ("c", 0, StockStatus.out_of_stock),
        ]
    ]


def test_insert_select_filter_and_order(store):
    prefix = uuid.uuid4().hex[:8]
    inserted = store.insert("inventory_items", _rows(prefix))
    assert inserted.ok
    assert len(inserted.data) == 3
    ids = [row["id"] for row in inserted.data]

    by_name = store.select("inventory_items", {"id": ids}, order=["name"])
    assert [row["name"] for row in by_name.data] == [f"{prefix}-a", f"{prefix}-b", f"{prefix}-c"]

    by_quantity = store.select("inventory_items", {"id": ids}, order=["-quantity"], limit=2)
    assert [row["quantity"] for row in by_quantity.data] == [40, 3]

    alerts = store.select(
        "inventory_items",
        {"id": ids, "status": [StockStatus.low_stock, StockStatus.out_of_stock]},
        order=["quantity"],
    )
    assert [row["name"] for row in alerts.data] == [f"{prefix}-c", f"{prefix}-b"]


def test_update_and_delete_by_key(store):
    prefix = uuid.uuid4().hex[:8]
    ids = [row["id"] for row in store.insert("inventory_items", _rows(prefix)).data]

    updated = store.update("inventory_items", {"quantity": 12}, {"id": ids[0]})
    assert updated.ok
    assert [row["quantity"] for row in updated.data] == [12]

    nothing = store.update("inventory_items", {"quantity": 1}, {"id": -1})
    assert nothing.ok
    assert nothing.data == []

    removed = store.delete("inventory_items", {"id": ids[1]})
    assert [row["id"] for row in removed.data] == [ids[1]]
    remaining = store.select("inventory_items", {"id": ids})
    assert {row["id"] for row in remaining.data} == {ids[0], ids[2]}


def test_unknown_table_or_column_is_a_programming_error(store):
    with pytest.raises(ValueError):
        store.select("teeth")
    with pytest.raises(ValueError):
        store.select("inventory_items", {"colour": "red"})
    with pytest.raises(ValueError):
        store.update("inventory_items", {"colour": "red"}, {"id": 1})
