import importlib.util
from pathlib import Path

import pytest

from imanage.service.runtime import reset_runtime_for_tests
from imanage.storage.memory import MemoryStore
from imanage.storage.schema import EntityType

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "find_references.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("find_references", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def script():
    return _load_script()


@pytest.fixture
def store():
    store = MemoryStore()
    reset_runtime_for_tests(store=store)
    store.create(EntityType.CUSTOMER, {"id": "c1", "name": "Acme"})
    store.create(EntityType.CUSTOMER, {"id": "c2", "name": "Idle Ltd"})
    store.create(
        EntityType.QUOTE,
        {"id": "q1", "number": "Q-100", "date": "2024-01-05", "customer_id": "c1"},
    )
    return store


def test_blocked_record(script, store, capsys):
    assert script.main(["customer", "c1"]) == 1
    assert capsys.readouterr().out.strip() == (
        "Cannot delete Customer as it is referenced in Quote Q-100"
    )
    assert store.get(EntityType.CUSTOMER, "c1") is not None


def test_free_record(script, store, capsys):
    assert script.main(["customer", "c2"]) == 0
    assert capsys.readouterr().out.strip() == "Customer can be deleted"
    assert store.get(EntityType.CUSTOMER, "c2") is not None


def test_missing_record(script, store, capsys):
    assert script.main(["customer", "ghost"]) == 2
    assert capsys.readouterr().out.strip() == "Customer not found"


def test_find_references_result(script, store):
    result = script.find_references("customer", "c1")
    assert result["status"] == "blocked"
    assert result["references"] == [{"type": "Quote", "label": "Q-100"}]


def test_store_failure_is_reported(script, store, monkeypatch, capsys):
    def broken_get(entity, entity_id):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(store, "get", broken_get)

    assert script.main(["vendor", "v1"]) == 3
    assert "database is locked" in capsys.readouterr().out


def test_unknown_entity_is_rejected(script):
    with pytest.raises(SystemExit) as excinfo:
        script.main(["spaceship", "x"])
    assert excinfo.value.code == 2


class TestExpenseCategories:
    def test_predefined_category_is_blocked(self, script, store, capsys):
        assert script.main(["expense_category", "cat_fuel"]) == 1
        assert capsys.readouterr().out.strip() == "Cannot delete predefined expense category"
        assert store.get(EntityType.EXPENSE_CATEGORY, "cat_fuel") is not None

    def test_category_in_use_is_blocked(self, script, store, capsys):
        store.create(EntityType.EXPENSE_CATEGORY, {"id": "tolls", "name": "Tolls", "is_custom": True})
        store.create(EntityType.VEHICLE, {"id": "veh1", "vehicle_number": "CR-01"})
        store.create(
            EntityType.VEHICLE_TRANSACTION,
            {
                "vehicle_id": "veh1",
                "transaction_type": "expense",
                "amount": 12.5,
                "date": "2024-03-02",
                "month": "2024-03",
                "category": "Tolls",
            },
        )

        assert script.main(["expense_category", "tolls"]) == 1
        assert capsys.readouterr().out.strip() == (
            "Cannot delete expense category that is used in transactions"
        )

    def test_unused_custom_category_is_free(self, script, store, capsys):
        store.create(EntityType.EXPENSE_CATEGORY, {"id": "tolls", "name": "Tolls", "is_custom": True})

        assert script.main(["expense_category", "tolls"]) == 0
        assert capsys.readouterr().out.strip() == "Expense Category can be deleted"
