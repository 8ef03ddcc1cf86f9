"""End-to-end delete behaviour over HTTP for every local store backend."""

from imanage.service.references import build_reference_registry


def _post(client, path, body):
    resp = client.post(f"/api/{path}", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _seed_customer_with_quote_and_invoice(client):
    _post(client, "customers", {"id": "c1", "name": "Acme"})
    _post(
        client,
        "quotes",
        {"id": "q1", "number": "Q-100", "date": "2024-01-05", "customer_id": "c1"},
    )
    _post(
        client,
        "invoices",
        {"id": "i1", "number": "INV-200", "date": "2024-01-20", "customer_id": "c1"},
    )


def test_customer_with_quote_and_invoice_is_blocked(client):
    _seed_customer_with_quote_and_invoice(client)

    resp = client.delete("/api/customers/c1")

    assert resp.status_code == 409
    assert resp.json() == {
        "error": "Cannot delete Customer as it is referenced in:\n"
        "- Quote Q-100\n"
        "- Invoice INV-200"
    }
    assert client.get("/api/customers/c1").status_code == 200


def test_vendor_blockers_are_cited_in_registration_order(client):
    _post(client, "vendors", {"id": "v1", "name": "Parts Co"})
    # invoice first so the message order cannot come from insertion order
    _post(
        client,
        "invoices",
        {"id": "i1", "number": "INV-100", "date": "2024-02-01", "vendor_id": "v1"},
    )
    _post(
        client,
        "purchase-orders",
        {"id": "po1", "number": "PO-100", "date": "2024-01-15", "vendor_id": "v1"},
    )

    resp = client.delete("/api/vendors/v1")

    assert resp.status_code == 409
    assert resp.json()["error"] == (
        "Cannot delete Vendor as it is referenced in:\n"
        "- Purchase Order PO-100\n"
        "- Invoice INV-100"
    )


def test_vehicle_used_in_quote_item_names_the_quote(client):
    _post(client, "customers", {"id": "c1", "name": "Acme"})
    _post(client, "vehicles", {"id": "veh1", "vehicle_number": "CR-01"})
    _post(
        client,
        "quotes",
        {
            "id": "q1",
            "number": "Q-100",
            "date": "2024-01-05",
            "customer_id": "c1",
            "items": [
                {"description": "Crane hire", "vehicle_type_id": "veh1", "quantity": 2},
                {"description": "Crane standby", "vehicle_type_id": "veh1", "quantity": 1},
            ],
        },
    )

    resp = client.delete("/api/vehicles/veh1")

    assert resp.status_code == 409
    assert resp.json() == {"error": "Cannot delete Vehicle as it is referenced in Quote Q-100"}


def test_employee_blocked_by_payslip_month(client):
    _post(client, "employees", {"id": "E001", "name": "Sam"})
    _post(client, "payslips", {"id": "p1", "employee_id": "E001", "month": "2024-03"})

    resp = client.delete("/api/employees/E001")

    assert resp.status_code == 409
    assert resp.json()["error"] == "Cannot delete Employee as it is referenced in Payslip 2024-03"


def test_generic_message_when_no_reference_can_be_named(client, runtime):
    _seed_customer_with_quote_and_invoice(client)
    runtime.resolver.registry = build_reference_registry(lambda *args: [])

    resp = client.delete("/api/customers/c1")

    assert resp.status_code == 409
    assert resp.json() == {"error": "Cannot delete Customer as it is referenced in other records"}


def test_unexpected_store_failure_is_500_with_message(client, runtime, monkeypatch):
    _post(client, "customers", {"id": "c1", "name": "Acme"})

    def broken_delete(entity, entity_id):
        raise RuntimeError("Database error")

    monkeypatch.setattr(runtime.store, "delete", broken_delete)

    resp = client.delete("/api/customers/c1")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Database error"}


def test_missing_record_is_404(client):
    resp = client.delete("/api/customers/ghost")

    assert resp.status_code == 404
    assert resp.json() == {"error": "Customer not found"}


def test_predefined_expense_category_is_protected(client):
    resp = client.delete("/api/expense-categories/cat_fuel")

    assert resp.status_code == 409
    assert resp.json() == {"error": "Cannot delete predefined expense category"}


def test_expense_category_in_use_is_protected(client):
    _post(client, "expense-categories", {"id": "tolls", "name": "Tolls"})
    _post(client, "vehicles", {"id": "veh1", "vehicle_number": "CR-01"})
    _post(
        client,
        "vehicle-transactions",
        {
            "vehicle_id": "veh1",
            "transaction_type": "expense",
            "amount": 12.5,
            "date": "2024-03-02",
            "category": "Tolls",
        },
    )

    resp = client.delete("/api/expense-categories/tolls")

    assert resp.status_code == 409
    assert resp.json() == {
        "error": "Cannot delete expense category that is used in transactions"
    }


def test_blocked_delete_is_repeatable(client):
    _seed_customer_with_quote_and_invoice(client)

    first = client.delete("/api/customers/c1")
    second = client.delete("/api/customers/c1")

    assert first.status_code == second.status_code == 409
    assert first.json() == second.json()


def test_delete_succeeds_once_dependents_are_removed(client):
    _seed_customer_with_quote_and_invoice(client)

    assert client.delete("/api/invoices/i1").status_code == 204
    assert client.delete("/api/quotes/q1").status_code == 204
    resp = client.delete("/api/customers/c1")

    assert resp.status_code == 204
    assert resp.content == b""
    assert client.get("/api/customers/c1").status_code == 404


def test_deleting_a_vehicle_removes_its_transactions(client):
    _post(client, "vehicles", {"id": "veh1", "vehicle_number": "CR-01"})
    txn = _post(
        client,
        "vehicle-transactions",
        {"vehicle_id": "veh1", "transaction_type": "revenue", "amount": 900, "date": "2024-04-11"},
    )

    assert client.delete("/api/vehicles/veh1").status_code == 204
    assert client.get(f"/api/vehicle-transactions/{txn['id']}").status_code == 404


def test_quote_referenced_by_invoice(client):
    _post(client, "quotes", {"id": "q1", "number": "Q-100", "date": "2024-01-05"})
    _post(
        client,
        "invoices",
        {"id": "i1", "number": "INV-1", "date": "2024-01-20", "quote_id": "q1"},
    )

    resp = client.delete("/api/quotes/q1")

    assert resp.status_code == 409
    assert resp.json() == {"error": "Cannot delete Quote as it is referenced in Invoice INV-1"}


def test_purchase_order_referenced_by_invoice(client):
    _post(client, "vendors", {"id": "v1", "name": "Parts Co"})
    _post(
        client,
        "purchase-orders",
        {"id": "po1", "number": "PO-100", "date": "2024-01-15", "vendor_id": "v1"},
    )
    _post(
        client,
        "invoices",
        {"id": "i1", "number": "INV-1", "date": "2024-02-01", "purchase_order_id": "po1"},
    )

    resp = client.delete("/api/purchase-orders/po1")

    assert resp.status_code == 409
    assert resp.json() == {
        "error": "Cannot delete Purchase Order as it is referenced in Invoice INV-1"
    }


def test_invoice_referenced_by_vehicle_transaction(client):
    _post(client, "vehicles", {"id": "veh1", "vehicle_number": "CR-01"})
    _post(client, "invoices", {"id": "i1", "number": "INV-1", "date": "2024-05-01"})
    _post(
        client,
        "vehicle-transactions",
        {
            "vehicle_id": "veh1",
            "transaction_type": "revenue",
            "amount": 1500,
            "date": "2024-05-03",
            "invoice_id": "i1",
        },
    )

    resp = client.delete("/api/invoices/i1")

    assert resp.status_code == 409
    assert resp.json() == {
        "error": "Cannot delete Invoice as it is referenced in Vehicle Transaction 2024-05-03"
    }


def test_employee_referenced_by_vehicle_transaction(client):
    _post(client, "employees", {"id": "E001", "name": "Sam"})
    _post(client, "vehicles", {"id": "veh1", "vehicle_number": "CR-01"})
    _post(
        client,
        "vehicle-transactions",
        {
            "vehicle_id": "veh1",
            "transaction_type": "expense",
            "amount": 300,
            "date": "2024-03-02",
            "category": "Driver Salary",
            "employee_id": "E001",
        },
    )

    resp = client.delete("/api/employees/E001")

    assert resp.status_code == 409
    assert resp.json() == {
        "error": "Cannot delete Employee as it is referenced in Vehicle Transaction 2024-03-02"
    }
