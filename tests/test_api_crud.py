"""CRUD endpoints, request validation and response headers."""


def test_create_get_and_list_customer(client):
    resp = client.post("/api/customers", json={"id": "c1", "name": "  Acme  ", "email": "a@acme.io"})

    assert resp.status_code == 201
    body = resp.json()
    assert body["id"] == "c1"
    assert body["name"] == "Acme"
    assert body["created_at"]

    assert client.get("/api/customers/c1").json()["email"] == "a@acme.io"
    assert [c["id"] for c in client.get("/api/customers").json()] == ["c1"]


def test_create_generates_an_id(client):
    body = client.post("/api/vendors", json={"name": "Parts Co"}).json()
    assert body["id"]
    assert client.get(f"/api/vendors/{body['id']}").status_code == 200


def test_get_missing_is_404_with_error_body(client):
    resp = client.get("/api/vehicles/ghost")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Vehicle not found"}


def test_missing_required_field_is_400(client):
    resp = client.post("/api/customers", json={"email": "nobody@example.com"})
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("name:")


def test_non_object_body_is_400(client):
    resp = client.post("/api/customers", json=["Acme"])
    assert resp.status_code == 400
    assert resp.json() == {"error": "request body must be a JSON object"}


def test_unknown_keys_are_ignored(client):
    resp = client.post("/api/customers", json={"id": "c1", "name": "Acme", "loyalty": "gold"})
    assert resp.status_code == 201
    assert "loyalty" not in resp.json()


def test_unknown_parent_is_409(client):
    resp = client.post(
        "/api/quotes",
        json={"number": "Q-1", "date": "2024-01-05", "customer_id": "ghost"},
    )
    assert resp.status_code == 409
    assert "error" in resp.json()


def test_vehicle_number_unique_ignoring_case(client):
    assert client.post("/api/vehicles", json={"vehicle_number": "cr-01"}).status_code == 201
    resp = client.post("/api/vehicles", json={"vehicle_number": "CR-01"})
    assert resp.status_code == 409


def test_update_merges_over_stored_record(client):
    client.post("/api/customers", json={"id": "c1", "name": "Acme", "email": "a@acme.io"})

    resp = client.put("/api/customers/c1", json={"phone": "555-0100"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Acme"
    assert body["email"] == "a@acme.io"
    assert body["phone"] == "555-0100"


def test_update_cannot_change_id(client):
    client.post("/api/customers", json={"id": "c1", "name": "Acme"})
    body = client.put("/api/customers/c1", json={"id": "c2", "name": "Acme Ltd"}).json()
    assert body["id"] == "c1"
    assert client.get("/api/customers/c2").status_code == 404


def test_update_is_revalidated(client):
    client.post("/api/employees", json={"id": "E001", "name": "Sam"})
    client.post("/api/payslips", json={"id": "p1", "employee_id": "E001", "month": "2024-03"})

    resp = client.put("/api/payslips/p1", json={"month": "March"})

    assert resp.status_code == 400
    assert client.get("/api/payslips/p1").json()["month"] == "2024-03"


def test_update_missing_is_404(client):
    resp = client.put("/api/customers/ghost", json={"name": "x"})
    assert resp.status_code == 404
    assert resp.json() == {"error": "Customer not found"}


def test_quote_items_are_replaced_on_update(client):
    client.post("/api/customers", json={"id": "c1", "name": "Acme"})
    client.post(
        "/api/quotes",
        json={
            "id": "q1",
            "number": "Q-100",
            "date": "2024-01-05",
            "customer_id": "c1",
            "items": [{"description": "Crane"}, {"description": "Driver"}],
        },
    )
    created = client.get("/api/quotes/q1").json()
    assert [i["serial_number"] for i in created["items"]] == [1, 2]

    updated = client.put("/api/quotes/q1", json={"items": [{"description": "Forklift"}]}).json()

    assert [i["description"] for i in updated["items"]] == ["Forklift"]


def test_employee_requires_an_id(client):
    resp = client.post("/api/employees", json={"name": "Sam"})
    assert resp.status_code == 400


def test_vehicle_transaction_month_comes_from_date(client):
    client.post("/api/vehicles", json={"id": "veh1", "vehicle_number": "CR-01"})
    body = client.post(
        "/api/vehicle-transactions",
        json={"vehicle_id": "veh1", "transaction_type": "revenue", "amount": 900, "date": "2024-04-11"},
    ).json()
    assert body["month"] == "2024-04"


def test_negative_amount_is_rejected(client):
    client.post("/api/vehicles", json={"id": "veh1", "vehicle_number": "CR-01"})
    resp = client.post(
        "/api/vehicle-transactions",
        json={"vehicle_id": "veh1", "transaction_type": "expense", "amount": -1, "date": "2024-04-11"},
    )
    assert resp.status_code == 400


def test_expense_categories_include_predefined(client):
    categories = client.get("/api/expense-categories").json()
    assert {c["name"] for c in categories} >= {"Fuel", "Maintenance", "Other"}
    assert all(c["is_custom"] is False for c in categories)


class TestPayslipsByMonth:
    def _seed(self, client):
        client.post("/api/employees", json={"id": "E001", "name": "Sam"})
        for pid, month in (("p1", "2024-03"), ("p2", "2024-04"), ("p3", "2024-03")):
            client.post("/api/payslips", json={"id": pid, "employee_id": "E001", "month": month})

    def test_filters_by_month(self, client):
        self._seed(client)
        resp = client.get("/api/payslips/month/2024-03")
        assert resp.status_code == 200
        assert sorted(p["id"] for p in resp.json()) == ["p1", "p3"]

    def test_no_payslips_is_empty_list(self, client):
        assert client.get("/api/payslips/month/2023-01").json() == []

    def test_bad_month_format(self, client):
        resp = client.get("/api/payslips/month/2024-3")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid month format. Expected YYYY-MM"}


class TestHeaders:
    def test_request_id_is_echoed(self, client):
        resp = client.get("/api/customers", headers={"X-Request-ID": "req-123"})
        assert resp.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self, client):
        assert client.get("/api/customers").headers["X-Request-ID"]

    def test_api_responses_are_not_cached(self, client):
        resp = client.get("/api/customers")
        assert resp.headers["Cache-Control"] == "no-store"
        assert resp.headers["API-Version"]

    def test_unknown_route_uses_error_envelope(self, client):
        resp = client.get("/api/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not Found"}


def test_healthz_reports_store(client, runtime):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"] == {
        "status": "healthy",
        "type": type(runtime.store).__name__,
    }
    assert body["version"]
