from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from postgrest import APIError

from restaurant_reports.api.routes import reports as report_routes
from restaurant_reports.main import app
from restaurant_reports.services.report_repository import ReportDataError


@pytest.fixture(name="api_client")
def client_fixture(fake_dao, staff_lookup):
    async def override_dao():
        return fake_dao

    app.dependency_overrides[report_routes.get_report_dao] = override_dao

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_missing_token_is_unauthorized(api_client: TestClient, fake_dao) -> None:
    response = api_client.get("/api/manager/reports", params={"type": "sales"})

    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}
    assert fake_dao.calls == []


def test_non_manager_is_unauthorized(api_client: TestClient, make_token, fake_dao) -> None:
    response = api_client.get("/api/manager/reports", headers=_auth(make_token(role="waiter")))

    assert response.status_code == 401
    assert fake_dao.calls == []


def test_sales_report_envelope_uses_camel_case(api_client: TestClient, make_token, fake_dao) -> None:
    fake_dao.bills = [
        {
            "id": "bill-1",
            "total": 42.0,
            "payment_method": "card",
            "payment_status": "paid",
            "created_at": datetime.now(timezone.utc) - timedelta(hours=1),
            "customer_name": "Alice",
            "customer_phone": None,
            "order": None,
        }
    ]

    response = api_client.get(
        "/api/manager/reports",
        params={"type": "sales", "period": "week"},
        headers=_auth(make_token()),
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["reportType"] == "sales"
    assert payload["period"] == "week"
    assert set(payload["timeRange"]) == {"startDate", "endDate"}
    assert "generatedAt" in payload
    assert payload["data"]["totalRevenue"] == 42.0
    assert payload["data"]["paymentMethods"][0] == {"method": "card", "amount": 42.0, "count": 1, "percentage": 100}


def test_invalid_report_type(api_client: TestClient, make_token, fake_dao) -> None:
    response = api_client.get(
        "/api/manager/reports",
        params={"type": "payroll"},
        headers=_auth(make_token()),
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid report type"}
    assert fake_dao.calls == []


def test_inverted_custom_range(api_client: TestClient, make_token) -> None:
    response = api_client.get(
        "/api/manager/reports",
        params={"type": "sales", "period": "custom", "startDate": "2024-05-10", "endDate": "2024-05-01"},
        headers=_auth(make_token()),
    )

    assert response.status_code == 400


@pytest.mark.parametrize("error", [ReportDataError("bills query failed"), RuntimeError("boom")])
def test_repository_failure_maps_to_500(api_client: TestClient, make_token, fake_dao, error) -> None:
    async def _failing_fetch(*_args, **_kwargs):
        raise error

    fake_dao.fetch_bills = _failing_fetch

    response = api_client.get("/api/manager/reports", headers=_auth(make_token()))

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to generate report"}


def test_staff_report_omits_metrics_not_tracked_for_role(api_client: TestClient, make_token, fake_dao) -> None:
    fake_dao.staff = [
        {"id": "will", "name": "Will", "role": "waiter"},
        {"id": "anna", "name": "Anna", "role": "chef"},
        {"id": "root", "name": "Root", "role": "admin"},
    ]

    response = api_client.get(
        "/api/manager/reports",
        params={"type": "staff"},
        headers=_auth(make_token()),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["totalStaff"] == 2
    performers = {performer["id"]: performer for performer in data["topPerformers"]}
    assert performers["will"]["tablesServed"] == 0
    assert "ordersHandled" not in performers["will"]
    assert performers["anna"]["ordersHandled"] == 0
    assert "tablesServed" not in performers["anna"]


def test_staff_row_grants_access_when_token_has_no_role(
    api_client: TestClient, make_token, staff_lookup
) -> None:
    staff_lookup.roles["user-9"] = "manager"
    token = make_token(role=None, sub="user-9")

    response = api_client.get("/api/manager/reports", params={"type": "menu"}, headers=_auth(token))

    assert response.status_code == 200
    assert staff_lookup.tokens == [token]
    assert response.json()["data"]["totalItems"] == 0


def test_staff_row_role_wins_over_token_claims(api_client: TestClient, make_token, staff_lookup, fake_dao) -> None:
    staff_lookup.roles["user-1"] = "waiter"

    response = api_client.get("/api/manager/reports", headers=_auth(make_token(role="manager")))

    assert response.status_code == 401
    assert fake_dao.calls == []


def test_user_metadata_role_is_ignored(api_client: TestClient, make_token, fake_dao) -> None:
    token = make_token(role=None, sub="user-2", user_metadata={"role": "manager"})

    response = api_client.get("/api/manager/reports", headers=_auth(token))

    assert response.status_code == 401
    assert fake_dao.calls == []


def test_forged_token_is_rejected_before_service_role_reads(
    make_token, staff_lookup, fake_dao, monkeypatch: pytest.MonkeyPatch
) -> None:
    built = []

    def _build_dao(token, *, api_key=None):
        built.append((token, api_key))
        return fake_dao

    monkeypatch.setattr(report_routes, "SUPABASE_SERVICE_ROLE_KEY", "service-key")
    monkeypatch.setattr(report_routes, "SupabaseReportDAO", _build_dao)
    staff_lookup.error = APIError({"message": "JWSError JWSInvalidSignature", "code": "PGRST301"})
    forged = make_token(role="manager", sub="attacker", alg="none", user_metadata={"role": "manager"})

    with TestClient(app) as client:
        response = client.get("/api/manager/reports", headers=_auth(forged))

    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}
    assert staff_lookup.tokens == [forged]
    assert built == []
    assert fake_dao.calls == []


def test_service_role_reads_follow_a_verified_caller(
    make_token, staff_lookup, fake_dao, monkeypatch: pytest.MonkeyPatch
) -> None:
    built = []

    def _build_dao(token, *, api_key=None):
        built.append((token, api_key))
        return fake_dao

    monkeypatch.setattr(report_routes, "SUPABASE_SERVICE_ROLE_KEY", "service-key")
    monkeypatch.setattr(report_routes, "SupabaseReportDAO", _build_dao)
    token = make_token()

    with TestClient(app) as client:
        response = client.get("/api/manager/reports", params={"type": "menu"}, headers=_auth(token))

    assert response.status_code == 200
    assert staff_lookup.tokens == [token]
    assert built == [("service-key", "service-key")]


def test_health(api_client: TestClient) -> None:
    response = api_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_inventory_report_lists_low_stock_items(api_client: TestClient, make_token, fake_dao) -> None:
    fake_dao.inventory = [
        {"id": "tomato", "name": "Tomato", "category": "Produce", "quantity": 2, "min_stock_level": 5,
         "total_cost": 6, "status": "In Stock", "unit": "kg", "cost_per_unit": 3},
        {"id": "rice", "name": "Rice", "category": "Dry", "quantity": 40, "min_stock_level": 5,
         "total_cost": 60, "status": "In Stock", "unit": "kg", "cost_per_unit": 1.5},
    ]

    response = api_client.post(
        "/api/manager/inventory/report",
        json={"reportType": "low-stock"},
        headers=_auth(make_token()),
    )

    assert response.status_code == 200
    payload = response.json()
    assert [item["id"] for item in payload["items"]] == ["tomato"]
    assert payload["items"][0]["minStockLevel"] == 5
    assert payload["summary"]["lowStockItems"] == 1
    assert payload["summary"]["categorySummary"] == {"Produce": {"count": 1, "value": 6.0}}
    assert "generatedAt" in payload


def test_inventory_report_without_body_lists_everything(api_client: TestClient, make_token, fake_dao) -> None:
    fake_dao.inventory = [
        {"id": "rice", "name": "Rice", "category": "Dry", "quantity": 40, "total_cost": 60},
        {"id": "beef", "name": "Beef", "category": "Meat", "quantity": 3, "total_cost": 90},
    ]

    response = api_client.post("/api/manager/inventory/report", headers=_auth(make_token()))

    assert response.status_code == 200
    assert response.json()["summary"]["totalItems"] == 2


def test_inventory_report_rejects_unknown_type(api_client: TestClient, make_token, fake_dao) -> None:
    response = api_client.post(
        "/api/manager/inventory/report",
        json={"reportType": "shrinkage"},
        headers=_auth(make_token()),
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid inventory report type"}
    assert fake_dao.calls == []


def test_inventory_report_requires_manager(api_client: TestClient, make_token, fake_dao) -> None:
    response = api_client.post("/api/manager/inventory/report", headers=_auth(make_token(role="chef")))

    assert response.status_code == 401
    assert fake_dao.calls == []


def test_dashboard_stats(api_client: TestClient, make_token) -> None:
    response = api_client.get("/api/manager/dashboard/stats", headers=_auth(make_token()))

    assert response.status_code == 200
    payload = response.json()
    assert payload["revenue"] == {"current": 0.0, "growth": 0.0}
    assert payload["orders"] == {"total": 0, "growth": 0.0}
    assert payload["customers"] == {"new": 0, "growth": 0.0}
    assert payload["averageOrderValue"] == {"current": 0, "previous": 0}


def test_dashboard_stats_failure(api_client: TestClient, make_token, fake_dao) -> None:
    async def _failing_fetch(*_args, **_kwargs):
        raise ReportDataError("customers query failed")

    fake_dao.fetch_customers = _failing_fetch

    response = api_client.get("/api/manager/dashboard/stats", headers=_auth(make_token()))

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to fetch manager statistics"}
