import base64
import json
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional
import sys

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from restaurant_reports.services import auth_utils
from restaurant_reports.services.report_repository import SupabaseReportDAO


class FakeReportDAO(SupabaseReportDAO):
    """In-memory DAO applying the same filters the PostgREST queries do."""

    def __init__(self):
        super().__init__("test-token")
        self.bills: List[Dict[str, Any]] = []
        self.orders: List[Dict[str, Any]] = []
        self.inventory: List[Dict[str, Any]] = []
        self.staff: List[Dict[str, Any]] = []
        self.menu_items: List[Dict[str, Any]] = []
        self.customers: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []

    async def fetch_bills(self, start: datetime, end: datetime, *, payment_status: Optional[str] = None):
        self.calls.append(("bills", start, end, payment_status))
        return [
            bill
            for bill in self.bills
            if start <= bill["created_at"] <= end
            and (payment_status is None or bill.get("payment_status") == payment_status)
        ]

    async def fetch_orders(self, start: datetime, end: Optional[datetime] = None):
        self.calls.append(("orders", start, end))
        return [
            order
            for order in self.orders
            if order["created_at"] >= start and (end is None or order["created_at"] <= end)
        ]

    async def fetch_inventory_items(self):
        self.calls.append(("inventory",))
        return list(self.inventory)

    async def fetch_staff_members(self):
        self.calls.append(("staff",))
        return [member for member in self.staff if member.get("role") != "admin"]

    async def fetch_menu_items(self):
        self.calls.append(("menu",))
        return list(self.menu_items)

    async def fetch_customers(self, start: datetime, end: Optional[datetime] = None):
        self.calls.append(("customers", start, end))
        return [
            customer
            for customer in self.customers
            if customer["created_at"] >= start and (end is None or customer["created_at"] <= end)
        ]


def _encode_segment(payload: Dict[str, Any]) -> str:
    raw = json.dumps(payload).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


class FakeStaffClient:
    """PostgREST client double serving the ``staff`` role lookup."""

    def __init__(self):
        self.roles: Dict[str, Optional[str]] = {}
        self.error: Optional[Exception] = None
        self.tokens: List[str] = []
        self._filters: Dict[str, Any] = {}

    def __call__(self, access_token: str, **_kwargs) -> "FakeStaffClient":
        self.tokens.append(access_token)
        return self

    def __enter__(self):
        return self

    def __exit__(self, *_exc):
        return False

    def table(self, _name: str):
        self._filters = {}
        return self

    def select(self, _columns: str):
        return self

    def eq(self, column: str, value: Any):
        self._filters[column] = value
        return self

    def limit(self, _count: int):
        return self

    def execute(self):
        if self.error is not None:
            raise self.error
        user_id = self._filters.get("id")
        if user_id not in self.roles:
            return SimpleNamespace(data=[])
        return SimpleNamespace(data=[{"role": self.roles[user_id]}])


@pytest.fixture(name="make_token")
def make_token_fixture():
    def _make(role: Optional[str] = "manager", sub: str = "user-1", *, alg: str = "HS256", **extra: Any) -> str:
        claims: Dict[str, Any] = {"sub": sub, "role": "authenticated", **extra}
        if role is not None:
            claims["app_metadata"] = {"role": role}
        header = _encode_segment({"alg": alg, "typ": "JWT"})
        return f"{header}.{_encode_segment(claims)}.signature"

    return _make


@pytest.fixture(name="staff_lookup")
def staff_lookup_fixture(monkeypatch: pytest.MonkeyPatch) -> FakeStaffClient:
    client = FakeStaffClient()
    monkeypatch.setattr(auth_utils, "create_postgrest_client", client)
    return client


@pytest.fixture(name="fake_dao")
def fake_dao_fixture() -> FakeReportDAO:
    return FakeReportDAO()
