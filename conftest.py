"""
Shared pytest fixtures for the Supplier Portal test suite.

Routes run against an in-memory FakeGateway that mimics NGaugeClient, so
no test touches the network.
"""
import copy
import os
import sys

import pytest

_PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from supplier_portal.integrations.ngauge import CurrentUser, NGaugeError, PaginationData  # noqa: E402

TEST_TOKEN = "test-token-abc123"


# ── Fake NGauge gateway ───────────────────────────────────────────────────────

class FakeGateway:
    """In-memory stand-in for NGaugeClient. Rows are keyed by str(ROWID)."""

    def __init__(self, tables=None):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.calls = []
        self.tokens = []
        self.failures = {}   # (method, table) → NGaugeError
        self.user = CurrentUser(first_name="Vera", last_name="Vendor",
                                email="vera@acme.test", user_name="vera", role_id=3)
        self._next_id = 1000

    def bind(self, token):
        self.tokens.append(token)
        return self

    def fail(self, method, table=None, status=500, message="upstream exploded"):
        self.failures[(method, table)] = NGaugeError(status, message)

    def _check(self, method, table=None):
        self.calls.append((method, table))
        err = self.failures.get((method, table)) or self.failures.get((method, None))
        if err:
            raise err

    def _find(self, table, row_id):
        for row in self.tables.get(table, []):
            if str(row.get("ROWID")) == str(row_id):
                return row
        return None

    def get_data(self, table, skip=0, take=200, filters=None, sort=None):
        self._check("get_data", table)
        rows = self.tables.get(table, [])
        end = None if take is None else skip + take
        return PaginationData(rows=copy.deepcopy(rows[skip:end]), total=len(rows), table_name=table)

    def get_all_data(self, table, batch=200, filters=None, sort=None):
        self._check("get_all_data", table)
        return copy.deepcopy(self.tables.get(table, []))

    def get_row(self, table, row_id):
        self._check("get_row", table)
        row = self._find(table, row_id)
        return copy.deepcopy(row) if row else None

    def add_row(self, table, row):
        self._check("add_row", table)
        self._next_id += 1
        new = {k: v for k, v in row.items() if k not in ("ROWID", "InfoveaveBatchId")}
        new["ROWID"] = self._next_id
        self.tables.setdefault(table, []).append(new)
        return self._next_id

    def edit_row(self, table, row_id, row):
        self._check("edit_row", table)
        existing = self._find(table, row_id)
        if existing is None:
            raise NGaugeError(404, f"Row {row_id} not found")
        existing.update({k: v for k, v in row.items() if k not in ("ROWID", "InfoveaveBatchId")})
        return {"ROWID": row_id}

    def delete_row(self, table, row_id):
        self._check("delete_row", table)
        rows = self.tables.get(table, [])
        self.tables[table] = [r for r in rows if str(r.get("ROWID")) != str(row_id)]
        return {"ROWID": row_id}

    def current_user(self):
        self._check("current_user")
        return self.user


# ── Sample data ───────────────────────────────────────────────────────────────

@pytest.fixture
def sample_po_items():
    return [
        {"ROWID": 101, "po_number": "PO-1001", "item_code": "WID-01", "item": "Widget",
         "unit_price": 12.5, "quantity": 4, "status": "Step 1", "po_status": "Production",
         "work_order_created": "No", "InfoveaveBatchId": 7},
        {"ROWID": 102, "po_number": "PO-1001", "item_code": "GAD-02", "item": "Gadget",
         "unit_price": 40, "quantity": 2, "status": "Step 3", "po_status": "Pending",
         "work_order_created": "Yes", "InfoveaveBatchId": 7},
        {"ROWID": 103, "po_number": "PO-1002", "item_code": "SPR-03", "item": "Sprocket",
         "unit_price": 3, "quantity": 100, "status": "Draft", "po_status": "Completed",
         "work_order_created": "No", "InfoveaveBatchId": 8},
    ]


@pytest.fixture
def sample_work_orders():
    return [
        {"ROWID": 1, "po_number": "PO-1001", "item_code": "WID-01", "item": "Widget",
         "vendor_id": "V-9", "vendor_name": "Acme", "step": "Step 1",
         "wo_status": "Work in progress", "start_date": "2026-01-05", "InfoveaveBatchId": 3},
        {"ROWID": 2, "po_number": "PO-1001", "item_code": "GAD-02", "item": "Gadget",
         "vendor_id": "V-9", "vendor_name": "Acme", "step": "Step 5",
         "wo_status": "In warehouse", "start_date": "2026-01-06", "InfoveaveBatchId": 3},
    ]


@pytest.fixture
def sample_tables(sample_po_items, sample_work_orders):
    return {
        "purchase_orders": [
            {"ROWID": 11, "po_number": "PO-1001", "po_issue_date": "2026-01-02",
             "vendor_name": "Acme", "po_status": "Production"},
            {"ROWID": 12, "po_number": "PO-1002", "po_issue_date": "2026-02-10",
             "vendor_name": "Acme", "po_status": "Completed"},
        ],
        "purchase_order_items": sample_po_items,
        "work_order": sample_work_orders,
        "shipment_list": [
            {"ROWID": 51, "shipment_id": "SID-1", "shipment_status": "Ready to ship",
             "vendor_id": "V-9", "vendor_name": "Acme"},
            {"ROWID": 52, "shipment_id": "SID-2", "shipment_status": "In draft",
             "vendor_id": "V-9", "vendor_name": "Acme"},
        ],
        "shipment_list_items": [
            {"ROWID": 61, "shipment_id": "SID-1", "item_code": "GAD-02", "item": "Gadget",
             "shipment_status": "Pending", "shipment_quantity": 2},
            {"ROWID": 62, "shipment_id": "SID-2", "item_code": "WID-01", "item": "Widget",
             "shipment_status": "Pending", "shipment_quantity": 4},
        ],
        "delivery_list": [
            {"ROWID": 71, "delivery_id": "DID-1", "delivery_date": "2026-03-01",
             "delivery_status": "In transit"},
        ],
        "delivery_list_items": [
            {"ROWID": 81, "delivery_id": "DID-1", "shipment_id": "SID-1", "item": "Gadget"},
        ],
    }


@pytest.fixture
def fake_gateway(sample_tables):
    return FakeGateway(sample_tables)


# ── Flask test client ─────────────────────────────────────────────────────────

def _bearer_header(token=TEST_TOKEN):
    return {"Authorization": f"Bearer {token}"}


class AuthenticatedClient:
    """Wraps Flask test client to add a bearer token to every request."""
    def __init__(self, client, headers):
        self._client = client
        self._headers = headers

    def get(self, *args, **kwargs):
        kwargs.setdefault("headers", {}).update(self._headers)
        return self._client.get(*args, **kwargs)

    def post(self, *args, **kwargs):
        kwargs.setdefault("headers", {}).update(self._headers)
        return self._client.post(*args, **kwargs)


@pytest.fixture
def app(fake_gateway, monkeypatch):
    """Flask app wired to the fake gateway."""
    monkeypatch.setenv("DISABLE_RATE_LIMIT", "true")
    monkeypatch.delenv("PORTAL_BOARD_READONLY", raising=False)
    monkeypatch.delenv("PORTAL_DASHBOARD_SAVE", raising=False)
    from app import create_app
    return create_app(gateway=fake_gateway.bind, testing=True)


@pytest.fixture
def client(app):
    """Authenticated Flask test client (bearer token on every request)."""
    with app.test_client() as c:
        yield AuthenticatedClient(c, _bearer_header())


@pytest.fixture
def anon_client(app):
    """Unauthenticated test client."""
    with app.test_client() as c:
        yield c
