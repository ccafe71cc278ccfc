"""
NGauge Forms API Integration
============================

Thin client over the NGauge (Infoveave) forms API that backs every portal
screen. Each form is a table of rows keyed by ROWID.

  get-data     POST  ngauge/forms/{id}/get-data     paginated rows
  get-row      POST  ngauge/forms/{id}/get-row      one row by ROWID
  add row      POST  ngauge/forms/{id}/row
  edit row     PUT   ngauge/forms/{id}/row
  delete row   PATCH ngauge/forms/{id}/row/delete
  current user GET   User/CurrentUser

The caller's bearer token is forwarded as-is. The portal never holds
upstream credentials of its own.

Errors: every failure (HTTP status, timeout, connection, bad JSON) raises
NGaugeError with the upstream status code (or 502/504) and details.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

import requests

from supplier_portal.core.secrets import get_key, get_int

log = logging.getLogger("portal.ngauge")

# ─── Configuration ───────────────────────────────────────────────────────────

# Form ids on the NGauge tenant, by table name
FORMS = {
    "userregistration": 31,
    "item": 33,
    "purchase_orders": 41,
    "purchase_order_items": 42,
    "work_order": 44,
    "shipment_list_items": 47,
    "shipment_list": 52,
    "delivery_list": 53,
    "delivery_list_items": 54,
}

PRIMARY_KEY = "ROWID"
# Bookkeeping columns the upstream rejects on write
READONLY_COLUMNS = ("ROWID", "InfoveaveBatchId")


class NGaugeError(Exception):
    """Upstream call failed. ``status`` is the HTTP status to surface."""

    def __init__(self, status: int, message: str, details=None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        out = {"ok": False, "error": self.message, "status": self.status}
        if self.details:
            out["details"] = self.details
        return out


@dataclass
class PaginationData:
    rows: list
    total: int
    table_name: str = ""
    deleted_columns: list = field(default_factory=list)
    filter_data: list = field(default_factory=list)


@dataclass
class CurrentUser:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    user_name: str = ""
    role_id: Optional[int] = None

    @property
    def display_name(self) -> str:
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.user_name or self.email

    def to_dict(self) -> dict:
        return {
            "first_name": self.first_name, "last_name": self.last_name,
            "email": self.email, "user_name": self.user_name,
            "role_id": self.role_id, "display_name": self.display_name,
        }


def form_id(table: str) -> int:
    """Form id for a table name. Raises KeyError on unknown tables."""
    try:
        return FORMS[table]
    except KeyError:
        raise KeyError(f"Unknown NGauge table: {table}") from None


def _primary_key(row_id) -> dict:
    return {"primaryKey": PRIMARY_KEY, "value": str(row_id)}


def _writable(row: dict) -> dict:
    return {k: v for k, v in row.items() if k not in READONLY_COLUMNS}


def _unwrap(body):
    """Upstream wraps payloads as {"data": ...}."""
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


# ─── API Client ──────────────────────────────────────────────────────────────

class NGaugeClient:
    """Forms API client bound to one user's bearer token."""

    def __init__(self, token: str = "", session: requests.Session = None,
                 base_url: str = None, app_name: str = None,
                 app_version: str = None, timeout: int = None):
        self.token = token or ""
        self.session = session or requests.Session()
        self.base_url = (base_url or get_key("ngauge_base_url")).rstrip("/")
        self.app_name = app_name or get_key("ngauge_app_name")
        self.app_version = app_version or get_key("ngauge_app_version")
        self.timeout = timeout or get_int("ngauge_timeout", 15)

    def _headers(self) -> dict:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "x-web-app": self.app_name,
            "x-web-app-version": self.app_version,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, endpoint: str, data: dict = None):
        """Make an authenticated request to the NGauge API. Returns parsed JSON."""
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            resp = self.session.request(method, url, headers=self._headers(),
                                        json=data, timeout=self.timeout)
            resp.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else 502
            details = _error_details(e.response)
            message = details.get("message") if isinstance(details, dict) else None
            log.error("NGauge API error (%s %s): %s %s", method, endpoint, status, details)
            raise NGaugeError(status, message or f"NGauge returned HTTP {status}", details) from e
        except requests.Timeout as e:
            log.error("NGauge API timeout (%s %s) after %ss", method, endpoint, self.timeout)
            raise NGaugeError(504, "NGauge request timed out") from e
        except requests.RequestException as e:
            log.error("NGauge API error (%s %s): %s", method, endpoint, e)
            raise NGaugeError(502, f"NGauge unreachable: {e}") from e

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            log.error("NGauge API returned invalid JSON (%s %s)", method, endpoint)
            raise NGaugeError(502, "NGauge returned invalid JSON", resp.text[:500]) from e

    # ── Reads ────────────────────────────────────────────────────────────────

    def get_data(self, table: str, skip: int = 0, take: Optional[int] = 200,
                 filters: dict = None, sort: dict = None) -> PaginationData:
        """One page of rows from a form table."""
        fid = form_id(table)
        body = {"table": table, "skip": skip, "take": take, "NGaugeId": fid}
        if filters:
            body["filters"] = filters
        if sort:
            body["sort"] = sort
        payload = _unwrap(self._request("POST", f"ngauge/forms/{fid}/get-data", body)) or {}
        if isinstance(payload, list):
            return PaginationData(rows=payload, total=len(payload), table_name=table)
        rows = payload.get("data") or []
        return PaginationData(
            rows=rows,
            total=int(payload.get("TotalRowCount") or len(rows)),
            table_name=payload.get("tableName") or table,
            deleted_columns=payload.get("DeletedColumns") or [],
            filter_data=payload.get("filterData") or [],
        )

    def get_all_data(self, table: str, batch: int = 200, filters: dict = None,
                     sort: dict = None) -> list:
        """Every row of a table, paging until TotalRowCount or a short page."""
        rows = []
        skip = 0
        while True:
            page = self.get_data(table, skip=skip, take=batch, filters=filters, sort=sort)
            rows.extend(page.rows)
            skip += len(page.rows)
            if len(page.rows) < batch or skip >= page.total:
                break
        log.debug("Fetched %d rows from %s", len(rows), table)
        return rows

    def get_row(self, table: str, row_id) -> Optional[dict]:
        fid = form_id(table)
        body = {"primaryKeyData": _primary_key(row_id), "tableName": table}
        row = _unwrap(self._request("POST", f"ngauge/forms/{fid}/get-row", body))
        if not row:
            return None
        if isinstance(row, list):
            row = row[0] if row else None
            if row is None:
                return None
        row = dict(row)
        row.setdefault(PRIMARY_KEY, row_id)
        return row

    def current_user(self) -> CurrentUser:
        data = _unwrap(self._request("GET", "User/CurrentUser")) or {}
        return CurrentUser(
            first_name=data.get("firstName") or "",
            last_name=data.get("lastName") or "",
            email=data.get("email") or "",
            user_name=data.get("userName") or "",
            role_id=data.get("roleId"),
        )

    # ── Writes ───────────────────────────────────────────────────────────────

    def add_row(self, table: str, row: dict):
        """Create a row. Returns the upstream reference (new ROWID)."""
        fid = form_id(table)
        body = {"rowData": _writable(row), "tableName": table}
        result = _unwrap(self._request("POST", f"ngauge/forms/{fid}/row", body))
        log.info("Added row to %s: %s", table, result)
        return result

    def edit_row(self, table: str, row_id, row: dict):
        fid = form_id(table)
        body = {"primaryKeyData": _primary_key(row_id), "rowData": _writable(row),
                "tableName": table}
        result = _unwrap(self._request("PUT", f"ngauge/forms/{fid}/row", body))
        log.info("Updated %s row %s (%d fields)", table, row_id, len(body["rowData"]))
        return result

    def delete_row(self, table: str, row_id):
        fid = form_id(table)
        body = {"primaryKeyData": _primary_key(row_id), "tableName": table}
        result = _unwrap(self._request("PATCH", f"ngauge/forms/{fid}/row/delete", body))
        log.info("Deleted %s row %s", table, row_id)
        return result


def _error_details(resp):
    if resp is None:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text[:500] if resp.text else None
