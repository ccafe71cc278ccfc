"""
records.py: Row helpers shared by every table screen

NGauge rows are flat dicts with snake_case keys plus a couple of
bookkeeping columns (ROWID, InfoveaveBatchId). These helpers turn them
into table columns, filter and highlight them for search, paginate, and
pick badge classes for status cells.
"""

import html
import logging
import math
import re
from datetime import date, datetime

from dateutil import parser as dateparser

log = logging.getLogger("portal.records")

HIDDEN_COLUMNS = ("ROWID", "InfoveaveBatchId")
WORK_ORDER_COLUMNS = (
    "workOrderId", "item_code", "item", "vendor_id", "vendor_name",
    "step", "wo_status", "po_number", "document",
)
DATE_FORMAT = "%Y-%m-%d"
PAGE_SIZE = 50


# ─── Columns ─────────────────────────────────────────────────────────────────

def is_expression_key(key: str) -> bool:
    """Upstream computed columns come back keyed by their expression: '{...}'."""
    return str(key).startswith("{")


def column_label(key: str) -> str:
    """'po_issue_date' → 'Po Issue Date'. Computed expression keys → 'Work Order ID'."""
    if is_expression_key(key):
        return "Work Order ID"
    words = str(key).replace("_", " ").split(" ")
    return " ".join(w[:1].upper() + w[1:] for w in words)


def table_columns(rows, hidden=HIDDEN_COLUMNS, preferred=None) -> list:
    """[{key, label}] for a list of rows, in first-seen key order.

    ``preferred`` fixes the column list (work orders). A ``workOrderId``
    entry maps onto the computed expression column when the rows carry one.
    """
    keys = []
    for row in rows:
        for k in row:
            if k not in hidden and k not in keys:
                keys.append(k)
    if preferred:
        expr = next((k for k in keys if is_expression_key(k)), None)
        keys = [expr if (k == "workOrderId" and expr) else k for k in preferred]
    return [{"key": k, "label": column_label(k)} for k in keys]


def visible(row: dict, hidden=HIDDEN_COLUMNS) -> dict:
    return {k: v for k, v in row.items() if k not in hidden}


# ─── Search ──────────────────────────────────────────────────────────────────

def matches(row: dict, term: str) -> bool:
    """Case-insensitive substring match against every value in the row."""
    term = (term or "").strip().lower()
    if not term:
        return True
    return any(term in str(v).lower() for v in row.values() if v is not None)


def search(rows, term: str) -> list:
    return [r for r in rows if matches(r, term)]


def highlight(text, term: str) -> str:
    """HTML-escape ``text`` and wrap every case-insensitive match in <mark>."""
    text = "" if text is None else str(text)
    term = (term or "").strip()
    if not term:
        return html.escape(text)
    parts = re.split(f"({re.escape(term)})", text, flags=re.IGNORECASE)
    out = []
    for i, part in enumerate(parts):
        # re.split with one capture group puts matches at odd indexes
        if i % 2:
            out.append(f"<mark>{html.escape(part)}</mark>")
        else:
            out.append(html.escape(part))
    return "".join(out)


# ─── Formatting ──────────────────────────────────────────────────────────────

def parse_date(value):
    """Parse an upstream date value. Returns None when blank or unparseable."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return dateparser.parse(str(value))
    except (ValueError, OverflowError):
        return None


def format_date(value, fmt: str = DATE_FORMAT) -> str:
    """Format a date cell. Blank → '-', unparseable values pass through."""
    if value in (None, ""):
        return "-"
    parsed = parse_date(value)
    if parsed is None:
        return str(value)
    return parsed.strftime(fmt)


def is_date_column(key: str) -> bool:
    return str(key).endswith("_date") or str(key) in ("date", "created_at", "updated_at")


def format_number(value) -> str:
    """Thousands separators, whole part only: 12345.9 → '12,345'."""
    try:
        return f"{math.floor(float(value)):,}"
    except (TypeError, ValueError):
        return str(value or 0)


def to_number(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def line_total(row: dict) -> float:
    """PO item total from the upstream expression column, else unit_price × quantity."""
    for key, val in row.items():
        if "@unit_price * @quantity" in key or "expression" in key:
            return to_number(val)
    return to_number(row.get("unit_price")) * to_number(row.get("quantity"))


# ─── Pagination ──────────────────────────────────────────────────────────────

def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    return max(1, math.ceil(count / page_size)) if page_size > 0 else 1


def paginate(rows, page=1, page_size: int = PAGE_SIZE) -> dict:
    """Slice ``rows`` to one page. ``page`` is 1-based and clamped to range."""
    rows = list(rows)
    pages = total_pages(len(rows), page_size)
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    page = min(max(page, 1), pages)
    start = (page - 1) * page_size
    return {
        "rows": rows[start:start + page_size],
        "page": page,
        "pages": pages,
        "total": len(rows),
        "start": start + 1 if rows else 0,
        "end": min(start + page_size, len(rows)),
    }


# ─── Badges ──────────────────────────────────────────────────────────────────

_STATUS_TONES = {
    "completed": "success", "delivered": "success", "approved": "success",
    "ready to ship": "success",
    "pending": "warning", "in transit": "warning", "in draft": "warning",
    "shipped": "info", "production": "info", "processing": "info",
    "work in progress": "info", "in warehouse": "success",
    "cancelled": "error", "failed": "error",
}


def status_tone(status) -> str:
    """success / warning / info / error / primary for a status label."""
    return _STATUS_TONES.get(str(status or "").strip().lower(), "primary")


def badge_class(status) -> str:
    return f"badge b-{status_tone(status)}"


def step_number(step):
    """'Step 3' → 3. Anything else → None."""
    m = re.match(r"^\s*step\s*(\d+)\s*$", str(step or ""), re.IGNORECASE)
    return int(m.group(1)) if m else None
