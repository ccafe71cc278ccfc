"""
workflows.py: Order → work order → shipment → delivery flows

Each function takes a gateway (NGaugeClient or anything with the same
get_row / add_row / edit_row / get_all_data methods) and works with raw
NGauge rows.

Flow:
  0. Buyer: create_purchase_order(), add_po_item()   items start at Step 1
  1. PO item → create_work_order()            work_order at Step 1
  2. Work order Step 1..5 (kanban drag or edit form)
       Step 5 → wo_status "In warehouse", otherwise "Work in progress"
  3. Step 5 work orders → create_shipment()   shipment "In draft", items "Pending"
  4. update_shipment() back to "In draft" while editing,
     mark_shipment_ready()                    shipment "Ready to ship"
  5. Deliveries pick from ready_to_ship_items()
"""

import logging
from datetime import date

from supplier_portal.core.board import DEFAULT_BUCKETS, PersistOutcome, WorkItem
from supplier_portal.core.records import line_total, to_number
from supplier_portal.integrations.ngauge import NGaugeError

log = logging.getLogger("portal.workflows")

WORK_ORDER_TABLE = "work_order"
PO_TABLE = "purchase_orders"
PO_ITEM_TABLE = "purchase_order_items"
SHIPMENT_TABLE = "shipment_list"
SHIPMENT_ITEM_TABLE = "shipment_list_items"
DELIVERY_TABLE = "delivery_list"
DELIVERY_ITEM_TABLE = "delivery_list_items"

FIRST_STEP = DEFAULT_BUCKETS[0]
FINAL_STEP = DEFAULT_BUCKETS[-1]

WO_IN_WAREHOUSE = "In warehouse"
WO_IN_PROGRESS = "Work in progress"
SHIPMENT_DRAFT = "In draft"
SHIPMENT_READY = "Ready to ship"
SHIPMENT_ITEM_PENDING = "Pending"
PO_STATUS_DEFAULT = "Pending"
PO_STATUS_NEW = "pending"

PO_REQUIRED = ("po_issue_date", "vendor_name")
PO_ITEM_REQUIRED = ("item_code", "item", "unit_price", "quantity")
SHIPMENT_REQUIRED = ("carrier_name", "shipment_date", "tracking_number", "invoice_id")
SHIPMENT_ITEM_EDITABLE = ("document", "remarks", "shipment_status")


def today() -> str:
    return date.today().strftime("%Y-%m-%d")


def _po_key(row: dict) -> str:
    return f"{row.get('po_number', '')}_{row.get('item_code', '')}"


def require_fields(row: dict, fields, what: str):
    """ValueError naming every blank required field."""
    missing = [f for f in fields if row.get(f) is None or str(row.get(f)).strip() == ""]
    if missing:
        raise ValueError(f"{what}: missing {', '.join(missing)}")


# ─── Purchase orders ─────────────────────────────────────────────────────────

def create_purchase_order(gateway, po: dict) -> dict:
    """Add a purchase order and return the stored row (with its NGauge po_number)."""
    require_fields(po, PO_REQUIRED, "Purchase order")
    row = {
        "po_issue_date": po.get("po_issue_date"),
        "vendor_id": po.get("vendor_id") or "",
        "vendor_name": po.get("vendor_name"),
        "po_status": po.get("po_status") or PO_STATUS_NEW,
    }
    ref = gateway.add_row(PO_TABLE, row)
    stored = gateway.get_row(PO_TABLE, ref) if ref not in (None, "") else None
    if not stored:
        log.warning("Purchase order %s saved but could not be read back", ref)
        stored = dict(row, ROWID=ref)
    log.info("Purchase order %s created for %s", stored.get("po_number", ref), row["vendor_name"])
    return stored


def add_po_item(gateway, po_row_id, item: dict) -> dict:
    """Add an item under a purchase order. Starts at Step 1 with the PO's vendor and status."""
    po = gateway.get_row(PO_TABLE, po_row_id)
    if not po:
        raise NGaugeError(404, f"Purchase order {po_row_id} not found")
    require_fields(item, PO_ITEM_REQUIRED, "PO item")
    unit_price = to_number(item.get("unit_price"))
    quantity = to_number(item.get("quantity"))
    row = {
        "po_number": po.get("po_number") or "",
        "item_code": item.get("item_code"),
        "item": item.get("item"),
        "unit_price": unit_price,
        "quantity": quantity,
        "total": round(unit_price * quantity, 2),
        "status": FIRST_STEP,
        "step_name": "",
        "po_status": po.get("po_status") or "",
        "vendor_id": po.get("vendor_id") or "",
        "vendor_name": po.get("vendor_name") or "",
        "remarks": item.get("remarks") or "",
        "document": "",
    }
    row["ref"] = gateway.add_row(PO_ITEM_TABLE, {k: v for k, v in row.items() if k != "ref"})
    log.info("PO %s: item %s added (ref %s)", row["po_number"], row["item_code"], row["ref"])
    return row


# ─── Work orders ─────────────────────────────────────────────────────────────

def work_order_status(step) -> str:
    return WO_IN_WAREHOUSE if str(step) == FINAL_STEP else WO_IN_PROGRESS


def kanban_items(work_orders, po_items) -> list:
    """Work orders as board items, enriched with price/qty/status from their PO item."""
    by_key = {_po_key(p): p for p in po_items}
    items = []
    for wo in work_orders:
        po = by_key.get(_po_key(wo), {})
        extra = {k: v for k, v in wo.items() if k not in ("ROWID", "step")}
        extra["unit_price"] = to_number(po.get("unit_price"))
        extra["quantity"] = to_number(po.get("quantity"))
        extra["po_status"] = po.get("po_status") or PO_STATUS_DEFAULT
        if po.get("step_history") is not None:
            extra["step_history"] = po["step_history"]
        items.append(WorkItem(id=wo.get("ROWID"), status=str(wo.get("step") or FIRST_STEP),
                              extra=extra))
    return items


def po_item_board_items(po_items) -> list:
    """PO items for the dashboard board, keyed by ROWID, bucketed by ``status``."""
    items = []
    for row in po_items:
        item = WorkItem.from_row(row)
        item.extra["total"] = line_total(row)
        items.append(item)
    return items


def save_work_order(gateway, row: dict):
    """Save an edited work order. Stamps end_date and derives wo_status from step."""
    row_id = row.get("ROWID")
    if row_id in (None, ""):
        raise ValueError("Work order ROWID is missing")
    data = dict(row)
    data["end_date"] = today()
    data["wo_status"] = work_order_status(data.get("step"))
    gateway.edit_row(WORK_ORDER_TABLE, row_id, data)
    log.info("Work order %s saved (%s, %s)", row_id, data.get("step"), data["wo_status"])
    return data


def move_work_order_step(gateway, item: WorkItem, new_step: str) -> PersistOutcome:
    """Board persistence callback for the work-order kanban."""
    try:
        latest = gateway.get_row(WORK_ORDER_TABLE, item.id)
        if not latest:
            return PersistOutcome(False, f"Work order {item.id} not found")
        latest = dict(latest)
        latest["ROWID"] = item.id
        latest["step"] = new_step
        save_work_order(gateway, latest)
    except NGaugeError as e:
        return PersistOutcome(False, e.message)
    log.info("Work order %s%s moved to %s",
             latest.get("po_number", ""), latest.get("item_code", ""), new_step)
    return PersistOutcome(True)


def move_po_item_status(gateway, item: WorkItem, new_status: str) -> PersistOutcome:
    """Board persistence callback for the dashboard PO-item board."""
    try:
        latest = gateway.get_row(PO_ITEM_TABLE, item.id) or item.to_row()
        latest = dict(latest)
        latest["status"] = new_status
        gateway.edit_row(PO_ITEM_TABLE, item.id, latest)
    except NGaugeError as e:
        return PersistOutcome(False, e.message)
    return PersistOutcome(True)


def create_work_order(gateway, po_item_row_id) -> dict:
    """Start a work order at Step 1 from a PO item; flags the PO item."""
    po_item = gateway.get_row(PO_ITEM_TABLE, po_item_row_id)
    if not po_item:
        raise NGaugeError(404, f"PO item {po_item_row_id} not found")

    flagged = dict(po_item)
    flagged["work_order_created"] = "Yes"
    gateway.edit_row(PO_ITEM_TABLE, po_item_row_id, flagged)

    work_order = dict(po_item)
    work_order.update({
        "step": FIRST_STEP,
        "step_name": None,
        "document": None,
        "remarks": "",
        "start_date": today(),
    })
    ref = gateway.add_row(WORK_ORDER_TABLE, work_order)
    log.info("Work order created for PO %s item %s (ref %s)",
             po_item.get("po_number"), po_item.get("item_code"), ref)
    work_order.pop("ROWID", None)
    work_order["ref"] = ref
    return work_order


def completed_work_orders(work_orders) -> list:
    """Work orders at the final step; the only ones a shipment may include."""
    return [wo for wo in work_orders if str(wo.get("step") or "") == FINAL_STEP]


# ─── Shipments ───────────────────────────────────────────────────────────────

def shipment_item_from_work_order(work_order: dict, shipment_id: str = "") -> dict:
    unit_price = to_number(work_order.get("unit_price"))
    quantity = to_number(work_order.get("quantity"))
    return {
        "item_code": work_order.get("item_code") or "",
        "item": work_order.get("item") or "",
        "unit_price": unit_price,
        "shipment_quantity": quantity,
        "total": unit_price * quantity,
        "po_number": work_order.get("po_number") or "",
        "shipment_status": SHIPMENT_ITEM_PENDING,
        "work_order_id": work_order.get("workOrderId") or work_order.get("ROWID") or "",
        "document": "",
        "shipment_id": shipment_id,
    }


def create_shipment(gateway, shipment: dict, work_orders) -> dict:
    """Add a draft shipment and one Pending item per completed work order."""
    work_orders = list(work_orders)
    eligible = completed_work_orders(work_orders)
    skipped = len(work_orders) - len(eligible)
    if skipped:
        log.warning("Shipment: skipped %d work orders not at %s", skipped, FINAL_STEP)
    row = dict(shipment)
    row["shipment_status"] = SHIPMENT_DRAFT
    ref = gateway.add_row(SHIPMENT_TABLE, row)
    shipment_id = str(row.get("shipment_id") or ref or "")
    items = []
    for wo in eligible:
        item = shipment_item_from_work_order(wo, shipment_id)
        gateway.add_row(SHIPMENT_ITEM_TABLE, item)
        items.append(item)
    log.info("Shipment %s created with %d items", shipment_id, len(items))
    return {"shipment_id": shipment_id, "ref": ref, "items": items, "skipped": skipped}


def mark_shipment_ready(gateway, shipment_row_id) -> dict:
    shipment = gateway.get_row(SHIPMENT_TABLE, shipment_row_id)
    if not shipment:
        raise NGaugeError(404, f"Shipment {shipment_row_id} not found")
    shipment = dict(shipment)
    shipment["shipment_status"] = SHIPMENT_READY
    gateway.edit_row(SHIPMENT_TABLE, shipment_row_id, shipment)
    log.info("Shipment %s marked ready to ship", shipment.get("shipment_id", shipment_row_id))
    return shipment


def update_shipment_item_status(gateway, item_row_id, status: str) -> dict:
    return update_shipment_item(gateway, item_row_id,
                                {"shipment_status": status or SHIPMENT_ITEM_PENDING})


def update_shipment(gateway, shipment_row_id, fields: dict) -> dict:
    """Save edited shipment details. An edited shipment goes back to draft."""
    shipment = gateway.get_row(SHIPMENT_TABLE, shipment_row_id)
    if not shipment:
        raise NGaugeError(404, f"Shipment {shipment_row_id} not found")
    shipment = dict(shipment)
    shipment.update({k: v for k, v in fields.items() if k not in ("ROWID", "InfoveaveBatchId")})
    require_fields(shipment, SHIPMENT_REQUIRED, "Shipment")
    shipment["shipment_status"] = SHIPMENT_DRAFT
    gateway.edit_row(SHIPMENT_TABLE, shipment_row_id, shipment)
    log.info("Shipment %s updated", shipment.get("shipment_id", shipment_row_id))
    return shipment


def update_shipment_item(gateway, item_row_id, fields: dict) -> dict:
    """Edit a shipment item's document, remarks and status; other keys are ignored."""
    item = gateway.get_row(SHIPMENT_ITEM_TABLE, item_row_id)
    if not item:
        raise NGaugeError(404, f"Shipment item {item_row_id} not found")
    item = dict(item)
    for key in SHIPMENT_ITEM_EDITABLE:
        if key in fields:
            item[key] = fields[key]
    item["shipment_status"] = item.get("shipment_status") or SHIPMENT_ITEM_PENDING
    gateway.edit_row(SHIPMENT_ITEM_TABLE, item_row_id, item)
    return item


def ready_to_ship_items(shipments, shipment_items) -> list:
    """Shipment items whose parent shipment is Ready to ship (case-insensitive)."""
    status_by_id = {str(s.get("shipment_id") or ""): str(s.get("shipment_status") or "")
                    for s in shipments}
    ready = SHIPMENT_READY.lower()
    return [it for it in shipment_items
            if status_by_id.get(str(it.get("shipment_id") or ""), "").lower() == ready]


# ─── Grouping ────────────────────────────────────────────────────────────────

def group_children(parents, children, key: str, child_key: str = None) -> list:
    """[(parent, [children...])] matched on ``key`` (or parent key → ``child_key``)."""
    child_key = child_key or key
    buckets = {}
    for child in children:
        buckets.setdefault(str(child.get(child_key) or ""), []).append(child)
    return [(p, buckets.get(str(p.get(key) or ""), [])) for p in parents]


def po_total(items) -> float:
    return sum(line_total(it) for it in items)
