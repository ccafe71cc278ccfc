# routes_orders.py: Purchase orders, PO items, work order creation

import logging

from flask import flash, jsonify, redirect, request

from supplier_portal.api.dashboard import (api_error, auth_required, bp, buyer_only, gateway,
                                           invalidate_boards, is_buyer, render, render_table,
                                           vendor_only)
from supplier_portal.api.templates import PAGE_RECORD_FORM
from supplier_portal.core.records import format_number, line_total
from supplier_portal.core.workflows import (PO_ITEM_TABLE, PO_TABLE, add_po_item,
                                            create_purchase_order, create_work_order,
                                            group_children, po_total)
from supplier_portal.integrations.ngauge import NGaugeError

log = logging.getLogger("portal.orders")

PO_FIELDS = (
    ("po_issue_date", "PO issue date", True),
    ("vendor_id", "Vendor ID", False),
    ("vendor_name", "Vendor name", True),
    ("po_status", "PO status", False),
)
PO_ITEM_FIELDS = (
    ("item_code", "Item code", True),
    ("item", "Item", True),
    ("unit_price", "Unit price", True),
    ("quantity", "Quantity", True),
    ("remarks", "Remarks", False),
)


def _items_with_totals(items):
    return [dict(it, total=line_total(it)) for it in items]


def _view_toggle(view):
    if view == "items":
        return '<a class="btn" href="/purchase-order">Orders view</a>'
    return '<a class="btn" href="/purchase-order?view=items">Items view</a>'


@bp.route("/purchase-order")
@auth_required
def purchase_order_page():
    """Purchase orders with their items, or a flat item list (?view=items)."""
    view = request.args.get("view", "orders")
    buyer = is_buyer()
    gw = gateway()
    items = _items_with_totals(gw.get_all_data(PO_ITEM_TABLE))
    toolbar = _view_toggle(view)
    if buyer:
        toolbar += '<a class="btn btn-p" href="/purchase-order/new">+ Add PO</a>'

    if view == "items":
        def actions(row):
            # Buyers see the flag only; creating the work order is the supplier's call
            if buyer or str(row.get("work_order_created") or "").lower() == "yes":
                return []
            return [{"label": "Create work order",
                     "url": f"/api/purchase-order/items/{row.get('ROWID')}/work-order",
                     "confirm": f"Create a work order for {row.get('item') or row.get('item_code')}?"}]
        return render_table("Purchase order items", items, actions=actions, toolbar_extra=toolbar)

    orders = gw.get_all_data(PO_TABLE)
    grouped = {id(po): kids for po, kids in group_children(orders, items, "po_number")}
    for po in orders:
        po["total"] = format_number(po_total(grouped[id(po)]))

    def order_actions(row):
        return [{"label": "Add item", "href": f"/purchase-order/{row.get('ROWID')}/items/new"}]

    return render_table("Purchase orders", orders,
                        children=lambda row: grouped.get(id(row), []),
                        actions=order_actions if buyer else None,
                        toolbar_extra=toolbar)


@bp.route("/purchase-order/new", methods=["GET", "POST"])
@auth_required
@buyer_only
def purchase_order_new():
    values = request.form.to_dict() if request.method == "POST" else {"po_status": "pending"}
    if request.method == "POST":
        try:
            po = create_purchase_order(gateway(), values)
        except ValueError as e:
            flash(str(e), "error")
        else:
            flash(f"Purchase order {po.get('po_number') or ''} created, add its items", "success")
            return redirect(f"/purchase-order/{po.get('ROWID')}/items/new")
    return render(PAGE_RECORD_FORM, title="New purchase order", heading="New purchase order",
                  back_url="/purchase-order", fields=PO_FIELDS, values=values,
                  submit_label="Create purchase order")


@bp.route("/purchase-order/<row_id>/items/new", methods=["GET", "POST"])
@auth_required
@buyer_only
def purchase_order_item_new(row_id):
    gw = gateway()
    po = gw.get_row(PO_TABLE, row_id)
    if not po:
        flash(f"Purchase order {row_id} not found", "error")
        return redirect("/purchase-order")
    values = request.form.to_dict() if request.method == "POST" else {}
    if request.method == "POST":
        try:
            item = add_po_item(gw, row_id, values)
        except ValueError as e:
            flash(str(e), "error")
        else:
            invalidate_boards("dashboard")
            flash(f"Item {item['item_code']} added to {item['po_number']}", "success")
            return redirect(f"/purchase-order/{row_id}/items/new")
    return render(PAGE_RECORD_FORM, title="Add PO item",
                  heading=f"Add item to {po.get('po_number') or row_id}",
                  back_url="/purchase-order", fields=PO_ITEM_FIELDS, values=values,
                  submit_label="Add item")


@bp.route("/api/purchase-order")
@auth_required
def api_purchase_orders():
    try:
        gw = gateway()
        orders = gw.get_all_data(PO_TABLE)
        items = _items_with_totals(gw.get_all_data(PO_ITEM_TABLE))
    except NGaugeError as e:
        return api_error(e)
    out = []
    for po, kids in group_children(orders, items, "po_number"):
        out.append(dict(po, items=kids, total=po_total(kids)))
    return jsonify({"ok": True, "purchase_orders": out, "count": len(out)})


@bp.route("/api/purchase-order", methods=["POST"])
@auth_required
@buyer_only
def api_create_purchase_order():
    """Body: {"po_issue_date", "vendor_name", "vendor_id"?, "po_status"?}"""
    try:
        po = create_purchase_order(gateway(), request.get_json(silent=True) or {})
    except ValueError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    except NGaugeError as e:
        return api_error(e)
    return jsonify({"ok": True, "purchase_order": po}), 201


@bp.route("/api/purchase-order/<row_id>/items", methods=["POST"])
@auth_required
@buyer_only
def api_add_po_item(row_id):
    """Body: {"item_code", "item", "unit_price", "quantity", "remarks"?}"""
    try:
        item = add_po_item(gateway(), row_id, request.get_json(silent=True) or {})
    except ValueError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    except NGaugeError as e:
        return api_error(e)
    invalidate_boards("dashboard")
    return jsonify({"ok": True, "item": item}), 201


@bp.route("/api/purchase-order/items/<row_id>/work-order", methods=["POST"])
@auth_required
@vendor_only
def api_create_work_order(row_id):
    try:
        work_order = create_work_order(gateway(), row_id)
    except NGaugeError as e:
        return api_error(e)
    invalidate_boards("work-order", "dashboard")
    return jsonify({"ok": True, "work_order": work_order}), 201
