# routes_shipments.py: Shipments, shipment items, ready-to-ship

import logging

from flask import flash, jsonify, redirect, request

from supplier_portal.api.dashboard import (api_error, auth_required, bp, gateway, is_buyer, render,
                                           render_table, vendor_only)
from supplier_portal.api.templates import PAGE_RECORD_FORM
from supplier_portal.core.records import HIDDEN_COLUMNS, table_columns
from supplier_portal.core.workflows import (SHIPMENT_ITEM_TABLE, SHIPMENT_READY, SHIPMENT_TABLE,
                                            WORK_ORDER_TABLE, completed_work_orders,
                                            create_shipment, group_children, mark_shipment_ready,
                                            update_shipment, update_shipment_item,
                                            update_shipment_item_status)
from supplier_portal.integrations.ngauge import NGaugeError

log = logging.getLogger("portal.shipments")

SHIPMENT_HIDDEN = HIDDEN_COLUMNS + ("vendor_id", "vendor_name", "step_history")
SHIPMENT_FIELDS = (
    ("carrier_name", "Carrier", True),
    ("shipment_date", "Shipment date", True),
    ("tracking_number", "Tracking number", True),
    ("invoice_id", "Invoice ID", True),
)


@bp.route("/shipment")
@auth_required
def shipment_page():
    gw = gateway()
    shipments = gw.get_all_data(SHIPMENT_TABLE)
    items = gw.get_all_data(SHIPMENT_ITEM_TABLE)
    grouped = {id(s): kids for s, kids in group_children(shipments, items, "shipment_id")}

    def actions(row):
        if str(row.get("shipment_status") or "").lower() == SHIPMENT_READY.lower():
            return []
        return [{"label": "Edit", "href": f"/shipment/{row.get('ROWID')}/edit"},
                {"label": "Ready to ship",
                 "url": f"/api/shipment/{row.get('ROWID')}/ready",
                 "confirm": f"Mark shipment {row.get('shipment_id') or ''} ready to ship?"}]

    return render_table("Shipments", shipments,
                        columns=table_columns(shipments, hidden=SHIPMENT_HIDDEN),
                        children=lambda row: grouped.get(id(row), []),
                        child_hidden=SHIPMENT_HIDDEN, actions=None if is_buyer() else actions)


@bp.route("/api/shipment", methods=["POST"])
@auth_required
@vendor_only
def api_create_shipment():
    """Create a draft shipment from completed work orders.

    Body: {"shipment": {...fields}, "work_order_ids": [ROWID, ...]}
    """
    data = request.get_json(silent=True) or {}
    ids = {str(i) for i in data.get("work_order_ids") or []}
    if not ids:
        return jsonify({"ok": False, "error": "work_order_ids is required"}), 400
    try:
        gw = gateway()
        work_orders = [wo for wo in gw.get_all_data(WORK_ORDER_TABLE)
                       if str(wo.get("ROWID")) in ids]
        if not completed_work_orders(work_orders):
            return jsonify({"ok": False, "error": "None of the selected work orders are complete"}), 400
        result = create_shipment(gw, data.get("shipment") or {}, work_orders)
    except NGaugeError as e:
        return api_error(e)
    return jsonify({"ok": True, **result}), 201


@bp.route("/api/shipment/<row_id>/ready", methods=["POST"])
@auth_required
@vendor_only
def api_shipment_ready(row_id):
    try:
        shipment = mark_shipment_ready(gateway(), row_id)
    except NGaugeError as e:
        return api_error(e)
    return jsonify({"ok": True, "shipment": shipment})


@bp.route("/api/shipment/eligible-work-orders")
@auth_required
def api_eligible_work_orders():
    """Work orders at the final step; the candidates for a new shipment."""
    try:
        rows = completed_work_orders(gateway().get_all_data(WORK_ORDER_TABLE))
    except NGaugeError as e:
        return api_error(e)
    return jsonify({"ok": True, "work_orders": rows, "count": len(rows)})


@bp.route("/api/shipment/items/<row_id>/status", methods=["POST"])
@auth_required
@vendor_only
def api_shipment_item_status(row_id):
    data = request.get_json(silent=True) or {}
    try:
        item = update_shipment_item_status(gateway(), row_id, data.get("status", ""))
    except NGaugeError as e:
        return api_error(e)
    return jsonify({"ok": True, "item": item})


@bp.route("/api/shipment/items/<row_id>/delete", methods=["POST"])
@auth_required
@vendor_only
def api_shipment_item_delete(row_id):
    try:
        gateway().delete_row(SHIPMENT_ITEM_TABLE, row_id)
    except NGaugeError as e:
        return api_error(e)
    log.info("Shipment item %s deleted", row_id)
    return jsonify({"ok": True, "deleted": row_id})


@bp.route("/shipment/<row_id>/edit", methods=["GET", "POST"])
@auth_required
@vendor_only
def shipment_edit(row_id):
    gw = gateway()
    shipment = gw.get_row(SHIPMENT_TABLE, row_id)
    if not shipment:
        flash(f"Shipment {row_id} not found", "error")
        return redirect("/shipment")
    values = dict(shipment)
    if request.method == "POST":
        values.update(request.form.to_dict())
        try:
            update_shipment(gw, row_id, request.form.to_dict())
        except ValueError as e:
            flash(str(e), "error")
        else:
            flash("Shipment saved as draft", "success")
            return redirect("/shipment")
    return render(PAGE_RECORD_FORM, title="Edit shipment",
                  heading=f"Shipment {shipment.get('shipment_id') or row_id}",
                  back_url="/shipment", fields=SHIPMENT_FIELDS, values=values,
                  submit_label="Save shipment")


@bp.route("/api/shipment/<row_id>", methods=["POST"])
@auth_required
@vendor_only
def api_update_shipment(row_id):
    """Edit carrier, date, tracking number and invoice; the shipment returns to draft."""
    try:
        shipment = update_shipment(gateway(), row_id, request.get_json(silent=True) or {})
    except ValueError as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    except NGaugeError as e:
        return api_error(e)
    return jsonify({"ok": True, "shipment": shipment})


@bp.route("/api/shipment/items/<row_id>", methods=["POST"])
@auth_required
@vendor_only
def api_update_shipment_item(row_id):
    """Body: any of {"document", "remarks", "shipment_status"}."""
    try:
        item = update_shipment_item(gateway(), row_id, request.get_json(silent=True) or {})
    except NGaugeError as e:
        return api_error(e)
    return jsonify({"ok": True, "item": item})
