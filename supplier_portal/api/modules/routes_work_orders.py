# routes_work_orders.py: Work order kanban/table views and edit form

import logging

from flask import flash, jsonify, redirect, request

from supplier_portal.api.dashboard import (api_error, auth_required, bp, forbidden, gateway,
                                           invalidate_boards, is_buyer, render, render_table,
                                           vendor_only)
from supplier_portal.api.modules.routes_board import BOARD_PAGES, board_read_only
from supplier_portal.api.templates import PAGE_BOARD, PAGE_WORK_ORDER_FORM
from supplier_portal.core.board import DEFAULT_BUCKETS
from supplier_portal.core.records import WORK_ORDER_COLUMNS, column_label, table_columns
from supplier_portal.core.workflows import WORK_ORDER_TABLE, save_work_order
from supplier_portal.integrations.ngauge import NGaugeError

log = logging.getLogger("portal.work_orders")

# Shown disabled in the edit form; derived or owned upstream
READONLY_FIELDS = ("po_number", "item_code", "item", "vendor_id", "vendor_name",
                   "wo_status", "start_date", "end_date")
FORM_HIDDEN = ("ROWID", "InfoveaveBatchId", "step_history")


def _view_toggle(view):
    other = "table" if view == "kanban" else "kanban"
    return f'<a class="btn" href="/work-order?view={other}">{other.title()} view</a>'


@bp.route("/work-order")
@auth_required
def work_order_page():
    view = request.args.get("view", "kanban")
    if view not in ("kanban", "table"):
        view = "kanban"
    buyer = is_buyer()
    if view == "kanban":
        return render(PAGE_BOARD, title="Work orders", heading="Work orders",
                      board_url="/api/board/work-order",
                      edit_url=None if buyer else "/work-order/__ID__",
                      q=request.args.get("q", "").strip(), keep_params={"view": view},
                      disabled=board_read_only(BOARD_PAGES["work-order"]),
                      toolbar_extra=_view_toggle(view))

    rows = gateway().get_all_data(WORK_ORDER_TABLE)
    return render_table(
        "Work orders", rows,
        columns=table_columns(rows, preferred=WORK_ORDER_COLUMNS),
        actions=None if buyer else (
            lambda row: [{"label": "Edit", "href": f"/work-order/{row.get('ROWID')}?view=table"}]),
        toolbar_extra=_view_toggle(view),
    )


@bp.route("/work-order/<row_id>", methods=["GET", "POST"])
@auth_required
@vendor_only
def work_order_edit(row_id):
    view = request.args.get("view", "kanban")
    gw = gateway()
    row = gw.get_row(WORK_ORDER_TABLE, row_id)
    if not row:
        flash(f"Work order {row_id} not found", "error")
        return redirect(f"/work-order?view={view}")

    if request.method == "POST":
        updated = dict(row)
        for key, value in request.form.items():
            if key not in READONLY_FIELDS and key not in FORM_HIDDEN:
                updated[key] = value
        updated["ROWID"] = row_id
        try:
            save_work_order(gw, updated)
        except NGaugeError as e:
            flash(f"Failed to update work order: {e.message}", "error")
            return redirect(f"/work-order/{row_id}?view={view}")
        invalidate_boards("work-order")
        flash("Work order updated", "success")
        return redirect(f"/work-order?view={view}")

    fields = [(k, column_label(k)) for k in row if k not in FORM_HIDDEN]
    if "step" not in row:
        fields.append(("step", "Step"))
    return render(PAGE_WORK_ORDER_FORM, title="Edit work order", row=row, fields=fields,
                  steps=DEFAULT_BUCKETS, readonly=READONLY_FIELDS, view=view)


@bp.route("/api/work-order/<row_id>", methods=["GET", "POST"])
@auth_required
def api_work_order(row_id):
    """GET: latest row from NGauge. POST: merge JSON fields and save."""
    gw = gateway()
    try:
        row = gw.get_row(WORK_ORDER_TABLE, row_id)
        if not row:
            return jsonify({"ok": False, "error": f"Work order {row_id} not found"}), 404
        if request.method == "GET":
            return jsonify({"ok": True, "row": row})
        if is_buyer():
            return forbidden("Buyers have read-only access to work orders")

        data = request.get_json(silent=True) or {}
        updated = dict(row)
        updated.update({k: v for k, v in data.items() if k not in FORM_HIDDEN})
        updated["ROWID"] = row_id
        saved = save_work_order(gw, updated)
    except NGaugeError as e:
        return api_error(e)
    invalidate_boards("work-order")
    return jsonify({"ok": True, "row": saved})
