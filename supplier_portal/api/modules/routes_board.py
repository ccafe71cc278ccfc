# routes_board.py: Status board pages + board JSON API
# Boards live in the app's BoardRegistry, one per (session, page).

import logging

from flask import jsonify, request

from supplier_portal.api.dashboard import (api_error, auth_required, board_registry, bp, forbidden,
                                           gateway, is_buyer, render, session_key)
from supplier_portal.api.templates import PAGE_BOARD
from supplier_portal.core.board import REVERTED, StatusBoard
from supplier_portal.core.records import matches
from supplier_portal.core.secrets import get_bool
from supplier_portal.core.security import rate_limit
from supplier_portal.core.workflows import (PO_ITEM_TABLE, WORK_ORDER_TABLE, kanban_items,
                                            move_po_item_status, move_work_order_step,
                                            po_item_board_items)
from supplier_portal.integrations.ngauge import NGaugeError

log = logging.getLogger("portal.board_api")


def _load_po_items(gw):
    return po_item_board_items(gw.get_all_data(PO_ITEM_TABLE))


def _load_work_orders(gw):
    return kanban_items(gw.get_all_data(WORK_ORDER_TABLE), gw.get_all_data(PO_ITEM_TABLE))


BOARD_PAGES = {
    "dashboard": {
        "title": "Purchase order items",
        "status_key": "status",
        "load": _load_po_items,
        "persist": move_po_item_status,
        "save_setting": "dashboard_board_save",
    },
    "work-order": {
        "title": "Work orders",
        "status_key": "step",
        "load": _load_work_orders,
        "persist": move_work_order_step,
    },
}


def saves_upstream(cfg) -> bool:
    """Whether moves on this board are written back to NGauge."""
    setting = cfg.get("save_setting")
    return not setting or get_bool(setting)


def board_read_only(cfg) -> bool:
    # Buyers watch the boards that write upstream but cannot move cards on them
    return get_bool("board_readonly") or (saves_upstream(cfg) and is_buyer())


def _persist_for(cfg):
    # Runs inside the move request, so gateway() sees that request's token
    def persist(item, new_status):
        if not saves_upstream(cfg):
            log.debug("%s: %s moved to %s locally", cfg["title"], item.id, new_status)
            return None
        return cfg["persist"](gateway(), item, new_status)
    return persist


def _board_for(page):
    cfg = BOARD_PAGES[page]
    return board_registry().get(
        session_key(), page,
        lambda: StatusBoard(_persist_for(cfg), name=f"board:{page}"),
    )


def _board_json(board, cfg, q=""):
    data = board.to_dict(status_key=cfg["status_key"])
    if q:
        for bucket in data["buckets"]:
            bucket["items"] = [it for it in bucket["items"] if matches(it, q)]
    return data


def _unknown_board(page):
    return jsonify({"ok": False, "error": f"Unknown board: {page}"}), 404


# ═══════════════════════════════════════════════════════════════════════
# Pages
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/")
@auth_required
def home():
    """Dashboard: purchase order items as a status board."""
    return render(PAGE_BOARD, title="Dashboard", heading=BOARD_PAGES["dashboard"]["title"],
                  board_url="/api/board/dashboard", edit_url=None,
                  q=request.args.get("q", "").strip(), keep_params={},
                  disabled=board_read_only(BOARD_PAGES["dashboard"]), toolbar_extra="")


# ═══════════════════════════════════════════════════════════════════════
# Board API
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/api/board/<page>")
@auth_required
def api_board(page):
    """Current board columns.

    Loads from NGauge on first use, after a portal edit dropped the board, or
    on ?refresh=1 (the board page always asks for a refresh when it opens).
    """
    cfg = BOARD_PAGES.get(page)
    if not cfg:
        return _unknown_board(page)
    board = _board_for(page)
    if board.generation == 0 or request.args.get("refresh"):
        try:
            items = cfg["load"](gateway())
        except NGaugeError as e:
            return api_error(e)
        board.initialize(items, disabled=board_read_only(cfg))
    return jsonify({"ok": True, "board": _board_json(board, cfg, request.args.get("q", "").strip())})


@bp.route("/api/board/<page>/begin", methods=["POST"])
@auth_required
def api_board_begin(page):
    cfg = BOARD_PAGES.get(page)
    if not cfg:
        return _unknown_board(page)
    if saves_upstream(cfg) and is_buyer():
        return forbidden("Buyers cannot move cards on this board")
    board = board_registry().peek(session_key(), page)
    if board is None:
        return jsonify({"ok": False, "error": "Board not loaded"}), 409
    data = request.get_json(silent=True) or {}
    item = board.begin_move(data.get("item_id"))
    return jsonify({
        "ok": True,
        "active": item.to_row(status_key=cfg["status_key"]) if item else None,
    })


@bp.route("/api/board/<page>/move", methods=["POST"])
@auth_required
@rate_limit("board")
def api_board_move(page):
    """Drop item_id over over_id (a bucket label or slug, or another item's id)."""
    cfg = BOARD_PAGES.get(page)
    if not cfg:
        return _unknown_board(page)
    if saves_upstream(cfg) and is_buyer():
        return forbidden("Buyers cannot move cards on this board")
    board = board_registry().peek(session_key(), page)
    if board is None:
        return jsonify({"ok": False, "error": "Board not loaded"}), 409
    data = request.get_json(silent=True) or {}
    if data.get("item_id") in (None, ""):
        return jsonify({"ok": False, "error": "item_id is required"}), 400

    result = board.complete_move(data["item_id"], data.get("over_id"))
    return jsonify({
        "ok": result.state != REVERTED,
        "result": result.to_dict(),
        "board": _board_json(board, cfg, request.args.get("q", "").strip()),
    })
