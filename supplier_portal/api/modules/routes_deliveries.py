# routes_deliveries.py: Deliveries and the ready-to-ship pick list

import logging

from flask import jsonify

from supplier_portal.api.dashboard import api_error, auth_required, bp, gateway, render_table
from supplier_portal.core.workflows import (DELIVERY_ITEM_TABLE, DELIVERY_TABLE,
                                            SHIPMENT_ITEM_TABLE, SHIPMENT_TABLE, group_children,
                                            ready_to_ship_items)
from supplier_portal.integrations.ngauge import NGaugeError

log = logging.getLogger("portal.deliveries")


@bp.route("/delivery")
@auth_required
def delivery_page():
    gw = gateway()
    deliveries = gw.get_all_data(DELIVERY_TABLE)
    items = gw.get_all_data(DELIVERY_ITEM_TABLE)
    grouped = {id(d): kids for d, kids in group_children(deliveries, items, "delivery_id")}
    return render_table("Deliveries", deliveries,
                        children=lambda row: grouped.get(id(row), []))


@bp.route("/api/delivery/ready-to-ship")
@auth_required
def api_ready_to_ship():
    """Shipment items whose shipment is Ready to ship; candidates for a delivery."""
    try:
        gw = gateway()
        rows = ready_to_ship_items(gw.get_all_data(SHIPMENT_TABLE),
                                   gw.get_all_data(SHIPMENT_ITEM_TABLE))
    except NGaugeError as e:
        return api_error(e)
    return jsonify({"ok": True, "items": rows, "count": len(rows)})
