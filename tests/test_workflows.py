"""Tests for order → work order → shipment → delivery flows (in-memory gateway)."""

import pytest

from supplier_portal.core import workflows as wf
from supplier_portal.core.board import StatusBoard, REVERTED, SAVED, WorkItem
from supplier_portal.integrations.ngauge import NGaugeError


def row(gateway, table, row_id):
    return gateway.get_row(table, row_id)


# ─── Purchase orders ────────────────────────────────────────────────────────

class TestPurchaseOrders:
    def test_create_defaults_to_pending(self, fake_gateway):
        po = wf.create_purchase_order(fake_gateway, {"po_issue_date": "2026-04-01",
                                                     "vendor_name": "Acme", "vendor_id": "V-9"})
        assert po["ROWID"] == 1001
        assert po["po_status"] == "pending"
        assert po["vendor_id"] == "V-9"
        assert fake_gateway.calls[-2:] == [("add_row", "purchase_orders"),
                                           ("get_row", "purchase_orders")]

    def test_create_keeps_given_status(self, fake_gateway):
        po = wf.create_purchase_order(fake_gateway, {"po_issue_date": "2026-04-01",
                                                     "vendor_name": "Acme",
                                                     "po_status": "Production"})
        assert po["po_status"] == "Production"
        assert po["vendor_id"] == ""

    def test_create_requires_date_and_vendor(self, fake_gateway):
        with pytest.raises(ValueError) as exc:
            wf.create_purchase_order(fake_gateway, {"vendor_name": "  ", "vendor_id": "V-9"})
        assert "po_issue_date" in str(exc.value)
        assert "vendor_name" in str(exc.value)
        assert ("add_row", "purchase_orders") not in fake_gateway.calls

    def test_create_without_read_back_returns_sent_row(self, fake_gateway, monkeypatch):
        monkeypatch.setattr(fake_gateway, "get_row", lambda table, row_id: None)
        po = wf.create_purchase_order(fake_gateway, {"po_issue_date": "2026-04-01",
                                                     "vendor_name": "Acme"})
        assert po["ROWID"] == 1001
        assert po["vendor_name"] == "Acme"

    def test_add_item_inherits_po_fields(self, fake_gateway):
        item = wf.add_po_item(fake_gateway, 11, {"item_code": "BOLT-9", "item": "Bolt",
                                                 "unit_price": "0.5", "quantity": "40"})
        assert item["ref"] == 1001
        stored = row(fake_gateway, "purchase_order_items", 1001)
        assert stored["po_number"] == "PO-1001"
        assert stored["po_status"] == "Production"
        assert stored["vendor_name"] == "Acme"
        assert stored["status"] == "Step 1"
        assert stored["unit_price"] == 0.5
        assert stored["quantity"] == 40
        assert stored["total"] == 20
        assert stored["remarks"] == "" and stored["document"] == "" and stored["step_name"] == ""
        assert "ref" not in stored

    def test_add_item_requires_fields(self, fake_gateway):
        with pytest.raises(ValueError) as exc:
            wf.add_po_item(fake_gateway, 11, {"item_code": "BOLT-9", "quantity": 0})
        assert str(exc.value) == "PO item: missing item, unit_price"

    def test_add_item_unknown_po(self, fake_gateway):
        with pytest.raises(NGaugeError) as exc:
            wf.add_po_item(fake_gateway, 999, {"item_code": "X", "item": "X",
                                               "unit_price": 1, "quantity": 1})
        assert exc.value.status == 404


# ─── Work orders ────────────────────────────────────────────────────────────

class TestWorkOrders:
    def test_status_follows_step(self):
        assert wf.work_order_status("Step 5") == "In warehouse"
        assert wf.work_order_status("Step 2") == "Work in progress"
        assert wf.work_order_status(None) == "Work in progress"

    def test_kanban_items_merge_po_fields(self, sample_work_orders, sample_po_items):
        items = wf.kanban_items(sample_work_orders, sample_po_items)
        assert [i.id for i in items] == [1, 2]
        assert items[0].status == "Step 1"
        assert items[0].extra["unit_price"] == 12.5
        assert items[0].extra["quantity"] == 4
        assert items[0].extra["po_status"] == "Production"
        assert "step" not in items[0].extra

    def test_kanban_items_without_po_item(self):
        items = wf.kanban_items([{"ROWID": 9, "po_number": "X", "item_code": "Y"}], [])
        assert items[0].status == "Step 1"
        assert items[0].extra["po_status"] == "Pending"
        assert items[0].extra["quantity"] == 0.0

    def test_po_item_board_items(self, sample_po_items):
        items = wf.po_item_board_items(sample_po_items)
        assert items[0].extra["total"] == 50.0
        assert items[2].status == "Draft"

    def test_save_stamps_end_date_and_status(self, fake_gateway, monkeypatch):
        monkeypatch.setattr(wf, "today", lambda: "2026-05-01")
        data = wf.save_work_order(fake_gateway, {"ROWID": 1, "step": "Step 5"})
        assert data["wo_status"] == "In warehouse"
        stored = row(fake_gateway, "work_order", 1)
        assert stored["end_date"] == "2026-05-01"
        assert stored["wo_status"] == "In warehouse"

    def test_save_requires_rowid(self, fake_gateway):
        with pytest.raises(ValueError):
            wf.save_work_order(fake_gateway, {"step": "Step 2"})

    def test_move_step_persists(self, fake_gateway):
        outcome = wf.move_work_order_step(fake_gateway, WorkItem(1, "Step 3"), "Step 3")
        assert outcome.ok
        stored = row(fake_gateway, "work_order", 1)
        assert stored["step"] == "Step 3"
        assert stored["wo_status"] == "Work in progress"
        # Unrelated fields untouched
        assert stored["item"] == "Widget"

    def test_move_step_missing_row(self, fake_gateway):
        outcome = wf.move_work_order_step(fake_gateway, WorkItem(999, "Step 2"), "Step 2")
        assert not outcome.ok
        assert "999" in outcome.error

    def test_move_step_upstream_failure(self, fake_gateway):
        fake_gateway.fail("edit_row", "work_order", message="locked")
        outcome = wf.move_work_order_step(fake_gateway, WorkItem(1, "Step 2"), "Step 2")
        assert not outcome.ok
        assert outcome.error == "locked"

    def test_move_po_item_status(self, fake_gateway):
        outcome = wf.move_po_item_status(fake_gateway, WorkItem(102, "Step 4"), "Step 4")
        assert outcome.ok
        assert row(fake_gateway, "purchase_order_items", 102)["status"] == "Step 4"

    def test_board_with_work_order_persistence(self, fake_gateway, sample_work_orders,
                                               sample_po_items):
        board = StatusBoard(lambda item, step: wf.move_work_order_step(fake_gateway, item, step))
        board.initialize(wf.kanban_items(sample_work_orders, sample_po_items))
        assert board.complete_move(1, "step-4").state == SAVED
        assert row(fake_gateway, "work_order", 1)["step"] == "Step 4"

        fake_gateway.fail("edit_row", "work_order")
        assert board.complete_move(1, "step-5").state == REVERTED
        assert board.get(1).status == "Step 4"
        assert row(fake_gateway, "work_order", 1)["step"] == "Step 4"


class TestCreateWorkOrder:
    def test_creates_at_step_one_and_flags_po_item(self, fake_gateway, monkeypatch):
        monkeypatch.setattr(wf, "today", lambda: "2026-04-02")
        created = wf.create_work_order(fake_gateway, 101)
        assert created["step"] == "Step 1"
        assert created["start_date"] == "2026-04-02"
        assert created["remarks"] == ""
        assert created["step_name"] is None
        assert created["ref"] == 1001
        assert row(fake_gateway, "purchase_order_items", 101)["work_order_created"] == "Yes"
        new = row(fake_gateway, "work_order", 1001)
        assert new["po_number"] == "PO-1001"
        assert new["item_code"] == "WID-01"

    def test_missing_po_item(self, fake_gateway):
        with pytest.raises(NGaugeError) as exc:
            wf.create_work_order(fake_gateway, 555)
        assert exc.value.status == 404
        assert ("add_row", "work_order") not in fake_gateway.calls

    def test_completed_work_orders(self, sample_work_orders):
        assert [w["ROWID"] for w in wf.completed_work_orders(sample_work_orders)] == [2]


# ─── Shipments ──────────────────────────────────────────────────────────────

class TestShipments:
    def test_item_from_work_order(self):
        item = wf.shipment_item_from_work_order(
            {"ROWID": 2, "item_code": "GAD-02", "item": "Gadget", "unit_price": "40",
             "quantity": 2, "po_number": "PO-1001"}, "SID-9")
        assert item["total"] == 80.0
        assert item["shipment_status"] == "Pending"
        assert item["work_order_id"] == 2
        assert item["shipment_id"] == "SID-9"

    def test_create_shipment_only_completed(self, fake_gateway, sample_work_orders):
        result = wf.create_shipment(fake_gateway, {"shipment_id": "SID-3", "vendor_id": "V-9"},
                                    sample_work_orders)
        assert result["shipment_id"] == "SID-3"
        assert result["skipped"] == 1
        assert len(result["items"]) == 1
        shipments = fake_gateway.tables["shipment_list"]
        assert shipments[-1]["shipment_status"] == "In draft"
        items = [i for i in fake_gateway.tables["shipment_list_items"]
                 if i["shipment_id"] == "SID-3"]
        assert [i["item_code"] for i in items] == ["GAD-02"]

    def test_create_shipment_uses_ref_without_id(self, fake_gateway):
        result = wf.create_shipment(fake_gateway, {"vendor_id": "V-9"}, [])
        assert result["shipment_id"] == "1001"
        assert result["items"] == []

    def test_mark_ready(self, fake_gateway):
        wf.mark_shipment_ready(fake_gateway, 52)
        assert row(fake_gateway, "shipment_list", 52)["shipment_status"] == "Ready to ship"

    def test_mark_ready_missing(self, fake_gateway):
        with pytest.raises(NGaugeError):
            wf.mark_shipment_ready(fake_gateway, 999)

    def test_update_item_status(self, fake_gateway):
        wf.update_shipment_item_status(fake_gateway, 62, "Shipped")
        assert row(fake_gateway, "shipment_list_items", 62)["shipment_status"] == "Shipped"
        wf.update_shipment_item_status(fake_gateway, 62, "")
        assert row(fake_gateway, "shipment_list_items", 62)["shipment_status"] == "Pending"

    def test_update_shipment_returns_to_draft(self, fake_gateway):
        fields = {"carrier_name": "DHL", "shipment_date": "2026-05-02",
                  "tracking_number": "TRK-1", "invoice_id": "INV-7",
                  "shipment_status": "Ready to ship", "ROWID": 999}
        shipment = wf.update_shipment(fake_gateway, 51, fields)
        stored = row(fake_gateway, "shipment_list", 51)
        assert stored["shipment_status"] == "In draft"
        assert stored["carrier_name"] == "DHL"
        assert stored["shipment_id"] == "SID-1"
        assert shipment["ROWID"] == 51

    def test_update_shipment_requires_details(self, fake_gateway):
        with pytest.raises(ValueError) as exc:
            wf.update_shipment(fake_gateway, 51, {"carrier_name": "DHL"})
        assert "tracking_number" in str(exc.value)
        assert ("edit_row", "shipment_list") not in fake_gateway.calls

    def test_update_shipment_missing(self, fake_gateway):
        with pytest.raises(NGaugeError):
            wf.update_shipment(fake_gateway, 999, {})

    def test_update_item_editable_fields_only(self, fake_gateway):
        wf.update_shipment_item(fake_gateway, 61, {"document": "packing.pdf", "remarks": "fragile",
                                                   "shipment_quantity": 99})
        stored = row(fake_gateway, "shipment_list_items", 61)
        assert stored["document"] == "packing.pdf"
        assert stored["remarks"] == "fragile"
        assert stored["shipment_quantity"] == 2
        assert stored["shipment_status"] == "Pending"

    def test_ready_to_ship_items(self, sample_tables):
        ready = wf.ready_to_ship_items(sample_tables["shipment_list"],
                                       sample_tables["shipment_list_items"])
        assert [i["ROWID"] for i in ready] == [61]

    def test_ready_to_ship_case_insensitive(self):
        ready = wf.ready_to_ship_items([{"shipment_id": "A", "shipment_status": "READY TO SHIP"}],
                                       [{"shipment_id": "A"}, {"shipment_id": "B"}])
        assert ready == [{"shipment_id": "A"}]


class TestGrouping:
    def test_group_children(self, sample_tables):
        groups = wf.group_children(sample_tables["purchase_orders"],
                                   sample_tables["purchase_order_items"], "po_number")
        assert [len(kids) for _, kids in groups] == [2, 1]

    def test_group_children_child_key(self):
        groups = wf.group_children([{"id": "X"}], [{"parent": "X"}, {"parent": "Y"}],
                                   "id", "parent")
        assert groups == [({"id": "X"}, [{"parent": "X"}])]

    def test_po_total(self, sample_po_items):
        assert wf.po_total(sample_po_items[:2]) == 130.0
