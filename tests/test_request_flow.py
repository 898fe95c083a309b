from decimal import Decimal

import pytest

from configs import db
from dao import inventory as inv_dao
from dao import request as request_dao
from db.models.audit import AuditLog
from db.models.inventory import MovementType, SourceType, StockMovement
from db.models.issue import Issue
from db.models.request import Approval, RequestStatus
from utils.errors import (
    Forbidden,
    ImmutableRecord,
    InsufficientStock,
    InvalidTransition,
    NotFound,
    OverIssue,
    ValidationError,
)


def test_create_and_submit(users, site, material):
    req = request_dao.create_request(
        site.id, users["engineer"].id, "slab", [{"material_id": material.id, "qty_requested": 30}]
    )
    assert req.status == RequestStatus.PENDING
    assert req.ref_no.startswith("REQ-") and req.ref_no.endswith(f"-{req.id:04d}")
    assert req.items[0].unit_id == material.unit_id

    req = request_dao.submit_request(req.id, users["engineer"].id)
    assert req.status == RequestStatus.SUBMITTED
    assert AuditLog.query.filter_by(entity="REQUEST", entity_id=req.id).count() == 2


def test_engineer_must_be_assigned_to_site(make_user, users, site, material):
    stranger = make_user(users["engineer"].role.name)
    with pytest.raises(Forbidden):
        request_dao.create_request(site.id, stranger.id, None, [{"material_id": material.id, "qty": 1}])


def test_update_only_while_pending(users, site, material, material2):
    req = request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 1}])
    req = request_dao.update_request(
        req.id, users["engineer"].id, "changed", [{"material_id": material2.id, "qty": 4}]
    )
    assert [i.material_id for i in req.items] == [material2.id]

    request_dao.submit_request(req.id, users["engineer"].id)
    with pytest.raises(InvalidTransition):
        request_dao.update_request(req.id, users["engineer"].id, "again")


def test_two_level_approval(users, site, material):
    req = request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 100}])
    request_dao.submit_request(req.id, users["engineer"].id)

    request_dao.review_request(req.id, users["dse"].id, "DSE", "APPROVED", comment="ok")
    assert request_dao.get_request(req.id).status == RequestStatus.WAITING_PADIRI_REVIEW

    request_dao.review_request(req.id, users["padiri"].id, "PADIRI", "APPROVED")
    req = request_dao.get_request(req.id)
    assert req.status == RequestStatus.APPROVED
    assert req.items[0].qty_approved == Decimal("100")
    assert req.items[0].qty_remaining == Decimal("100")
    assert [a.level.value for a in req.approvals] == ["DSE", "PADIRI"]


def test_dse_cannot_act_at_padiri_level(users, site, material):
    req = request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 5}])
    request_dao.submit_request(req.id, users["engineer"].id)
    request_dao.review_request(req.id, users["dse"].id, "DSE", "APPROVED")

    with pytest.raises(Forbidden):
        request_dao.review_request(req.id, users["dse"].id, "PADIRI", "APPROVED")
    assert request_dao.get_request(req.id).status == RequestStatus.WAITING_PADIRI_REVIEW
    assert Approval.query.filter_by(request_id=req.id).count() == 1


def test_admin_has_no_review_authority(users, site, material):
    req = request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 5}])
    request_dao.submit_request(req.id, users["engineer"].id)
    with pytest.raises(Forbidden):
        request_dao.review_request(req.id, users["admin"].id, "DSE", "APPROVED")


def test_review_out_of_order_is_invalid(users, site, material):
    req = request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 5}])
    with pytest.raises(InvalidTransition) as err:
        request_dao.review_request(req.id, users["dse"].id, "DSE", "APPROVED")
    assert err.value.context["current_status"] == "PENDING"
    assert Approval.query.count() == 0


def test_needs_changes_returns_to_dse(users, site, material):
    req = request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 5}])
    request_dao.submit_request(req.id, users["engineer"].id)
    request_dao.review_request(req.id, users["dse"].id, "DSE", "APPROVED")
    request_dao.review_request(req.id, users["padiri"].id, "PADIRI", "NEEDS_CHANGES", comment="split it")
    assert request_dao.get_request(req.id).status == RequestStatus.DSE_REVIEW

    request_dao.review_request(req.id, users["dse"].id, "DSE", "VERIFIED")
    assert request_dao.get_request(req.id).status == RequestStatus.WAITING_PADIRI_REVIEW


def test_modified_sets_approved_quantities(users, site, material):
    req = request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 100}])
    request_dao.submit_request(req.id, users["engineer"].id)
    item_id = req.items[0].id
    request_dao.review_request(
        req.id, users["dse"].id, "DSE", "MODIFIED", item_modifications=[{"request_item_id": item_id, "qty_approved": 80}]
    )
    req = request_dao.get_request(req.id)
    assert req.status == RequestStatus.DSE_REVIEW
    assert req.items[0].qty_approved == Decimal("80")


def test_rejected_is_terminal(users, site, material, store):
    req = request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 5}])
    request_dao.submit_request(req.id, users["engineer"].id)
    request_dao.review_request(req.id, users["dse"].id, "DSE", "REJECTED")
    for level, reviewer, action in [("DSE", "dse", "APPROVED"), ("PADIRI", "padiri", "APPROVED")]:
        with pytest.raises(InvalidTransition):
            request_dao.review_request(req.id, users[reviewer].id, level, action)
    with pytest.raises(InvalidTransition):
        request_dao.start_issue(req.id, users["storekeeper"].id)
    assert request_dao.get_request(req.id).status == RequestStatus.REJECTED


def test_issue_before_approval_is_invalid_transition(users, site, material, store, stock_in):
    stock_in(material, 50)
    submitted = request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 5}])
    request_dao.submit_request(submitted.id, users["engineer"].id)
    rejected = request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 5}])
    request_dao.submit_request(rejected.id, users["engineer"].id)
    request_dao.review_request(rejected.id, users["dse"].id, "DSE", "REJECTED")

    for req, status in [(submitted, RequestStatus.SUBMITTED), (rejected, RequestStatus.REJECTED)]:
        item_id = request_dao.get_request(req.id).items[0].id
        with pytest.raises(InvalidTransition) as exc:
            request_dao.issue_against_item(item_id, 5, store.id, users["storekeeper"].id)
        assert exc.value.context["current_status"] == status.value
        with pytest.raises(InvalidTransition):
            request_dao.issue_materials(req.id, store.id, [{"request_item_id": item_id, "qty": 5}], users["storekeeper"].id)
        assert request_dao.get_request(req.id).status == status
    assert inv_dao.find_stock(store.id, material.id).qty_on_hand == Decimal("50")


def test_added_item_rejects_negative_approval(users, site, material, material2):
    req = request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 10}])
    request_dao.submit_request(req.id, users["engineer"].id)
    with pytest.raises(ValidationError):
        request_dao.review_request(
            req.id,
            users["dse"].id,
            "DSE",
            "MODIFIED",
            items_to_add=[{"material_id": material2.id, "qty_requested": 5, "qty_approved": -5}],
        )
    req = request_dao.get_request(req.id)
    assert req.status == RequestStatus.SUBMITTED
    assert len(req.items) == 1


def test_added_item_keeps_remaining_in_step(users, site, material, material2):
    req = request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 10}])
    request_dao.submit_request(req.id, users["engineer"].id)
    request_dao.review_request(
        req.id,
        users["dse"].id,
        "DSE",
        "MODIFIED",
        items_to_add=[{"material_id": material2.id, "qty_requested": 5, "qty_approved": 4}],
    )
    for item in request_dao.get_request(req.id).items:
        if item.qty_approved is not None:
            assert item.qty_remaining == item.qty_approved - item.qty_issued
    added = [i for i in request_dao.get_request(req.id).items if i.material_id == material2.id][0]
    assert added.qty_remaining == Decimal("4")


def test_issue_60_then_40(approved_request, material, store, users, stock_in):
    stock_in(material, 500)
    req = approved_request([{"material_id": material.id, "qty": 100}])
    item_id = req.items[0].id

    item = request_dao.issue_against_item(item_id, 60, store.id, users["storekeeper"].id)
    assert (item.qty_issued, item.qty_remaining) == (Decimal("60"), Decimal("40"))
    assert request_dao.get_request(req.id).status == RequestStatus.PARTIALLY_ISSUED

    item = request_dao.issue_against_item(item_id, 40, store.id, users["storekeeper"].id)
    assert (item.qty_issued, item.qty_remaining) == (Decimal("100"), Decimal("0"))
    req = request_dao.get_request(req.id)
    assert req.status == RequestStatus.ISSUED
    assert req.issued_by == users["storekeeper"].id

    assert inv_dao.find_stock(store.id, material.id).qty_on_hand == Decimal("400")
    outs = StockMovement.query.filter_by(movement_type=MovementType.OUT).all()
    assert {m.source_type for m in outs} == {SourceType.ISSUE}
    assert {m.source_id for m in outs} == {i.id for i in Issue.query.all()}


def test_second_issue_exceeding_approval_is_rejected(approved_request, material, store, users, stock_in):
    stock_in(material, 500)
    req = approved_request([{"material_id": material.id, "qty": 100}])
    item_id = req.items[0].id

    request_dao.issue_against_item(item_id, 60, store.id, users["storekeeper"].id)
    with pytest.raises(OverIssue) as err:
        request_dao.issue_against_item(item_id, 60, store.id, users["storekeeper"].id)
    assert err.value.context["qty_issued"] in ("60", "60.000")

    item = request_dao.get_request(req.id).items[0]
    assert item.qty_issued == Decimal("60")
    assert inv_dao.find_stock(store.id, material.id).qty_on_hand == Decimal("440")


def test_issue_without_stock_rolls_back(approved_request, material, store, users, stock_in):
    stock_in(material, 10)
    req = approved_request([{"material_id": material.id, "qty": 50}])
    with pytest.raises(InsufficientStock):
        request_dao.issue_against_item(req.items[0].id, 20, store.id, users["storekeeper"].id)

    req = request_dao.get_request(req.id)
    assert req.status == RequestStatus.APPROVED
    assert req.items[0].qty_issued == Decimal("0")
    assert Issue.query.count() == 0


def test_issue_rejects_zero_quantity(approved_request, material, store, users):
    req = approved_request([{"material_id": material.id, "qty": 5}])
    with pytest.raises(ValidationError):
        request_dao.issue_against_item(req.items[0].id, 0, store.id, users["storekeeper"].id)
    with pytest.raises(NotFound):
        request_dao.issue_against_item(99999, 1, store.id, users["storekeeper"].id)


def test_batch_issue_is_all_or_nothing(approved_request, material, material2, store, users, stock_in):
    stock_in(material, 100)
    stock_in(material2, 2)
    req = approved_request([{"material_id": material.id, "qty": 10}, {"material_id": material2.id, "qty": 5}])
    a, b = req.items

    with pytest.raises(InsufficientStock):
        request_dao.issue_materials(
            req.id, store.id, [{"request_item_id": a.id, "qty": 10}, {"request_item_id": b.id, "qty": 5}], users["storekeeper"].id
        )
    assert inv_dao.find_stock(store.id, material.id).qty_on_hand == Decimal("100")

    issue = request_dao.issue_materials(
        req.id,
        store.id,
        [{"request_item_id": a.id, "qty": 4}, {"request_item_id": a.id, "qty": 6}, {"request_item_id": b.id, "qty": 2}],
        users["storekeeper"].id,
    )
    assert issue.issue_no.startswith("ISS-")
    assert sorted(ln.qty_issued for ln in issue.lines) == [Decimal("2"), Decimal("10")]
    assert request_dao.get_request(req.id).status == RequestStatus.PARTIALLY_ISSUED


def test_verified_request_can_be_issued(approved_request, material, store, users, stock_in):
    stock_in(material, 10)
    req = approved_request([{"material_id": material.id, "qty": 10}])
    request_dao.review_request(req.id, users["dse"].id, "DSE", "VERIFIED")
    assert request_dao.get_request(req.id).status == RequestStatus.VERIFIED

    request_dao.start_issue(req.id, users["storekeeper"].id)
    assert request_dao.get_request(req.id).status == RequestStatus.ISSUED_FROM_APPROVED
    request_dao.issue_against_item(req.items[0].id, 10, store.id, users["storekeeper"].id)
    assert request_dao.get_request(req.id).status == RequestStatus.ISSUED


def test_receive_and_close(approved_request, material, store, users, stock_in):
    stock_in(material, 10)
    req = approved_request([{"material_id": material.id, "qty": 10}])
    item_id = req.items[0].id

    with pytest.raises(InvalidTransition):
        request_dao.close_request(req.id, users["engineer"].id)

    request_dao.issue_against_item(item_id, 10, store.id, users["storekeeper"].id)
    req = request_dao.receive_request(req.id, users["engineer"].id, [{"request_item_id": item_id, "qty_received": 6}])
    assert req.status == RequestStatus.RECEIVED

    with pytest.raises(ValidationError):
        request_dao.receive_request(req.id, users["engineer"].id, [{"request_item_id": item_id, "qty_received": 5}])

    req = request_dao.receive_request(req.id, users["engineer"].id)
    assert req.status == RequestStatus.CLOSED
    assert req.items[0].qty_received == Decimal("10")

    with pytest.raises(InvalidTransition):
        request_dao.receive_request(req.id, users["engineer"].id)


def test_explicit_close_after_partial_receipt(approved_request, material, store, users, stock_in):
    stock_in(material, 10)
    req = approved_request([{"material_id": material.id, "qty": 10}])
    request_dao.issue_against_item(req.items[0].id, 10, store.id, users["storekeeper"].id)
    request_dao.receive_request(req.id, users["engineer"].id, [{"request_item_id": req.items[0].id, "qty": 3}])

    req = request_dao.close_request(req.id, users["engineer"].id)
    assert req.status == RequestStatus.CLOSED
    assert req.closed_by == users["engineer"].id


def test_approvals_are_append_only(approved_request, material):
    req = approved_request([{"material_id": material.id, "qty": 1}])
    approval = req.approvals[0]
    approval.comment = "rewritten"
    with pytest.raises(ImmutableRecord):
        db.session.flush()
    db.session.rollback()


def test_issuable_list(approved_request, material, users, site):
    approved = approved_request([{"material_id": material.id, "qty": 1}])
    request_dao.create_request(site.id, users["engineer"].id, None, [{"material_id": material.id, "qty": 1}])
    rows, pagination = request_dao.issuable_requests()
    assert [r.id for r in rows] == [approved.id]
    assert pagination["total_items"] == 1
