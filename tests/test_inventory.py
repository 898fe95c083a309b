from decimal import Decimal

import pytest

from configs import db
from dao import inventory as inv_dao
from db.models.inventory import (
    AdjustmentRef,
    GrnRef,
    IssueRef,
    MovementType,
    SourceType,
    StockHistory,
    StockMovement,
)
from utils.errors import ImmutableRecord, InsufficientStock, NotFound, ValidationError


def test_in_then_out_moves_balance(store, material):
    inv_dao.record_movement(store.id, material.id, MovementType.IN, GrnRef(7), 50)
    assert inv_dao.find_stock(store.id, material.id).qty_on_hand == Decimal("50")

    inv_dao.record_movement(store.id, material.id, MovementType.OUT, IssueRef(3), 20)
    stock = inv_dao.find_stock(store.id, material.id)
    assert stock.qty_on_hand == Decimal("30")

    moves = StockMovement.query.order_by(StockMovement.id).all()
    assert [m.qty_change for m in moves] == [Decimal("50"), Decimal("-20")]
    assert all(m.qty > 0 for m in moves)
    assert moves[0].source == GrnRef(7)
    assert moves[1].source_type == SourceType.ISSUE


def test_balance_matches_ledger_after_mixed_movements(store, material):
    inv_dao.record_movement(store.id, material.id, "IN", GrnRef(1), "12.5")
    inv_dao.record_movement(store.id, material.id, "OUT", IssueRef(1), 2)
    inv_dao.record_movement(store.id, material.id, "ADJUSTMENT", AdjustmentRef(1), 3, decrease=True)
    inv_dao.record_movement(store.id, material.id, "ADJUSTMENT", AdjustmentRef(1), 1)

    assert inv_dao.find_stock(store.id, material.id).qty_on_hand == Decimal("8.5")
    assert inv_dao.ledger_total(store.id, material.id) == Decimal("8.5")
    assert all(r["balanced"] for r in inv_dao.reconcile())


def test_out_beyond_balance_appends_nothing(store, material, stock_in):
    stock_in(material, 5)
    with pytest.raises(InsufficientStock) as err:
        inv_dao.record_movement(store.id, material.id, MovementType.OUT, IssueRef(1), 6)

    assert Decimal(err.value.context["available"]) == 5
    assert StockMovement.query.count() == 1
    assert inv_dao.find_stock(store.id, material.id).qty_on_hand == Decimal("5")


def test_negative_allowed_when_configured(app, store, material):
    app.config["ALLOW_NEGATIVE_STOCK"] = True
    inv_dao.record_movement(store.id, material.id, MovementType.OUT, IssueRef(1), 4)
    assert inv_dao.find_stock(store.id, material.id).qty_on_hand == Decimal("-4")


@pytest.mark.parametrize("qty", [0, -1, "abc"])
def test_quantity_must_be_positive(store, material, qty):
    with pytest.raises(ValidationError):
        inv_dao.record_movement(store.id, material.id, MovementType.IN, GrnRef(1), qty)
    assert StockMovement.query.count() == 0


def test_source_must_match_movement_type(store, material):
    with pytest.raises(ValidationError):
        inv_dao.record_movement(store.id, material.id, MovementType.IN, IssueRef(1), 1)
    with pytest.raises(ValidationError):
        inv_dao.record_movement(store.id, material.id, MovementType.OUT, IssueRef(1), 1, decrease=True)


def test_unknown_store_or_material(store, material):
    with pytest.raises(NotFound):
        inv_dao.record_movement(999, material.id, MovementType.IN, GrnRef(1), 1)
    with pytest.raises(NotFound):
        inv_dao.record_movement(store.id, 999, MovementType.IN, GrnRef(1), 1)


def test_history_snapshots(store, material, stock_in):
    stock_in(material, 10)
    inv_dao.record_movement(store.id, material.id, MovementType.OUT, IssueRef(2), 4)
    stock = inv_dao.find_stock(store.id, material.id)
    rows, pagination = inv_dao.list_history(stock.id)
    assert pagination["total_items"] == 2
    latest = rows[0]
    assert (latest.qty_before, latest.qty_change, latest.qty_after) == (
        Decimal("10"),
        Decimal("-4"),
        Decimal("6"),
    )


def test_movements_are_immutable(store, material, stock_in):
    mv = stock_in(material, 3)
    mv = db.session.get(StockMovement, mv.id)
    mv.notes = "edited"
    with pytest.raises(ImmutableRecord):
        db.session.flush()
    db.session.rollback()

    mv = db.session.get(StockMovement, mv.id)
    db.session.delete(mv)
    with pytest.raises(ImmutableRecord):
        db.session.flush()
    db.session.rollback()


def test_create_stock_books_opening_balance(store, material, users):
    stock = inv_dao.create_stock(store.id, material.id, qty_on_hand=40, reorder_level=10, created_by=users["storekeeper"].id)
    assert stock.qty_on_hand == Decimal("40")
    mv = StockMovement.query.one()
    assert mv.movement_type == MovementType.ADJUSTMENT
    assert mv.source == AdjustmentRef(stock.id)


def test_adjust_to_target_quantity(store, material, stock_in):
    stock_in(material, 20)
    stock = inv_dao.find_stock(store.id, material.id)
    stock, mv = inv_dao.adjust_stock(stock.id, qty_on_hand=15, notes="count")
    assert stock.qty_on_hand == Decimal("15")
    assert mv.qty == Decimal("5") and mv.qty_change == Decimal("-5")

    stock, mv = inv_dao.adjust_stock(stock.id, qty_on_hand=15)
    assert mv is None


def test_low_stock_alert_and_acknowledge(store, material, stock_in):
    stock_in(material, 20)
    stock = inv_dao.find_stock(store.id, material.id)
    inv_dao.update_stock_settings(stock.id, reorder_level=10, low_stock_threshold=8)
    assert stock.low_stock_alert is False

    inv_dao.record_movement(store.id, material.id, MovementType.OUT, IssueRef(1), 13)
    stock = inv_dao.get_stock(stock.id)
    assert stock.low_stock_alert is True
    rows, _ = inv_dao.list_stock(low_stock=True)
    assert [s.id for s in rows] == [stock.id]

    inv_dao.acknowledge_alert(stock.id)
    assert inv_dao.get_stock(stock.id).low_stock_alert is False


def test_procurement_recommendations(store, material, material2, stock_in):
    stock_in(material, 5)
    stock_in(material2, 1)
    a = inv_dao.find_stock(store.id, material.id)
    b = inv_dao.find_stock(store.id, material2.id)
    inv_dao.update_stock_settings(a.id, reorder_level=10, low_stock_threshold=2)
    inv_dao.adjust_stock(b.id, qty_on_hand=0)

    recs = {r["stock"].material_id: r for r in inv_dao.procurement_recommendations()}
    assert recs[material2.id]["priority"] == "CRITICAL"
    assert recs[material2.id]["suggested_qty"] == 100
    assert recs[material.id]["priority"] == "MEDIUM"
    assert recs[material.id]["suggested_qty"] == 10


def test_rebuild_repairs_drifted_balance(store, material, stock_in):
    stock_in(material, 9)
    stock = inv_dao.find_stock(store.id, material.id)
    stock.qty_on_hand = Decimal("4")
    db.session.commit()
    assert not inv_dao.reconcile(store.id, material.id)[0]["balanced"]

    assert inv_dao.rebuild_stock() == 1
    assert inv_dao.find_stock(store.id, material.id).qty_on_hand == Decimal("9")
    assert StockHistory.query.count() == 1
