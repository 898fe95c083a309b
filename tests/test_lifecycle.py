from decimal import Decimal
from types import SimpleNamespace

import pytest

from dao import lifecycle
from db.models.request import ApprovalAction as A, ApprovalLevel as L, RequestStatus as S
from utils.errors import InvalidTransition


def test_every_review_target_is_a_legal_move():
    for (src, _level, _action), dst in lifecycle.REVIEW_TRANSITIONS.items():
        assert lifecycle.can_move(src, dst), (src, dst)


def test_terminal_states():
    assert lifecycle.TERMINAL == {S.REJECTED, S.CLOSED}
    for status in S:
        assert lifecycle.can_move(status, S.CLOSED) == (status == S.RECEIVED)


@pytest.mark.parametrize(
    "status,level,action,expected",
    [
        (S.SUBMITTED, L.DSE, A.APPROVED, S.WAITING_PADIRI_REVIEW),
        (S.DSE_REVIEW, L.DSE, A.VERIFIED, S.WAITING_PADIRI_REVIEW),
        (S.SUBMITTED, L.DSE, A.NEEDS_CHANGES, S.DSE_REVIEW),
        (S.WAITING_PADIRI_REVIEW, L.PADIRI, A.MODIFIED, S.WAITING_PADIRI_REVIEW),
        (S.WAITING_PADIRI_REVIEW, L.PADIRI, A.NEEDS_CHANGES, S.DSE_REVIEW),
        (S.APPROVED, L.DSE, A.VERIFIED, S.VERIFIED),
        (S.SUBMITTED, L.PADIRI, A.APPROVED, None),
        (S.PENDING, L.DSE, A.APPROVED, None),
        (S.REJECTED, L.DSE, A.APPROVED, None),
    ],
)
def test_review_table(status, level, action, expected):
    assert lifecycle.review_target(status, level, action) == expected


def test_move_rejects_illegal_edge():
    req = SimpleNamespace(id=5, status=S.PENDING)
    with pytest.raises(InvalidTransition) as err:
        lifecycle.move(req, S.APPROVED, "approve")
    assert err.value.context == {"request_id": 5, "current_status": "PENDING", "attempted": "approve"}
    assert req.status == S.PENDING


def _item(approved, issued, received=0):
    return SimpleNamespace(
        qty_approved=Decimal(approved), qty_issued=Decimal(issued), qty_received=Decimal(received)
    )


def test_issuance_status_aggregation():
    assert lifecycle.issuance_status([_item(10, 0), _item(5, 0)]) == S.ISSUED_FROM_APPROVED
    assert lifecycle.issuance_status([_item(10, 4), _item(5, 0)]) == S.PARTIALLY_ISSUED
    assert lifecycle.issuance_status([_item(10, 10), _item(5, 5)]) == S.ISSUED
    # an item approved at zero needs nothing issued
    assert lifecycle.issuance_status([_item(10, 10), _item(0, 0)]) == S.ISSUED


def test_fully_received():
    assert lifecycle.fully_received([_item(10, 10, 10)])
    assert not lifecycle.fully_received([_item(10, 10, 6)])
