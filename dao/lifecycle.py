# dao/lifecycle.py
"""Request status lifecycle.

Every status write goes through `move()`, which checks the edge against
ALLOWED_MOVES. Reviewer decisions are looked up in REVIEW_TRANSITIONS keyed
by (current status, level, action); the role allowed to act at each level
is fixed in LEVEL_ROLES.
"""
import logging
from decimal import Decimal
from typing import Iterable, Optional

from db.models.request import (
    ApprovalAction as A,
    ApprovalLevel as L,
    Request,
    RequestItem,
    RequestStatus as S,
)
from db.models.user import RoleName
from utils.errors import InvalidTransition

log = logging.getLogger(__name__)

LEVEL_ROLES = {
    L.DSE: RoleName.DIOCESAN_SITE_ENGINEER,
    L.PADIRI: RoleName.PADIRI,
}

REVIEW_TRANSITIONS = {
    # first level
    (S.SUBMITTED, L.DSE, A.APPROVED): S.WAITING_PADIRI_REVIEW,
    (S.SUBMITTED, L.DSE, A.VERIFIED): S.WAITING_PADIRI_REVIEW,
    (S.SUBMITTED, L.DSE, A.REJECTED): S.REJECTED,
    (S.SUBMITTED, L.DSE, A.MODIFIED): S.DSE_REVIEW,
    (S.SUBMITTED, L.DSE, A.NEEDS_CHANGES): S.DSE_REVIEW,
    (S.DSE_REVIEW, L.DSE, A.APPROVED): S.WAITING_PADIRI_REVIEW,
    (S.DSE_REVIEW, L.DSE, A.VERIFIED): S.WAITING_PADIRI_REVIEW,
    (S.DSE_REVIEW, L.DSE, A.REJECTED): S.REJECTED,
    (S.DSE_REVIEW, L.DSE, A.MODIFIED): S.DSE_REVIEW,
    (S.DSE_REVIEW, L.DSE, A.NEEDS_CHANGES): S.DSE_REVIEW,
    # final level
    (S.WAITING_PADIRI_REVIEW, L.PADIRI, A.APPROVED): S.APPROVED,
    (S.WAITING_PADIRI_REVIEW, L.PADIRI, A.REJECTED): S.REJECTED,
    (S.WAITING_PADIRI_REVIEW, L.PADIRI, A.MODIFIED): S.WAITING_PADIRI_REVIEW,
    (S.WAITING_PADIRI_REVIEW, L.PADIRI, A.NEEDS_CHANGES): S.DSE_REVIEW,
    # DSE double-checks an approved request before the store picks it up
    (S.APPROVED, L.DSE, A.VERIFIED): S.VERIFIED,
}

ALLOWED_MOVES = {
    S.PENDING: {S.SUBMITTED},
    S.SUBMITTED: {S.DSE_REVIEW, S.WAITING_PADIRI_REVIEW, S.REJECTED},
    S.DSE_REVIEW: {S.DSE_REVIEW, S.WAITING_PADIRI_REVIEW, S.REJECTED},
    S.WAITING_PADIRI_REVIEW: {S.WAITING_PADIRI_REVIEW, S.APPROVED, S.REJECTED, S.DSE_REVIEW},
    S.APPROVED: {S.VERIFIED, S.ISSUED_FROM_APPROVED},
    S.VERIFIED: {S.ISSUED_FROM_APPROVED},
    S.ISSUED_FROM_APPROVED: {S.ISSUED_FROM_APPROVED, S.PARTIALLY_ISSUED, S.ISSUED},
    S.PARTIALLY_ISSUED: {S.PARTIALLY_ISSUED, S.ISSUED},
    S.ISSUED: {S.RECEIVED},
    S.RECEIVED: {S.RECEIVED, S.CLOSED},
    S.REJECTED: set(),
    S.CLOSED: set(),
}

TERMINAL = frozenset(s for s, nxt in ALLOWED_MOVES.items() if not nxt)
ISSUABLE = frozenset({S.APPROVED, S.VERIFIED, S.ISSUED_FROM_APPROVED, S.PARTIALLY_ISSUED})
RECEIVABLE = frozenset({S.ISSUED, S.RECEIVED})


def review_target(status: S, level: L, action: A) -> Optional[S]:
    return REVIEW_TRANSITIONS.get((status, level, action))


def can_move(src: S, dst: S) -> bool:
    return dst in ALLOWED_MOVES.get(src, ())


def move(req: Request, target: S, attempted: str) -> S:
    """Set `req.status` to `target` or raise InvalidTransition."""
    current = req.status
    if not can_move(current, target):
        raise InvalidTransition(req.id, current, attempted)
    req.status = target
    if current != target:
        log.info("request %s: %s -> %s (%s)", req.id, current.value, target.value, attempted)
    return target


def item_satisfied(item: RequestItem) -> bool:
    approved = Decimal(item.qty_approved or 0)
    return Decimal(item.qty_issued or 0) >= approved


def issuance_status(items: Iterable[RequestItem]) -> S:
    """Aggregate status of a request once issuing has started."""
    items = list(items)
    if items and all(item_satisfied(i) for i in items):
        return S.ISSUED
    if any(Decimal(i.qty_issued or 0) > 0 for i in items):
        return S.PARTIALLY_ISSUED
    return S.ISSUED_FROM_APPROVED


def fully_received(items: Iterable[RequestItem]) -> bool:
    return all(Decimal(i.qty_received or 0) >= Decimal(i.qty_issued or 0) for i in items)
