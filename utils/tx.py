# utils/tx.py
import logging
import os
from functools import wraps

from sqlalchemy.exc import DBAPIError

from configs import db

log = logging.getLogger(__name__)

# PostgreSQL serialization_failure / deadlock_detected
_RETRYABLE_PGCODES = {"40001", "40P01"}


def _is_retryable(err: DBAPIError) -> bool:
    pgcode = getattr(err.orig, "pgcode", None)
    if pgcode in _RETRYABLE_PGCODES:
        return True
    msg = str(err.orig)
    # two transactions creating the same stock row
    if "uq_stock_store_material" in msg or "stock.store_id, stock.material_id" in msg:
        return True
    return "database is locked" in msg


def atomic(fn):
    """Run a DAO operation as one transaction.

    Commits on success, rolls back on any exception. Serialization and
    deadlock failures reported by the database are retried up to
    TX_MAX_RETRIES times; business errors propagate untouched.
    """

    @wraps(fn)
    def inner(*a, **kw):
        retries = int(os.getenv("TX_MAX_RETRIES", "3"))
        attempt = 0
        while True:
            attempt += 1
            try:
                result = fn(*a, **kw)
                db.session.commit()
                return result
            except DBAPIError as e:
                db.session.rollback()
                if attempt <= retries and _is_retryable(e):
                    log.info("retrying %s after conflict (attempt %d)", fn.__name__, attempt)
                    continue
                raise
            except Exception:
                db.session.rollback()
                raise

    return inner
