# utils/auth.py
from functools import wraps
from flask import abort
from flask_login import current_user

from db.models.user import RoleName


def roles_required(*roles):
    """Allow the view to users holding one of `roles`; ADMIN always passes."""

    def deco(fn):
        @wraps(fn)
        def inner(*a, **kw):
            if not current_user.is_authenticated:
                abort(401)
            if not current_user.has_role(RoleName.ADMIN, *roles):
                abort(403)
            return fn(*a, **kw)

        return inner

    return deco
