from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash
from configs import db
from db.models.user import Role, RoleName, User
from utils.errors import Conflict, NotFound, ValidationError
from utils.helpers import paginate

MIN_PASSWORD_LENGTH = 8


def list_roles() -> List[Role]:
    return Role.query.order_by(Role.id.asc()).all()


def get_role(role) -> Role:
    """Look a role up by id or by name."""
    if isinstance(role, int) or str(role).isdigit():
        r = db.session.get(Role, int(role))
    else:
        try:
            name = role if isinstance(role, RoleName) else RoleName(str(role).upper())
        except ValueError:
            raise ValidationError(f"Unknown role: {role!r}", field="role")
        r = Role.query.filter_by(name=name).first()
    if r is None:
        raise NotFound("Role", role)
    return r


def ensure_roles() -> List[Role]:
    existing = {r.name for r in Role.query.all()}
    for name in RoleName:
        if name not in existing:
            db.session.add(Role(name=name))
    _commit()
    return list_roles()


def list_users(page=1, limit=10, role=None, search=None, active=None):
    q = User.query
    if role:
        q = q.filter(User.role_id == get_role(role).id)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(User.full_name.ilike(like), User.email.ilike(like)))
    if active is not None:
        q = q.filter(User.active.is_(bool(active)))
    return paginate(q.order_by(User.full_name.asc()), page, limit)


def get_user(user_id: int) -> User:
    u = db.session.get(User, int(user_id))
    if u is None:
        raise NotFound("User", user_id)
    return u


def get_user_by_email(email: str) -> Optional[User]:
    return User.query.filter(User.email == (email or "").strip().lower()).first()


def _check_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters", field="password"
        )


def create_user(full_name: str, email: str, password: str, role, phone: str | None = None) -> User:
    if not (full_name or "").strip() or not (email or "").strip():
        raise ValidationError("Full name and email are required")
    _check_password(password)
    if get_user_by_email(email) is not None:
        raise Conflict("Email already registered", email=email)
    u = User(
        full_name=full_name.strip(),
        email=email.strip().lower(),
        phone=phone,
        password_hash=generate_password_hash(password),
        role_id=get_role(role).id,
    )
    db.session.add(u)
    _commit()
    return u


def update_user(user_id: int, **fields) -> User:
    u = get_user(user_id)
    if fields.get("full_name"):
        u.full_name = fields["full_name"].strip()
    if fields.get("email") and fields["email"].strip().lower() != u.email:
        if get_user_by_email(fields["email"]) is not None:
            raise Conflict("Email already registered", email=fields["email"])
        u.email = fields["email"].strip().lower()
    if "phone" in fields:
        u.phone = fields["phone"]
    if fields.get("role"):
        u.role_id = get_role(fields["role"]).id
    if "active" in fields and fields["active"] is not None:
        u.active = bool(fields["active"])
    if fields.get("password"):
        _check_password(fields["password"])
        u.password_hash = generate_password_hash(fields["password"])
        u.first_login = True
    _commit()
    return u


def deactivate_user(user_id: int) -> User:
    return update_user(user_id, active=False)


def authenticate(email: str, password: str) -> Optional[User]:
    u = get_user_by_email(email)
    if u is None or not u.active:
        return None
    if not check_password_hash(u.password_hash, password or ""):
        return None
    return u


def change_password(user_id: int, current_password: str, new_password: str) -> User:
    u = get_user(user_id)
    if not check_password_hash(u.password_hash, current_password or ""):
        raise ValidationError("Current password is incorrect", field="current_password")
    _check_password(new_password)
    u.password_hash = generate_password_hash(new_password)
    u.first_login = False
    _commit()
    return u


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
