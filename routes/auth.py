from flask import Blueprint, request
from flask_login import current_user, login_required, login_user, logout_user
from dao import user as user_dao
from utils.errors import AppError, ValidationError
from utils.serializers import ok, user_dict

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


class InvalidCredentials(AppError):
    status_code = 401
    code = "INVALID_CREDENTIALS"


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or request.form
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = user_dao.authenticate(email, password)
    if user is None:
        raise InvalidCredentials("Invalid email or password")
    login_user(user, remember=bool(data.get("remember")))
    return ok(user_dict(user), "Login successful")


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return ok(message="Logged out")


@auth_bp.route("/me")
@login_required
def me():
    return ok(user_dict(current_user))


@auth_bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    data = request.get_json(silent=True) or {}
    user = user_dao.change_password(
        current_user.id, data.get("current_password"), data.get("new_password")
    )
    return ok(user_dict(user), "Password changed")
