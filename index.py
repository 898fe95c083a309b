# index.py
from datetime import datetime
from flask import Blueprint, current_app
from sqlalchemy import text
from configs import db
from utils.serializers import ok

main_bp = Blueprint("main", __name__)


@main_bp.route("/")
def home():
    return ok({"service": current_app.name, "time": datetime.utcnow().isoformat()})


@main_bp.route("/api/health")
def health():
    db.session.execute(text("SELECT 1"))
    return ok({"database": "ok"})
