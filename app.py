import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify

from admin.setup import init_admin
from blueprint import blue_print
from configs import configure_logging, db, env_flag, login
from db.models.user import User
from utils.errors import register_error_handlers

load_dotenv()

log = logging.getLogger(__name__)


def create_app(overrides: dict | None = None) -> Flask:
    configure_logging()
    app = Flask(__name__)
    app.secret_key = os.getenv("SECRET_KEY", "dev_secret")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL", "sqlite:///materials.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["ALLOW_NEGATIVE_STOCK"] = env_flag("ALLOW_NEGATIVE_STOCK", False)
    app.config["JSON_SORT_KEYS"] = False
    if overrides:
        app.config.update(overrides)

    db.init_app(app)
    login.init_app(app)

    @login.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login.unauthorized_handler
    def unauthorized():
        return jsonify({"success": False, "code": "UNAUTHORIZED", "message": "Login required"}), 401

    register_error_handlers(app)
    init_admin(app)  # /manage
    blue_print(app)
    log.info("app ready, database %s", app.config["SQLALCHEMY_DATABASE_URI"].split("@")[-1])
    return app


app = create_app()

if __name__ == "__main__":
    app.run(debug=env_flag("FLASK_DEBUG", True), host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
