import os
from configs import db
from dao import site as site_dao
from dao import user as user_dao
from db.models.site import Site
from db.models.user import RoleName
from app import app  # app context for the session

DEFAULT_PASSWORD = os.getenv("SEED_PASSWORD", "ChangeMe123")

USERS = [
    ("System Admin", "admin@example.com", RoleName.ADMIN),
    ("Site Engineer", "engineer@example.com", RoleName.SITE_ENGINEER),
    ("Diocesan Site Engineer", "dse@example.com", RoleName.DIOCESAN_SITE_ENGINEER),
    ("Padiri", "padiri@example.com", RoleName.PADIRI),
    ("Storekeeper", "store@example.com", RoleName.STOREKEEPER),
    ("Procurement Officer", "procurement@example.com", RoleName.PROCUREMENT),
]

with app.app_context():
    user_dao.ensure_roles()
    for full_name, email, role in USERS:
        if user_dao.get_user_by_email(email) is None:
            user_dao.create_user(full_name, email, DEFAULT_PASSWORD, role)

    engineer = user_dao.get_user_by_email("engineer@example.com")
    for site in Site.query.all():
        site_dao.assign_user(engineer.id, site.id)
    db.session.commit()

    print("Seeded users with all defined roles")
