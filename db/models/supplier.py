from configs import db


class Supplier(db.Model):
    __tablename__ = "suppliers"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(255), nullable=False)
    contact = db.Column(db.String(150))
    phone = db.Column(db.String(30))
    email = db.Column(db.String(255))
    address = db.Column(db.Text)
    active = db.Column(db.Boolean, default=True, nullable=False)

    def __str__(self):
        return self.name
