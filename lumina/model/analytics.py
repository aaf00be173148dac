# lumina/model/analytics.py
from ..extensions import db
from ..utils.timeutil import utcnow, isoformat


class ProductView(db.Model):
    __tablename__ = "product_view"

    id = db.Column(db.Integer, primary_key=True)
    # not FKs: events outlive deleted products and unknown visitors
    product_id = db.Column(db.Integer, nullable=False, index=True)
    visitor_token = db.Column(db.String(64), index=True)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def as_api(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "visitor_id": self.visitor_token,
            "created_at": isoformat(self.created_at),
        }


class CartAdd(db.Model):
    __tablename__ = "cart_add"

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)
    visitor_token = db.Column(db.String(64), index=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=utcnow, index=True)

    def as_api(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "visitor_id": self.visitor_token,
            "quantity": self.quantity,
            "created_at": isoformat(self.created_at),
        }
