# --- lumina/model/coupon.py ---

from sqlalchemy.sql import func
from ..extensions import db
from ..utils.money import to_float

COUPON_TYPES = ("percentage", "fixed")
APPLY_TO = ("all", "category", "product")


class Coupon(db.Model):
    __tablename__ = "coupon"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), unique=True, nullable=False, index=True)   # stored upper-case

    # "percentage" or "fixed"
    type = db.Column(db.String(16), nullable=False, default="percentage")
    value = db.Column(db.Numeric(12, 2), nullable=False)

    # "all", "category" or "product"; the matching target id is set, the other is null
    apply_to = db.Column(db.String(16), nullable=False, default="all")
    category_id = db.Column(db.Integer, db.ForeignKey("category.id", ondelete="SET NULL"), nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id", ondelete="SET NULL"), nullable=True)

    is_active = db.Column(db.Boolean, default=True, index=True)
    expires_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now())

    def is_expired(self, now) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "type": self.type,
            "value": to_float(self.value),
            "apply_to": self.apply_to,
            "category_id": self.category_id,
            "product_id": self.product_id,
            "is_active": bool(self.is_active),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
