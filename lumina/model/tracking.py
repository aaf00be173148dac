# lumina/model/tracking.py
from __future__ import annotations
import uuid as _uuid
from sqlalchemy.sql import func
from ..extensions import db
from ..utils.money import to_float
from ..utils.timeutil import isoformat

ACTIVE = "active"
COMPLETED = "completed"
ABANDONED = "abandoned"


class Visitor(db.Model):
    __tablename__ = "visitor"

    id = db.Column(db.Integer, primary_key=True)
    visitor_token = db.Column(db.String(64), unique=True, nullable=False, index=True)   # "Visitor-<serial>"
    serial_number = db.Column(db.Integer, unique=True, nullable=False)
    name = db.Column(db.String(120))
    phone = db.Column(db.String(50))
    email = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, server_default=func.now())

    sessions = db.relationship(
        "CheckoutSession",
        back_populates="visitor",
        lazy="dynamic",
        order_by="CheckoutSession.entry_time.desc()",
    )

    def as_api(self):
        return {
            "id": self.id,
            "visitor_id": self.visitor_token,
            "serial_number": self.serial_number,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "created_at": isoformat(self.created_at),
        }


class CheckoutSession(db.Model):
    __tablename__ = "checkout_session"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(_uuid.uuid4()))
    visitor_id = db.Column(db.Integer, db.ForeignKey("visitor.id", ondelete="CASCADE"), nullable=False, index=True)

    entry_time = db.Column(db.DateTime, nullable=False, index=True)
    exit_time = db.Column(db.DateTime, nullable=True)
    time_spent = db.Column(db.Integer, nullable=True)          # whole seconds

    customer_name = db.Column(db.String(120))
    customer_phone = db.Column(db.String(50))
    customer_address = db.Column(db.Text)

    cart_items = db.Column(db.JSON, nullable=False, default=list)
    subtotal = db.Column(db.Numeric(12, 2), default=0)
    applied_coupons = db.Column(db.JSON, nullable=True)
    discount_amount = db.Column(db.Numeric(12, 2), default=0)

    order_completed = db.Column(db.Boolean, nullable=False, default=False, index=True)
    order_placed_at = db.Column(db.DateTime, nullable=True)

    visitor = db.relationship("Visitor", back_populates="sessions", lazy="joined")

    @property
    def state(self) -> str:
        if self.order_completed:
            return COMPLETED
        if self.exit_time is not None:
            return ABANDONED
        return ACTIVE

    def as_api(self, with_visitor: bool = False):
        data = {
            "id": self.id,
            "visitor_id": self.visitor_id,
            "state": self.state,
            "entry_time": isoformat(self.entry_time),
            "exit_time": isoformat(self.exit_time),
            "time_spent": self.time_spent,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_address": self.customer_address,
            "cart_items": self.cart_items or [],
            "subtotal": to_float(self.subtotal),
            "applied_coupons": self.applied_coupons,
            "discount_amount": to_float(self.discount_amount),
            "order_completed": bool(self.order_completed),
            "order_placed_at": isoformat(self.order_placed_at),
        }
        if with_visitor:
            data["visitor"] = self.visitor.as_api() if self.visitor else None
        return data
