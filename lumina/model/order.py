from ..extensions import db
from ..utils.money import to_float
from ..utils.timeutil import utcnow, isoformat

ORDER_STATUSES = ("pending", "approved", "processing", "delivered", "cancelled", "partial_delivered")


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)
    invoice = db.Column(db.String(32), unique=True, nullable=False, index=True)  # e.g. "INV-LZ3K9Q2A-7F1C"
    status = db.Column(db.String(20), default="pending", index=True)
    payment_status = db.Column(db.String(20), default="cod")

    # Customer snapshot
    customer_name = db.Column(db.String(120), nullable=False)
    customer_phone = db.Column(db.String(50), nullable=False, index=True)
    customer_email = db.Column(db.String(120))
    customer_address = db.Column(db.Text, nullable=False)

    # Money snapshot
    subtotal = db.Column(db.Numeric(12, 2), default=0)
    discount = db.Column(db.Numeric(12, 2), default=0)
    delivery_charge = db.Column(db.Numeric(12, 2), default=0)
    total = db.Column(db.Numeric(12, 2), default=0)

    admin_note = db.Column(db.Text)

    # Courier
    consignment_id = db.Column(db.String(64), index=True)
    tracking_code = db.Column(db.String(64), index=True)
    courier_status = db.Column(db.String(64))
    tracking_message = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow, index=True)
    approved_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id.asc()",
    )
    coupons = db.relationship(
        "OrderCoupon",
        backref="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def item_description(self) -> str:
        return ", ".join(
            f"{i.product_name}{f' ({i.variety_name})' if i.variety_name else ''} x{i.quantity}"
            for i in self.items
        )

    def as_api(self):
        return {
            "id": self.id,
            "invoice": self.invoice,
            "status": self.status,
            "payment_status": self.payment_status,
            "customer": {
                "name": self.customer_name,
                "phone": self.customer_phone,
                "email": self.customer_email,
                "address": self.customer_address,
            },
            "money": {
                "subtotal": to_float(self.subtotal),
                "discount": to_float(self.discount),
                "delivery_charge": to_float(self.delivery_charge),
                "total": to_float(self.total),
            },
            "courier": {
                "consignment_id": self.consignment_id,
                "tracking_code": self.tracking_code,
                "status": self.courier_status,
                "tracking_message": self.tracking_message,
            },
            "admin_note": self.admin_note,
            "items": [i.as_api() for i in self.items],
            "coupons": [c.as_api() for c in self.coupons],
            "created_at": isoformat(self.created_at),
            "approved_at": isoformat(self.approved_at),
            "delivered_at": isoformat(self.delivered_at),
        }


class OrderItem(db.Model):
    __tablename__ = "order_items"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    # not a FK: the product may be deleted later, the snapshot stays
    product_id = db.Column(db.Integer, index=True)
    product_name = db.Column(db.String(255), nullable=False)
    variety_name = db.Column(db.String(120))

    price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    def as_api(self):
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "variety_name": self.variety_name,
            "price": to_float(self.price),
            "quantity": self.quantity,
            "total": to_float(self.total),
        }


class OrderCoupon(db.Model):
    __tablename__ = "order_coupons"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    coupon_id = db.Column(db.Integer, index=True)
    code = db.Column(db.String(64), nullable=False)
    type = db.Column(db.String(16))
    value = db.Column(db.Numeric(12, 2))
    discount = db.Column(db.Numeric(12, 2), default=0)

    def as_api(self):
        return {
            "coupon_id": self.coupon_id,
            "code": self.code,
            "type": self.type,
            "value": to_float(self.value),
            "discount": to_float(self.discount),
        }
