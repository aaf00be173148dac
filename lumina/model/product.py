# lumina/model/product.py
from sqlalchemy.sql import func
from ..extensions import db
from ..services.pricing import effective_price
from ..utils.money import to_float


class Product(db.Model):
    __tablename__ = "product"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("category.id"), nullable=False, index=True)
    is_offer = db.Column(db.Boolean, default=False, index=True)
    short_desc = db.Column(db.String(512))
    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    varieties = db.relationship(
        "Variety",
        backref="product",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Variety.id.asc()",
    )

    def variety_named(self, name: str | None):
        """Find a variety by name; cart subtitles like "Weight: 1kg" also match "1kg"."""
        if not name:
            return self.varieties[0] if len(self.varieties) == 1 else None
        wanted = name.strip().lower()
        for v in self.varieties:
            if v.name.lower() == wanted:
                return v
        if ":" in wanted:
            tail = wanted.split(":", 1)[1].strip()
            for v in self.varieties:
                if v.name.lower() == tail:
                    return v
        return None

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "category_id": self.category_id,
            "category": self.category.as_dict() if self.category else None,
            "is_offer": self.is_offer,
            "short_desc": self.short_desc,
            "varieties": [v.as_api() for v in self.varieties],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Variety(db.Model):
    __tablename__ = "variety"
    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id", ondelete="CASCADE"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)          # e.g. "1kg", "500g"
    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    stock = db.Column(db.Integer, default=0)

    has_discount = db.Column(db.Boolean, default=False)
    discount_type = db.Column(db.String(16), nullable=True)   # "fixed" | "percentage" | None
    discount_value = db.Column(db.Numeric(12, 2), nullable=True)

    def effective_price(self):
        return effective_price(self)

    def as_api(self):
        return {
            "id": self.id,
            "name": self.name,
            "price": to_float(self.price),
            "stock": self.stock,
            "has_discount": bool(self.has_discount),
            "discount_type": self.discount_type,
            "discount_value": to_float(self.discount_value) if self.discount_value is not None else None,
            "effective_price": to_float(self.effective_price()),
        }
