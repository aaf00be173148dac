# --- lumina/model/category.py ---
from sqlalchemy.sql import func
from ..extensions import db

# ---------------- CATEGORY ----------------
class Category(db.Model):
    __tablename__ = "category"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    image_url = db.Column(db.String(1024))
    created_at = db.Column(db.DateTime, server_default=func.now())

    products = db.relationship(
        "Product",
        backref="category",
        lazy=True
        )

    def as_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "image_url": self.image_url,
            }
