# lumina/services/catalog_service.py
from __future__ import annotations
from sqlalchemy import select

from ..cache import CATEGORIES_TTL, PRODUCTS_TTL
from ..errors import NotFoundError, ValidationError
from ..extensions import db, cache
from ..model import Category, Product, Variety
from ..utils.db import commit
from ..utils.money import D
from .pricing import DISCOUNT_TYPES


def _products_key(category_id=None):
    return f"products-{category_id}" if category_id else "products-all"


def invalidate_catalog():
    cache.delete_prefix("categories")
    cache.delete_prefix("products")


# ---------- reads (cached) ----------

def list_categories() -> list[dict]:
    def load():
        rows = db.session.scalars(select(Category).order_by(Category.created_at.desc(), Category.id.desc())).all()
        return [c.as_dict() for c in rows]
    return cache.get_or_set("categories", load, CATEGORIES_TTL)


def list_products(category_id: int | None = None) -> list[dict]:
    def load():
        q = select(Product).order_by(Product.created_at.desc(), Product.id.desc())
        if category_id:
            q = q.where(Product.category_id == category_id)
        return [p.as_api() for p in db.session.scalars(q).all()]
    return cache.get_or_set(_products_key(category_id), load, PRODUCTS_TTL)


def category_name(category_id) -> str | None:
    for c in list_categories():
        if c["id"] == category_id:
            return c["name"]
    return None


def product_name(product_id) -> str | None:
    for p in list_products():
        if p["id"] == product_id:
            return p["name"]
    return None


def get_category(category_id: int) -> Category:
    c = db.session.get(Category, category_id)
    if not c:
        raise NotFoundError("Category not found")
    return c


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found")
    return p


# ---------- writes ----------

def create_category(name: str, code: str, image_url: str | None = None) -> Category:
    name, code = (name or "").strip(), (code or "").strip()
    if not name or not code:
        raise ValidationError("Name and code are required")
    if Category.query.filter_by(code=code).first():
        raise ValidationError("Code already exists")
    c = Category(name=name, code=code, image_url=image_url or None)
    db.session.add(c)
    commit("create category")
    invalidate_catalog()
    return c


def delete_category(category_id: int):
    c = get_category(category_id)
    if Product.query.filter_by(category_id=category_id).first():
        raise ValidationError("cannot delete: category has products")
    db.session.delete(c)
    commit("delete category")
    invalidate_catalog()


def _variety_from_payload(v) -> Variety:
    dtype = v.discount_type if v.has_discount else None
    dval = D(v.discount_value) if v.has_discount and v.discount_value is not None else None
    if v.has_discount:
        if dtype not in DISCOUNT_TYPES or dval is None:
            raise ValidationError(f"variety '{v.name}': discount type and value are required")
        if dtype == "percentage" and dval > 100:
            raise ValidationError(f"variety '{v.name}': percentage discount must be <= 100")
    return Variety(
        name=v.name.strip(),
        price=D(v.price),
        stock=v.stock,
        has_discount=v.has_discount,
        discount_type=dtype,
        discount_value=dval,
    )


def create_product(body) -> Product:
    if not db.session.get(Category, body.category_id):
        raise ValidationError("Category not found")
    if not body.varieties:
        raise ValidationError("At least one variety is required")
    p = Product(
        name=body.name.strip(),
        category_id=body.category_id,
        is_offer=body.is_offer,
        short_desc=body.short_desc,
    )
    p.varieties = [_variety_from_payload(v) for v in body.varieties]
    db.session.add(p)
    commit("create product")
    invalidate_catalog()
    return p


def delete_product(product_id: int):
    p = get_product(product_id)
    db.session.delete(p)
    commit("delete product")
    invalidate_catalog()
