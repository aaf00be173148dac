# lumina/services/coupon_service.py
"""
Coupon validation and applicability.

A code goes through three checks before its scope is looked at: it must
exist, be active and not be expired. Each failure has its own error so the
storefront can show a specific message. A coupon that passes but matches
nothing in the cart is still returned (``is_applicable=False``) together with
a reason, it is not an error.
"""
from __future__ import annotations
from dataclasses import dataclass
from sqlalchemy import func

from ..errors import (
    CouponExpiredError,
    CouponInactiveError,
    NotFoundError,
    ValidationError,
)
from ..extensions import db
from ..model import Category, Coupon, Product
from ..model.coupon import APPLY_TO, COUPON_TYPES
from ..utils.db import commit
from ..utils.money import D
from ..utils.timeutil import utcnow
from . import catalog_service
from .cart_service import AppliedCoupon


@dataclass(frozen=True)
class Applicability:
    applies_to_text: str
    applicable_product_ids: tuple
    is_applicable: bool


def resolve_applicability(coupon, lines, category_name=None, product_name=None) -> Applicability:
    """
    ``lines`` are ``(product_id, category_id)`` carriers (anything with those
    attributes), one per cart line.
    """
    product_ids = [l.product_id for l in lines]

    if coupon.apply_to == "all":
        return Applicability("All Products", tuple(product_ids), bool(product_ids))

    if coupon.apply_to == "category":
        target = coupon.category_id
        text = f"Category: {category_name}" if category_name else "Specific Category"
        matching = tuple(l.product_id for l in lines if l.category_id == target)
        return Applicability(text, matching, bool(matching))

    if coupon.apply_to == "product":
        target = coupon.product_id
        text = f"Product: {product_name}" if product_name else "Specific Product"
        return Applicability(text, (target,), target in product_ids)

    return Applicability("Unknown", (), False)


def not_applicable_reason(applied: AppliedCoupon) -> str | None:
    if applied.is_applicable:
        return None
    return f"This coupon applies to {applied.applies_to_text} which is not in your cart."


def find_by_code(code: str) -> Coupon | None:
    return Coupon.query.filter(func.upper(Coupon.code) == code.strip().upper()).first()


def check_usable(coupon: Coupon | None, now=None) -> Coupon:
    if coupon is None:
        raise NotFoundError("Invalid coupon code")
    if not coupon.is_active:
        raise CouponInactiveError()
    if coupon.is_expired(now or utcnow()):
        raise CouponExpiredError()
    return coupon


def to_applied(coupon: Coupon, lines) -> AppliedCoupon:
    category_name = product_name = None
    if coupon.apply_to == "category" and coupon.category_id:
        category_name = catalog_service.category_name(coupon.category_id)
    elif coupon.apply_to == "product" and coupon.product_id:
        product_name = catalog_service.product_name(coupon.product_id)
    res = resolve_applicability(coupon, lines, category_name=category_name, product_name=product_name)
    return AppliedCoupon(
        id=coupon.id,
        code=coupon.code,
        type=coupon.type,
        value=D(coupon.value),
        apply_to=coupon.apply_to,
        applies_to_text=res.applies_to_text,
        applicable_product_ids=res.applicable_product_ids,
        is_applicable=res.is_applicable,
    )


def validate_coupon(code: str | None, lines, now=None) -> AppliedCoupon:
    code = (code or "").strip()
    if not code:
        raise ValidationError("Coupon code is required")
    coupon = check_usable(find_by_code(code), now)
    return to_applied(coupon, list(lines))


# ---------- admin ----------

def _check_definition(data: dict, current_id=None) -> dict:
    code = (data.get("code") or "").strip().upper()
    ctype = (data.get("type") or "").strip().lower()
    apply_to = (data.get("apply_to") or "").strip().lower()
    value = data.get("value")

    if not code or not ctype or value is None or not apply_to:
        raise ValidationError("Code, type, value, and apply to are required")
    if ctype not in COUPON_TYPES:
        raise ValidationError("type must be 'percentage' or 'fixed'")
    if apply_to not in APPLY_TO:
        raise ValidationError("apply to must be 'all', 'category' or 'product'")
    value = D(value)
    if value <= 0:
        raise ValidationError("value must be > 0")
    if ctype == "percentage" and value > 100:
        raise ValidationError("percentage coupon must be <= 100")

    category_id = data.get("category_id") if apply_to == "category" else None
    product_id = data.get("product_id") if apply_to == "product" else None
    if apply_to == "category":
        if not category_id:
            raise ValidationError("Category is required for category-specific coupons")
        if not db.session.get(Category, category_id):
            raise ValidationError("Category not found")
    if apply_to == "product":
        if not product_id:
            raise ValidationError("Product is required for product-specific coupons")
        if not db.session.get(Product, product_id):
            raise ValidationError("Product not found")

    duplicate = find_by_code(code)
    if duplicate and duplicate.id != current_id:
        raise ValidationError("Coupon code already exists")

    return {
        "code": code,
        "type": ctype,
        "value": value,
        "apply_to": apply_to,
        "category_id": category_id,
        "product_id": product_id,
        "is_active": bool(data.get("is_active", True)),
        "expires_at": data.get("expires_at"),
    }


def create_coupon(data: dict) -> Coupon:
    c = Coupon(**_check_definition(data))
    db.session.add(c)
    commit("create coupon")
    return c


def get_coupon(coupon_id: int) -> Coupon:
    c = db.session.get(Coupon, coupon_id)
    if not c:
        raise NotFoundError("Coupon not found")
    return c


def update_coupon(coupon_id: int, data: dict) -> Coupon:
    c = get_coupon(coupon_id)
    for key, value in _check_definition(data, current_id=c.id).items():
        setattr(c, key, value)
    commit("update coupon")
    return c


def delete_coupon(coupon_id: int):
    c = get_coupon(coupon_id)
    db.session.delete(c)
    commit("delete coupon")


def list_coupons(active_only: bool = False) -> list[Coupon]:
    q = Coupon.query
    if active_only:
        q = q.filter(Coupon.is_active.is_(True))
    return q.order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()
