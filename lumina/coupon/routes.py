# lumina/coupon/routes.py
from __future__ import annotations
from flask import request

from ..schemas import CouponIn, CouponValidateIn
from ..services import coupon_service
from ..utils.api import ok
from ..utils.decorators import validate_body
from . import bp


@bp.post("/validate")
@validate_body(CouponValidateIn)
def validate_coupon(body: CouponValidateIn):
    """
    Body: { "code": "SAVE10", "items": [{"productId": 1, "categoryId": 2}, ...] }
    404 unknown code, 400 inactive / expired. A valid coupon that matches
    nothing in the cart comes back with is_applicable=false and a message.
    """
    applied = coupon_service.validate_coupon(body.code, body.items)
    reason = coupon_service.not_applicable_reason(applied)
    return ok(reason or "Coupon applied", {"valid": True, "coupon": applied.as_api()})


@bp.get("")
def list_coupons():
    active_only = (request.args.get("active") or "").lower() == "true"
    coupons = coupon_service.list_coupons(active_only=active_only)
    return ok("coupons", [c.as_api() for c in coupons])


@bp.post("")
@validate_body(CouponIn)
def create_coupon(body: CouponIn):
    c = coupon_service.create_coupon(body.model_dump())
    return ok("Coupon created", c.as_api(), status=201)


@bp.get("/<int:coupon_id>")
def get_coupon(coupon_id: int):
    return ok("coupon", coupon_service.get_coupon(coupon_id).as_api())


@bp.put("/<int:coupon_id>")
@validate_body(CouponIn)
def update_coupon(coupon_id: int, body: CouponIn):
    c = coupon_service.update_coupon(coupon_id, body.model_dump())
    return ok("Coupon updated", c.as_api())


@bp.delete("/<int:coupon_id>")
def delete_coupon(coupon_id: int):
    coupon_service.delete_coupon(coupon_id)
    return ok("Coupon deleted successfully")
