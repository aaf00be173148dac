from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from lumina.errors import (
    CouponExpiredError,
    CouponInactiveError,
    NotFoundError,
    ValidationError,
)
from lumina.services import coupon_service
from lumina.services.cart_service import CartLine
from lumina.utils.timeutil import utcnow


def ref(product_id, category_id):
    return SimpleNamespace(product_id=product_id, category_id=category_id)


# ---- resolver (no storage) ----

def test_all_scope_applies_to_every_line():
    c = SimpleNamespace(apply_to="all", category_id=None, product_id=None)
    res = coupon_service.resolve_applicability(c, [ref(1, 5), ref(2, 6)])
    assert res.applies_to_text == "All Products"
    assert res.applicable_product_ids == (1, 2)
    assert res.is_applicable


def test_all_scope_on_empty_cart_is_not_applicable():
    c = SimpleNamespace(apply_to="all", category_id=None, product_id=None)
    assert not coupon_service.resolve_applicability(c, []).is_applicable


def test_category_scope_matches_by_category():
    c = SimpleNamespace(apply_to="category", category_id=5, product_id=None)
    res = coupon_service.resolve_applicability(c, [ref(1, 5), ref(2, 6), ref(3, 5)], category_name="Vegetables")
    assert res.applies_to_text == "Category: Vegetables"
    assert res.applicable_product_ids == (1, 3)
    assert res.is_applicable


def test_category_scope_without_name():
    c = SimpleNamespace(apply_to="category", category_id=9, product_id=None)
    res = coupon_service.resolve_applicability(c, [ref(1, 5)])
    assert res.applies_to_text == "Specific Category"
    assert not res.is_applicable


def test_product_scope():
    c = SimpleNamespace(apply_to="product", category_id=None, product_id=2)
    res = coupon_service.resolve_applicability(c, [ref(1, 5), ref(2, 6)], product_name="Onion")
    assert res.applies_to_text == "Product: Onion"
    assert res.applicable_product_ids == (2,)
    assert res.is_applicable

    missing = coupon_service.resolve_applicability(c, [ref(1, 5)])
    assert missing.applicable_product_ids == (2,)
    assert not missing.is_applicable


# ---- validation against storage ----

def test_unknown_code(app):
    with pytest.raises(NotFoundError) as e:
        coupon_service.validate_coupon("NOPE", [])
    assert e.value.message == "Invalid coupon code"


def test_empty_code(app):
    with pytest.raises(ValidationError):
        coupon_service.validate_coupon("  ", [])


def test_inactive_and_expired(app, make_coupon):
    make_coupon("OFF", is_active=False)
    make_coupon("OLD", expires_at=utcnow() - timedelta(days=1))
    with pytest.raises(CouponInactiveError) as e:
        coupon_service.validate_coupon("OFF", [])
    assert e.value.status_code == 400
    with pytest.raises(CouponExpiredError) as e:
        coupon_service.validate_coupon("OLD", [])
    assert e.value.message == "This coupon has expired"


def test_inactive_checked_before_expiry(app, make_coupon):
    make_coupon("BOTH", is_active=False, expires_at=utcnow() - timedelta(days=1))
    with pytest.raises(CouponInactiveError):
        coupon_service.validate_coupon("BOTH", [])


def test_future_expiry_is_fine(app, make_coupon):
    make_coupon("LATER", expires_at=utcnow() + timedelta(days=1))
    assert coupon_service.validate_coupon("later", [ref(1, 1)]).code == "LATER"


def test_category_coupon_uses_catalog_name(app, catalog, make_coupon):
    make_coupon("VEG10", apply_to="category", category_id=catalog["veg"].id)
    lines = [CartLine(product_id=catalog["miniket"].id, category_id=catalog["rice"].id, price=Decimal("400"))]
    applied = coupon_service.validate_coupon("VEG10", lines)
    assert not applied.is_applicable
    assert coupon_service.not_applicable_reason(applied) == (
        "This coupon applies to Category: Vegetables which is not in your cart."
    )


# ---- admin ----

def test_create_coupon_normalizes_code(app):
    c = coupon_service.create_coupon({"code": " save5 ", "type": "fixed", "value": 5, "apply_to": "all"})
    assert c.code == "SAVE5"
    assert c.category_id is None and c.product_id is None


def test_create_rejects_percentage_over_100(app):
    with pytest.raises(ValidationError):
        coupon_service.create_coupon({"code": "BIG", "type": "percentage", "value": 150, "apply_to": "all"})


def test_create_requires_scope_target(app):
    with pytest.raises(ValidationError) as e:
        coupon_service.create_coupon({"code": "CAT", "type": "fixed", "value": 5, "apply_to": "category"})
    assert "Category is required" in e.value.message


def test_duplicate_code_rejected(app, make_coupon):
    make_coupon("DUP")
    with pytest.raises(ValidationError) as e:
        coupon_service.create_coupon({"code": "dup", "type": "fixed", "value": 5, "apply_to": "all"})
    assert e.value.message == "Coupon code already exists"


def test_update_keeps_own_code(app, make_coupon):
    c = make_coupon("KEEP")
    updated = coupon_service.update_coupon(c.id, {"code": "KEEP", "type": "fixed", "value": 7, "apply_to": "all"})
    assert updated.type == "fixed"
    assert updated.value == Decimal("7")
