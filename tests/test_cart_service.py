from decimal import Decimal

from lumina.services.cart_service import (
    AppliedCoupon,
    CartLine,
    add_coupon,
    delivery_cost,
    discount_for,
    quote,
    remove_coupon,
    total_discount,
)


def coupon(id, type, value, apply_to="all", product_ids=(), applicable=True):
    return AppliedCoupon(id=id, code=f"C{id}", type=type, value=Decimal(value),
                         apply_to=apply_to, applicable_product_ids=tuple(product_ids),
                         is_applicable=applicable)


# 300 + 200 = 500
LINES = [
    CartLine(product_id=1, category_id=1, price=Decimal("100"), quantity=3),
    CartLine(product_id=2, category_id=2, price=Decimal("200"), quantity=1),
]


def test_percentage_coupon_on_all():
    q = quote(LINES, [coupon(1, "percentage", 10)], "", 60)
    assert q.subtotal == Decimal("500.00")
    assert q.total_discount == Decimal("50.00")
    assert q.discounted_subtotal == Decimal("450.00")


def test_fixed_coupon_capped_at_subtotal():
    q = quote(LINES, [coupon(1, "fixed", 1000)], "", 60)
    assert q.total_discount == Decimal("500.00")
    assert q.discounted_subtotal == Decimal("0.00")
    assert q.total == Decimal("0.00")


def test_coupons_stack_additively():
    coupons = [coupon(1, "percentage", 10), coupon(2, "fixed", 50, "product", [2])]
    q = quote(LINES, coupons, "", 60)
    assert [c.discount for c in q.coupons] == [Decimal("50.00"), Decimal("50.00")]
    assert q.total_discount == Decimal("100.00")
    assert q.discounted_subtotal == Decimal("400.00")


def test_delivery_only_once_address_is_known():
    assert delivery_cost("", 60) == Decimal("0")
    assert delivery_cost("   ", 60) == Decimal("0")
    assert delivery_cost(None, 60) == Decimal("0")
    assert delivery_cost("House 4, Road 2, Dhaka", 60) == Decimal("60")

    q = quote(LINES, [coupon(1, "percentage", 10)], "Dhaka", 60)
    assert q.delivery_charge == Decimal("60.00")
    assert q.total == Decimal("510.00")


def test_not_applicable_coupon_gives_nothing():
    c = coupon(1, "percentage", 50, "product", [99], applicable=False)
    assert discount_for(c, LINES) == Decimal("0")


def test_scoped_coupon_only_counts_matching_lines():
    c = coupon(1, "percentage", 10, "category", [1])
    assert discount_for(c, LINES) == Decimal("30.00")


def test_percentage_discount_rounds_half_up():
    lines = [CartLine(product_id=1, price=Decimal("0.25"), quantity=1)]
    assert discount_for(coupon(1, "percentage", 10), lines) == Decimal("0.03")


def test_total_discount_never_pushes_total_negative():
    coupons = [coupon(1, "fixed", 400), coupon(2, "fixed", 400)]
    assert total_discount(LINES, coupons) == Decimal("800.00")
    q = quote(LINES, coupons, "Dhaka", 60)
    assert q.discounted_subtotal == Decimal("0.00")
    assert q.total == Decimal("60.00")


def test_add_coupon_is_keyed_by_id():
    applied = add_coupon([], coupon(1, "percentage", 10))
    applied = add_coupon(applied, coupon(1, "percentage", 10))
    applied = add_coupon(applied, coupon(2, "fixed", 20))
    assert [c.id for c in applied] == [1, 2]
    assert [c.id for c in remove_coupon(applied, 1)] == [2]
