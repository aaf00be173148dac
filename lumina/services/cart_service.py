# lumina/services/cart_service.py
"""
Cart arithmetic: coupon discounts, delivery charge and the payable total.

The cart itself lives in the browser. These functions take a snapshot of it
(``CartLine`` values, already priced at add-to-cart time) plus the applied
coupons and produce the same numbers the storefront shows.

Stacking rules:
  - every applicable coupon is computed on its own against its own subset,
    and the results are added (overlapping subsets stack);
  - a fixed coupon never exceeds the subtotal it applies to;
  - the discounted subtotal is floored at 0 before delivery is added.
"""
from __future__ import annotations
from dataclasses import dataclass, field, replace

from ..utils.money import D, Money, ZERO, HUNDRED, round_money, to_float
from .pricing import cart_subtotal, line_total


@dataclass(frozen=True)
class CartLine:
    product_id: int
    price: Money
    quantity: int = 1
    category_id: int | None = None
    name: str | None = None
    variety_name: str | None = None


@dataclass(frozen=True)
class AppliedCoupon:
    id: int
    code: str
    type: str                      # "percentage" | "fixed"
    value: Money
    apply_to: str                  # "all" | "category" | "product"
    applies_to_text: str = ""
    applicable_product_ids: tuple = ()
    is_applicable: bool = True
    discount: Money = ZERO         # captured when the coupon was applied

    def as_api(self):
        return {
            "id": self.id,
            "code": self.code,
            "type": self.type,
            "value": to_float(self.value),
            "apply_to": self.apply_to,
            "applies_to_text": self.applies_to_text,
            "applicable_product_ids": list(self.applicable_product_ids),
            "is_applicable": self.is_applicable,
            "discount": to_float(self.discount),
        }


@dataclass(frozen=True)
class Quote:
    subtotal: Money
    total_discount: Money
    discounted_subtotal: Money
    delivery_charge: Money
    total: Money
    coupons: list = field(default_factory=list)

    def as_api(self):
        return {
            "subtotal": to_float(self.subtotal),
            "discount": to_float(self.total_discount),
            "discounted_subtotal": to_float(self.discounted_subtotal),
            "delivery_charge": to_float(self.delivery_charge),
            "total": to_float(self.total),
            "coupons": [c.as_api() for c in self.coupons],
        }


# ---- discount aggregation ---------------------------------------------------

def applicable_total(coupon: AppliedCoupon, lines) -> Money:
    if coupon.apply_to == "all":
        return cart_subtotal(lines)
    ids = set(coupon.applicable_product_ids)
    return sum((line_total(l.price, l.quantity) for l in lines if l.product_id in ids), ZERO)


def discount_for(coupon: AppliedCoupon, lines) -> Money:
    if not coupon.is_applicable:
        return ZERO
    base = applicable_total(coupon, lines)
    value = D(coupon.value)
    if coupon.type == "percentage":
        return round_money(base * value / HUNDRED)
    if coupon.type == "fixed":
        return round_money(min(value, base))
    return ZERO


def total_discount(lines, coupons) -> Money:
    return sum((discount_for(c, lines) for c in coupons), ZERO)


def final_total(subtotal, discount) -> Money:
    return max(ZERO, D(subtotal) - D(discount))


# ---- delivery + payable total ---------------------------------------------

def delivery_cost(address: str | None, configured_charge) -> Money:
    # unknown until the customer has typed an address
    if address and address.strip():
        return D(configured_charge)
    return ZERO


def compute_order_total(subtotal, discount, delivery_charge) -> Money:
    return final_total(subtotal, discount) + D(delivery_charge)


def quote(lines, coupons, address: str | None, configured_charge) -> Quote:
    lines = list(lines)
    subtotal = cart_subtotal(lines)
    priced = capture_discounts(coupons, lines)
    discount = sum((c.discount for c in priced), ZERO)
    delivery = delivery_cost(address, configured_charge)
    return Quote(
        subtotal=round_money(subtotal),
        total_discount=round_money(discount),
        discounted_subtotal=round_money(final_total(subtotal, discount)),
        delivery_charge=round_money(delivery),
        total=round_money(compute_order_total(subtotal, discount, delivery)),
        coupons=priced,
    )


# ---- applied coupon set -----------------------------------------------------

def capture_discounts(coupons, lines) -> list[AppliedCoupon]:
    """Stamp each coupon with the discount it gives on ``lines`` right now."""
    return [replace(c, discount=discount_for(c, lines)) for c in coupons]


def add_coupon(applied, coupon: AppliedCoupon) -> list[AppliedCoupon]:
    # keyed by coupon id; re-applying is a no-op
    if any(c.id == coupon.id for c in applied):
        return list(applied)
    return [*applied, coupon]


def remove_coupon(applied, coupon_id) -> list[AppliedCoupon]:
    return [c for c in applied if c.id != coupon_id]
