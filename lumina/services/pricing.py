# lumina/services/pricing.py
"""
Pricing primitives.

``effective_price`` is what a customer pays per unit of a variety. It is
computed when listing products and when an item is added to the cart; the
cart keeps that snapshot, nothing recomputes it later.
"""
from ..utils.money import D, Money, ZERO, HUNDRED

DISCOUNT_TYPES = ("fixed", "percentage")


def effective_price(variety) -> Money:
    """
    Unit price after the variety's own discount.

    Works on anything with ``price``, ``has_discount``, ``discount_type`` and
    ``discount_value`` attributes. The result is floored at 0: a fixed discount
    larger than the price gives a free item, not a negative one.
    """
    price = D(variety.price)
    value = variety.discount_value
    if not variety.has_discount or value is None:
        return price

    value = D(value)
    if variety.discount_type == "percentage":
        discounted = price - price * value / HUNDRED
    elif variety.discount_type == "fixed":
        discounted = price - value
    else:
        return price
    return max(ZERO, discounted)


def line_total(price, quantity) -> Money:
    return D(price) * int(quantity)


def cart_subtotal(lines) -> Money:
    return sum((line_total(l.price, l.quantity) for l in lines), ZERO)
