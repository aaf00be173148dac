# lumina/cart/routes.py
from __future__ import annotations
from dataclasses import replace

from ..extensions import db
from ..model import Product
from ..schemas import QuoteIn
from ..services import coupon_service, settings_service
from ..services.cart_service import add_coupon, quote
from ..utils.api import ok
from ..utils.decorators import validate_body
from . import bp


def _with_categories(lines):
    """Fill in category ids the client left out, from the catalog."""
    out = []
    for line in lines:
        if line.category_id is None and line.product_id is not None:
            p = db.session.get(Product, line.product_id)
            if p:
                line = replace(line, category_id=p.category_id)
        out.append(line)
    return out


@bp.post("/quote")
@validate_body(QuoteIn)
def quote_cart(body: QuoteIn):
    """
    Body: { "items": [{productId, categoryId?, name, subtitle, price, quantity}],
            "couponCodes": ["SAVE10", ...], "customerAddress": "..." }
    Same arithmetic as the checkout page: subtotal, per-coupon discount,
    delivery charge (only once an address is typed) and payable total.
    """
    lines = _with_categories([i.to_line() for i in body.items])
    applied = []
    for code in body.coupon_codes:
        applied = add_coupon(applied, coupon_service.validate_coupon(code, lines))
    q = quote(lines, applied, body.customer_address, settings_service.delivery_charge())
    return ok("quote", q.as_api())
