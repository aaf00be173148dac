# lumina/services/order_service.py
from __future__ import annotations
import secrets
import string
import time
from flask import current_app
from sqlalchemy import or_

from ..errors import CourierError, LuminaError, NotFoundError, ValidationError
from ..extensions import db
from ..model import Order, OrderItem, OrderCoupon, Product
from ..model.order import ORDER_STATUSES
from ..utils.db import commit
from ..utils.money import D, round_money, to_float
from ..utils.timeutil import utcnow
from . import coupon_service, settings_service
from .cart_service import CartLine, add_coupon, quote
from .pricing import cart_subtotal

_B36 = string.digits + string.ascii_uppercase


def _base36(n: int) -> str:
    out = ""
    while True:
        n, r = divmod(n, 36)
        out = _B36[r] + out
        if n == 0:
            return out


def generate_invoice() -> str:
    """INV-<ms timestamp, base 36>-<4 random base-36 chars>. Not checked against storage."""
    stamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_B36) for _ in range(4))
    return f"INV-{stamp}-{suffix}"


# ---------- server-side re-validation ----------

def _live_lines(items) -> list[CartLine]:
    """Price the submitted items from the catalog as it is now."""
    lines = []
    products = {}
    for it in items:
        if it.product_id is None:
            raise ValidationError(f"{it.name} is no longer available")
        product = products.get(it.product_id) or db.session.get(Product, it.product_id)
        if not product:
            raise ValidationError(f"{it.name} is no longer available")
        products[it.product_id] = product
        variety = product.variety_named(it.subtitle)
        if not variety:
            raise ValidationError(f"{it.name} ({it.subtitle}) is no longer available")
        lines.append(CartLine(
            product_id=product.id,
            category_id=product.category_id,
            price=variety.effective_price(),
            quantity=it.quantity,
            name=product.name,
            variety_name=variety.name,
        ))
    return lines


def server_quote(items, applied_codes, address):
    lines = _live_lines(items)
    coupons = []
    for code in applied_codes:
        try:
            coupon = coupon_service.validate_coupon(code, lines)
        except LuminaError as e:
            raise ValidationError(f"Coupon {code}: {e.message}")
        # keyed by coupon id: a code sent twice counts once
        coupons = add_coupon(coupons, coupon)
    return quote(lines, coupons, address, settings_service.delivery_charge())


def verify_totals(body):
    """
    Recompute the order from live prices and currently valid coupons and
    reject it when the client's subtotal, discount or total is off by more
    than the tolerance.
    """
    q = server_quote(body.items, [c.code for c in body.applied_coupons], body.customer_address)
    tolerance = D(current_app.config.get("ORDER_TOTAL_TOLERANCE", 1))
    items_subtotal = cart_subtotal(it.to_line() for it in body.items)
    checks = (
        ("subtotal", body.subtotal, q.subtotal),
        ("item prices", items_subtotal, q.subtotal),
        ("discount", body.discount, q.total_discount),
        ("total", body.total, q.total),
    )
    for label, client, server in checks:
        if abs(server - D(client)) > tolerance:
            current_app.logger.warning(
                "order %s mismatch: client=%s server=%s", label, client, server,
            )
            raise ValidationError(
                "Prices or coupons changed, please review your order",
                data={
                    "expected_subtotal": to_float(q.subtotal),
                    "expected_discount": to_float(q.total_discount),
                    "expected_total": to_float(q.total),
                },
            )
    return q


# ---------- finalizer ----------

def _coupon_usage(body, q=None) -> list:
    """
    One usage row per coupon. A verified order records the discounts the
    server computed; otherwise the client's list, de-duplicated.
    """
    if q is not None:
        return list(q.coupons)
    seen, out = set(), []
    for c in body.applied_coupons:
        key = c.id if c.id is not None else c.code.upper()
        if key in seen:
            continue
        seen.add(key)
        out.append(c)
    return out


def finalize_order(body) -> Order:
    """
    Persist an order, its items and coupon usage in one transaction.

    Items are stored exactly as the cart had them (name, variety, price), so
    later catalog edits do not touch historical orders.
    """
    name = (body.customer_name or "").strip()
    phone = (body.customer_phone or "").strip()
    address = (body.customer_address or "").strip()
    if not name or not phone or not address:
        raise ValidationError("Customer name, phone, and address are required")
    if not body.items:
        raise ValidationError("Order must have at least one item")

    if current_app.config.get("ORDER_TOTALS_POLICY", "verify") == "verify":
        q = verify_totals(body)
    else:
        q = None

    order = Order(
        invoice=generate_invoice(),
        status="pending",
        payment_status="cod",
        customer_name=name,
        customer_phone=phone,
        customer_email=body.customer_email or None,
        customer_address=address,
        subtotal=round_money(D(body.subtotal)),
        discount=round_money(D(body.discount)),
        delivery_charge=round_money(D(body.delivery_charge)),
        total=round_money(D(body.total)),
    )
    for it in body.items:
        price = D(it.price)
        order.items.append(OrderItem(
            product_id=it.product_id,
            product_name=it.name,
            variety_name=it.subtitle or None,
            price=round_money(price),
            quantity=it.quantity,
            total=round_money(price * it.quantity),
        ))
    for c in _coupon_usage(body, q):
        order.coupons.append(OrderCoupon(
            coupon_id=c.id,
            code=c.code,
            type=c.type,
            value=round_money(D(c.value)) if c.value is not None else None,
            discount=round_money(D(c.discount or 0)),
        ))

    db.session.add(order)
    commit("create order")
    current_app.logger.info("order %s placed (%s items, total %s)", order.invoice, len(order.items), order.total)
    return order


# ---------- administration ----------

def get_order(order_id: int) -> Order:
    o = db.session.get(Order, order_id)
    if not o:
        raise NotFoundError("Order not found")
    return o


def list_orders(status=None, search=None):
    q = Order.query
    if status and status != "all":
        q = q.filter(Order.status == status)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(
            Order.invoice.ilike(like),
            Order.customer_name.ilike(like),
            Order.customer_phone.ilike(like),
            Order.tracking_code.ilike(like),
        ))
    return q.order_by(Order.created_at.desc(), Order.id.desc()).all()


def orders_by_phone(phone: str, limit: int = 20):
    clean = "".join(ch for ch in (phone or "") if ch not in " -()")
    if not clean:
        raise ValidationError("Phone number is required")
    return (Order.query
            .filter(Order.customer_phone.contains(clean))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .all())


def _set_status(order: Order, status: str):
    if status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
    order.status = status
    if status == "approved":
        order.approved_at = utcnow()
    if status == "delivered":
        order.delivered_at = utcnow()


def update_order(order_id: int, fields: dict) -> Order:
    o = get_order(order_id)
    if fields.get("status"):
        _set_status(o, fields["status"])
    for key in ("admin_note", "courier_status", "tracking_code", "consignment_id", "tracking_message"):
        if key in fields:
            setattr(o, key, fields[key])
    commit("update order")
    return o


def delete_order(order_id: int):
    o = get_order(order_id)
    db.session.delete(o)
    commit("delete order")


# ---------- courier ----------

def apply_delivery_status(order: Order, courier_status: str | None, message: str | None = None):
    status = (courier_status or "unknown").lower()
    order.courier_status = status
    if message is not None:
        order.tracking_message = message
    if status == "delivered":
        order.status = "delivered"
        order.delivered_at = utcnow()
    elif status == "cancelled":
        order.status = "cancelled"
    elif status == "partial_delivered":
        order.status = "partial_delivered"


def send_to_courier(order_id: int, client) -> tuple[Order, dict]:
    o = get_order(order_id)
    if o.consignment_id:
        raise ValidationError("Order already sent to courier")
    if o.status != "approved":
        raise ValidationError("Order must be approved before sending to courier")

    resp = client.create_order({
        "invoice": o.invoice,
        "recipient_name": o.customer_name,
        "recipient_phone": o.customer_phone,
        "recipient_address": o.customer_address,
        "cod_amount": to_float(o.total),
        "note": o.admin_note or None,
        "item_description": o.item_description(),
        "delivery_type": 0,  # home delivery
    })
    consignment = resp.get("consignment")
    if resp.get("status") != 200 or not consignment:
        raise CourierError(resp.get("message") or "Failed to create order in Steadfast")

    o.consignment_id = str(consignment["consignment_id"])
    o.tracking_code = consignment.get("tracking_code")
    o.courier_status = consignment.get("status")
    o.status = "processing"
    o.tracking_message = "Order sent to Steadfast Courier"
    commit("update order")
    return o, consignment


def refresh_courier_status(order_id: int, client) -> tuple[Order, str]:
    o = get_order(order_id)
    if not o.consignment_id and not o.tracking_code:
        raise ValidationError("Order has not been sent to courier yet")

    if o.consignment_id:
        try:
            resp = client.status_by_consignment_id(o.consignment_id)
        except CourierError:
            current_app.logger.warning("status by consignment failed for %s, trying invoice", o.invoice)
            resp = client.status_by_invoice(o.invoice)
    else:
        resp = client.status_by_tracking_code(o.tracking_code)

    delivery_status = resp.get("delivery_status")
    apply_delivery_status(o, delivery_status)
    commit("update order")
    return o, delivery_status


def handle_courier_webhook(payload) -> Order:
    match = []
    if payload.invoice:
        match.append(Order.invoice == payload.invoice)
    if payload.consignment_id is not None:
        match.append(Order.consignment_id == str(payload.consignment_id))
    o = Order.query.filter(or_(*match)).first() if match else None
    if not o:
        current_app.logger.info("courier webhook: order not found for invoice %s", payload.invoice)
        raise NotFoundError("Order not found")

    if payload.notification_type == "delivery_status":
        apply_delivery_status(o, payload.status, payload.tracking_message)
        current_app.logger.info("order %s updated with courier status %s", o.invoice, o.courier_status)
    else:
        o.tracking_message = payload.tracking_message
        current_app.logger.info("order %s tracking updated: %s", o.invoice, payload.tracking_message)
    commit("update order")
    return o
