# lumina/services/tracking_service.py
"""
Visitor identity and checkout session tracking.

A checkout session is opened when the checkout page loads, updated field by
field while the customer types, and closed exactly once, either ``complete``
(order placed) or ``end`` (customer left). Field updates and the terminal
write are single UPDATE statements, so concurrent calls for one session can
only race per column (last write wins) and a second terminal call never
overwrites the first.

Product views and cart adds are recorded as plain events for the
storefront analytics report.
"""
from __future__ import annotations
from datetime import timedelta
from math import floor
import pandas as pd
from flask import current_app
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError, SessionClosedError, StorageError, ValidationError
from ..extensions import db
from ..model import CartAdd, CheckoutSession, OrderItem, Product, ProductView, Visitor
from ..model.tracking import ACTIVE, ABANDONED, COMPLETED
from ..utils.db import commit
from ..utils.money import D, round_money, to_float
from ..utils.timeutil import utcnow

UPDATABLE_FIELDS = (
    "customer_name",
    "customer_phone",
    "customer_address",
    "applied_coupons",
    "discount_amount",
    "subtotal",
)
TERMINAL_ACTIONS = ("complete", "end")
_MINT_ATTEMPTS = 3


# ---------- visitors ----------

def find_visitor(token: str | None) -> Visitor | None:
    if not token:
        return None
    return Visitor.query.filter_by(visitor_token=token).first()


def get_or_create_visitor(token: str | None = None) -> tuple[Visitor, bool]:
    existing = find_visitor(token)
    if existing:
        return existing, False

    # two first-time visitors can pick the same serial; the unique index decides
    for attempt in range(_MINT_ATTEMPTS):
        last = db.session.scalar(select(func.max(Visitor.serial_number))) or 0
        serial = last + 1
        visitor = Visitor(visitor_token=f"Visitor-{serial}", serial_number=serial)
        db.session.add(visitor)
        try:
            db.session.commit()
            return visitor, True
        except IntegrityError:
            db.session.rollback()
            current_app.logger.info("visitor serial %s taken, retrying (%s)", serial, attempt + 1)
    raise StorageError("Failed to create visitor")


def update_visitor(token: str, name=None, phone=None, email=None) -> Visitor:
    if not token:
        raise ValidationError("Visitor ID is required")
    visitor = find_visitor(token)
    if not visitor:
        raise NotFoundError("Visitor not found")
    if name:
        visitor.name = name
    if phone:
        visitor.phone = phone
    if email:
        visitor.email = email
    commit("update visitor")
    return visitor


def _backfill_visitor(visitor_id: int, name, phone):
    # first write wins: never replace a name/phone the visitor already has
    if not (name or phone):
        return
    visitor = db.session.get(Visitor, visitor_id)
    if not visitor:
        return
    if name and not visitor.name:
        visitor.name = name
    if phone and not visitor.phone:
        visitor.phone = phone


# ---------- sessions ----------

def _coupons_snapshot(coupons):
    if coupons is None:
        return None
    return [c.as_api() if hasattr(c, "as_api") else dict(c) for c in coupons]


def get_session(session_id: str) -> CheckoutSession:
    s = db.session.get(CheckoutSession, session_id)
    if not s:
        raise NotFoundError("Session not found")
    return s


def create_session(visitor_token, cart_items, subtotal=0, applied_coupons=None, discount_amount=0, now=None) -> CheckoutSession:
    if not visitor_token:
        raise ValidationError("Visitor ID is required")
    visitor = find_visitor(visitor_token)
    if not visitor:
        raise NotFoundError("Visitor not found")

    s = CheckoutSession(
        visitor_id=visitor.id,
        entry_time=now or utcnow(),
        cart_items=list(cart_items or []),
        subtotal=round_money(D(subtotal or 0)),
        applied_coupons=_coupons_snapshot(applied_coupons),
        discount_amount=round_money(D(discount_amount or 0)),
    )
    db.session.add(s)
    commit("create session")
    return s


def update_session(session_id: str, fields: dict) -> CheckoutSession:
    """
    Merge only the given fields into an open session.

    Keys outside ``UPDATABLE_FIELDS`` are ignored; an explicit ``None`` clears
    the column. Applying the same payload twice leaves the same row.
    """
    if not session_id:
        raise ValidationError("Session ID is required")
    values = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
    if "applied_coupons" in values:
        values["applied_coupons"] = _coupons_snapshot(values["applied_coupons"])
    for money_field in ("discount_amount", "subtotal"):
        if money_field in values:
            values[money_field] = round_money(D(values[money_field] or 0))

    s = get_session(session_id)
    if s.state != ACTIVE:
        raise SessionClosedError()
    if not values:
        return s

    result = db.session.execute(
        update(CheckoutSession)
        .where(
            CheckoutSession.id == session_id,
            CheckoutSession.exit_time.is_(None),
            CheckoutSession.order_completed.is_(False),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    commit("update session")
    if result.rowcount == 0:
        raise SessionClosedError()
    db.session.refresh(s)
    return s


def _terminate(session_id: str, completed: bool, customer_name, customer_phone, customer_address, now=None) -> CheckoutSession:
    s = get_session(session_id)
    now = now or utcnow()
    time_spent = max(0, floor((now - s.entry_time).total_seconds()))

    values = {"exit_time": now, "time_spent": time_spent}
    # fields left out keep what the incremental updates saved
    for key, value in (("customer_name", customer_name),
                       ("customer_phone", customer_phone),
                       ("customer_address", customer_address)):
        if value is not None:
            values[key] = value
    if completed:
        values.update(order_completed=True, order_placed_at=now)

    result = db.session.execute(
        update(CheckoutSession)
        .where(
            CheckoutSession.id == session_id,
            CheckoutSession.exit_time.is_(None),
            CheckoutSession.order_completed.is_(False),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.session.rollback()
        db.session.refresh(s)
        current_app.logger.warning(
            "ignored %s for checkout session %s: already %s",
            "complete" if completed else "end", session_id, s.state,
        )
        raise SessionClosedError(f"Checkout session already {s.state}")

    _backfill_visitor(s.visitor_id, customer_name, customer_phone)
    commit("update session")
    db.session.refresh(s)
    return s


def complete_session(session_id, customer_name=None, customer_phone=None, customer_address=None, now=None):
    return _terminate(session_id, True, customer_name, customer_phone, customer_address, now)


def end_session(session_id, customer_name=None, customer_phone=None, customer_address=None, now=None):
    return _terminate(session_id, False, customer_name, customer_phone, customer_address, now)


def apply_terminal_action(session_id, action, **customer):
    if action == "complete":
        return complete_session(session_id, **customer)
    if action == "end":
        return end_session(session_id, **customer)
    raise ValidationError("Invalid action")


# ---------- reporting ----------

def classify(session: CheckoutSession) -> str:
    return session.state


def _state_filter(q, state):
    if state == ACTIVE:
        return q.filter(CheckoutSession.exit_time.is_(None), CheckoutSession.order_completed.is_(False))
    if state == COMPLETED:
        return q.filter(CheckoutSession.order_completed.is_(True))
    if state == ABANDONED:
        return q.filter(CheckoutSession.exit_time.isnot(None), CheckoutSession.order_completed.is_(False))
    raise ValidationError("state must be 'active', 'completed' or 'abandoned'")


def list_sessions(visitor_token=None, state=None, limit=100) -> list[CheckoutSession]:
    q = CheckoutSession.query
    if visitor_token:
        q = q.join(Visitor).filter(Visitor.visitor_token == visitor_token)
    if state:
        q = _state_filter(q, state)
    q = q.order_by(CheckoutSession.entry_time.desc())
    if limit:
        q = q.limit(limit)
    return q.all()


def list_visitors(limit=100) -> list[Visitor]:
    return Visitor.query.order_by(Visitor.created_at.desc(), Visitor.id.desc()).limit(limit).all()


def session_summary(sessions=None) -> dict:
    sessions = list_sessions(limit=None) if sessions is None else sessions
    counts = {ACTIVE: 0, COMPLETED: 0, ABANDONED: 0}
    spent = []
    abandoned_value = D(0)
    for s in sessions:
        state = classify(s)
        counts[state] += 1
        if s.time_spent is not None:
            spent.append(s.time_spent)
        if state == ABANDONED:
            abandoned_value += D(s.subtotal or 0)
    closed = counts[COMPLETED] + counts[ABANDONED]
    return {
        "total": len(sessions),
        **counts,
        "conversion_rate": round(counts[COMPLETED] / closed * 100, 2) if closed else 0.0,
        "avg_time_spent": round(sum(spent) / len(spent), 1) if spent else 0.0,
        "abandoned_value": to_float(abandoned_value),
    }


def sessions_frame(sessions):
    """Flatten sessions into a pandas DataFrame for spreadsheet export."""
    rows = [{
        "Session ID": s.id,
        "Visitor": s.visitor.visitor_token if s.visitor else None,
        "State": classify(s),
        "Entry Time": s.entry_time,
        "Exit Time": s.exit_time,
        "Time Spent (s)": s.time_spent,
        "Customer Name": s.customer_name,
        "Customer Phone": s.customer_phone,
        "Customer Address": s.customer_address,
        "Items": sum(int(i.get("quantity", 0) or 0) for i in (s.cart_items or [])),
        "Subtotal": to_float(s.subtotal),
        "Discount": to_float(s.discount_amount),
        "Coupons": ", ".join(c.get("code", "") for c in (s.applied_coupons or [])),
        "Order Placed At": s.order_placed_at,
    } for s in sessions]
    return pd.DataFrame(rows)


# ---------- storefront analytics ----------

def track_view(product_id, visitor_token=None) -> ProductView:
    if not product_id:
        raise ValidationError("Product ID is required")
    v = ProductView(product_id=product_id, visitor_token=visitor_token or None)
    db.session.add(v)
    commit("track view")
    return v


def track_cart_add(product_id, visitor_token=None, quantity=1) -> CartAdd:
    if not product_id:
        raise ValidationError("Product ID is required")
    a = CartAdd(product_id=product_id, visitor_token=visitor_token or None, quantity=quantity or 1)
    db.session.add(a)
    commit("track cart add")
    return a


def visitor_stats(now=None) -> dict:
    """
    Visitors by session count (one session: unique, more: repeat; visitors
    that never reached checkout are not counted) and by first-seen date.
    """
    now = now or utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    rows = db.session.execute(
        select(Visitor.created_at, func.count(CheckoutSession.id))
        .outerjoin(CheckoutSession, CheckoutSession.visitor_id == Visitor.id)
        .group_by(Visitor.id, Visitor.created_at)
    ).all()

    unique = sum(1 for _, n in rows if n == 1)
    repeat = sum(1 for _, n in rows if n > 1)
    seen = [created for created, _ in rows if created is not None]
    return {
        "total": unique + repeat,
        "unique": unique,
        "repeat": repeat,
        "today": sum(1 for c in seen if c >= today),
        "week": sum(1 for c in seen if c >= week_ago),
        "month": sum(1 for c in seen if c >= month_ago),
    }


def _product_names(ids) -> dict:
    ids = [i for i in ids if i is not None]
    if not ids:
        return {}
    return dict(db.session.execute(select(Product.id, Product.name).where(Product.id.in_(ids))).all())


def most_viewed(limit=10) -> list[dict]:
    views = func.count(ProductView.id).label("views")
    rows = db.session.execute(
        select(ProductView.product_id, views)
        .group_by(ProductView.product_id)
        .order_by(views.desc(), ProductView.product_id)
        .limit(limit)
    ).all()
    names = _product_names(pid for pid, _ in rows)
    return [{"id": pid, "name": names.get(pid, "Unknown"), "views": n} for pid, n in rows]


def most_cart_added(limit=10) -> list[dict]:
    adds = func.count(CartAdd.id).label("adds")
    rows = db.session.execute(
        select(CartAdd.product_id, adds, func.sum(CartAdd.quantity))
        .group_by(CartAdd.product_id)
        .order_by(adds.desc(), CartAdd.product_id)
        .limit(limit)
    ).all()
    names = _product_names(pid for pid, _, _ in rows)
    return [
        {"id": pid, "name": names.get(pid, "Unknown"), "count": n, "quantity": int(qty or 0)}
        for pid, n, qty in rows
    ]


def most_checkout(limit=10) -> list[dict]:
    orders = func.count(OrderItem.id).label("orders")
    rows = db.session.execute(
        select(OrderItem.product_id, orders, func.sum(OrderItem.quantity), func.max(OrderItem.product_name))
        .where(OrderItem.product_id.isnot(None))
        .group_by(OrderItem.product_id)
        .order_by(orders.desc(), OrderItem.product_id)
        .limit(limit)
    ).all()
    names = _product_names(pid for pid, _, _, _ in rows)
    # a deleted product keeps the name its order items were stored with
    return [
        {"id": pid, "name": names.get(pid, snapshot_name), "orders": n, "quantity": int(qty or 0)}
        for pid, n, qty, snapshot_name in rows
    ]


def analytics_report(now=None, limit=10) -> dict:
    return {
        "stats": visitor_stats(now),
        "most_viewed": most_viewed(limit),
        "most_cart_added": most_cart_added(limit),
        "most_checkout": most_checkout(limit),
    }
