# lumina/analytics/routes.py
from ..schemas import TrackCartIn, TrackViewIn
from ..services import tracking_service
from ..utils.api import ok
from ..utils.decorators import validate_body
from . import bp


@bp.post("/track-view")
@validate_body(TrackViewIn, force=True)
def track_view(body: TrackViewIn):
    """Body: { productId, visitorId? }"""
    tracking_service.track_view(body.product_id, body.visitor_id)
    return ok("view tracked", status=201)


@bp.post("/track-cart")
@validate_body(TrackCartIn, force=True)
def track_cart(body: TrackCartIn):
    """Body: { productId, visitorId?, quantity? }"""
    tracking_service.track_cart_add(body.product_id, body.visitor_id, body.quantity)
    return ok("cart add tracked", status=201)


@bp.get("")
def report():
    """
    Visitor counts (total / unique / repeat, today / week / month) and the
    top 10 products by views, cart adds and orders.
    """
    return ok("analytics", tracking_service.analytics_report())
