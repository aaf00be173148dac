# lumina/order/routes.py
from flask import current_app, request

from ..schemas import OrderIn, OrderUpdateIn
from ..services import order_service
from ..services.courier import get_courier
from ..utils.api import ok
from ..utils.decorators import validate_body
from . import bp


@bp.get("")
def list():
    """
    Query params:
      - status=pending|approved|processing|delivered|cancelled|partial_delivered|all
      - search=...  (invoice, customer name, phone or tracking code)
    """
    orders = order_service.list_orders(
        status=request.args.get("status"),
        search=(request.args.get("search") or "").strip() or None,
    )
    return ok("orders", [o.as_api() for o in orders])


@bp.post("")
@validate_body(OrderIn)
def create_order(body: OrderIn):
    order = order_service.finalize_order(body)
    resp = ok("order created", {"order": order.as_api()}, status=201)
    resp.headers["X-Order-Invoice"] = order.invoice
    return resp


@bp.get("/track")
def orders_by_phone():
    orders = order_service.orders_by_phone(request.args.get("phone") or "")
    return ok("orders", [o.as_api() for o in orders])


@bp.get("/<int:order_id>")
def get_order(order_id: int):
    return ok("order", order_service.get_order(order_id).as_api())


@bp.put("/<int:order_id>")
@validate_body(OrderUpdateIn)
def update_order(order_id: int, body: OrderUpdateIn):
    o = order_service.update_order(order_id, body.model_dump(exclude_unset=True))
    return ok("order updated", o.as_api())


@bp.delete("/<int:order_id>")
def delete_order(order_id: int):
    order_service.delete_order(order_id)
    return ok("order deleted")


@bp.post("/<int:order_id>/send-to-courier")
def send_to_courier(order_id: int):
    o, consignment = order_service.send_to_courier(order_id, get_courier(current_app))
    return ok("Order sent to Steadfast Courier successfully", {"order": o.as_api(), "consignment": consignment})


@bp.get("/<int:order_id>/track")
def track_order(order_id: int):
    o, delivery_status = order_service.refresh_courier_status(order_id, get_courier(current_app))
    return ok("order", {"order": o.as_api(), "delivery_status": delivery_status})
