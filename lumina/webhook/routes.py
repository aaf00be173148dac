# lumina/webhook/routes.py
from flask import current_app, jsonify

from ..schemas import CourierWebhookIn
from ..services import order_service
from ..utils.decorators import read_json
from ..utils.timeutil import utcnow
from . import bp


@bp.post("/steadfast")
def steadfast_webhook():
    """
    Steadfast pushes two notification types:
      - delivery_status: {consignment_id, invoice, status, tracking_message, ...}
      - tracking_update: {consignment_id, invoice, tracking_message, ...}
    The reply format is the one Steadfast expects, not the API envelope.
    """
    data = read_json(force=True)
    current_app.logger.info("steadfast webhook received: %s", data)
    body = CourierWebhookIn.model_validate(data)
    order_service.handle_courier_webhook(body)
    return jsonify(status="success", message="Webhook received successfully.")


@bp.get("/steadfast")
def steadfast_webhook_health():
    return jsonify(
        status="success",
        message="Steadfast webhook endpoint is active",
        timestamp=utcnow().isoformat(),
    )
