# lumina/tracking/routes.py
from __future__ import annotations
from io import BytesIO
from flask import current_app, request, send_file

from ..errors import LuminaError
from ..schemas import (
    SessionCreateIn,
    SessionTerminalIn,
    SessionUpdateIn,
    VisitorIn,
    VisitorUpdateIn,
)
from ..services import tracking_service
from ..utils.api import ok
from ..utils.decorators import read_json, validate_body
from . import bp


# ---- visitors ----------------------------------------------------------------

@bp.post("/visitor")
@validate_body(VisitorIn)
def get_or_create_visitor(body: VisitorIn):
    visitor, is_new = tracking_service.get_or_create_visitor(body.visitor_token)
    return ok("visitor", {"visitor": visitor.as_api(), "is_new": is_new}, status=201 if is_new else 200)


@bp.put("/visitor")
@validate_body(VisitorUpdateIn)
def update_visitor(body: VisitorUpdateIn):
    visitor = tracking_service.update_visitor(body.visitor_id, body.name, body.phone, body.email)
    return ok("visitor updated", {"visitor": visitor.as_api()})


# ---- checkout sessions -------------------------------------------------------

@bp.post("/session")
@validate_body(SessionCreateIn)
def create_session(body: SessionCreateIn):
    """Called once when the checkout page loads with a non-empty cart."""
    s = tracking_service.create_session(
        body.visitor_id,
        body.cart_items,
        subtotal=body.subtotal,
        applied_coupons=[c.to_applied() for c in body.applied_coupons] if body.applied_coupons is not None else None,
        discount_amount=body.discount_amount,
    )
    return ok("session created", {"session": s.as_api()}, status=201)


@bp.put("/session")
@validate_body(SessionUpdateIn)
def update_session(body: SessionUpdateIn):
    """Debounced field saves from the checkout form; only sent fields change."""
    s = tracking_service.update_session(body.session_id, body.changes())
    return ok("session updated", {"session": s.as_api()})


@bp.get("/session/<session_id>")
def get_session(session_id: str):
    s = tracking_service.get_session(session_id)
    return ok("session", {"session": s.as_api(with_visitor=True)})


@bp.put("/session/<session_id>")
@bp.post("/session/<session_id>")
def terminate_session(session_id: str):
    """
    Body: { "action": "complete" | "end", customerName, customerPhone, customerAddress }
    POST is accepted too so navigator.sendBeacon can deliver "end".
    """
    body = SessionTerminalIn.model_validate(read_json(force=True))
    s = tracking_service.apply_terminal_action(session_id, body.action, **body.customer())
    return ok("session updated", {"session": s.as_api()})


@bp.post("/session/<session_id>/beacon")
def session_beacon(session_id: str):
    """
    Page-unload delivery of ``end``. The browser does not wait for or read
    the reply, so this always answers 204 and only logs what went wrong.
    """
    try:
        data = read_json(force=True)
        data.setdefault("action", "end")
        body = SessionTerminalIn.model_validate(data)
        tracking_service.apply_terminal_action(session_id, body.action, **body.customer())
    except (LuminaError, ValueError) as e:
        current_app.logger.warning("beacon for session %s dropped: %s", session_id, e)
    return "", 204


# ---- back office -------------------------------------------------------------

@bp.get("")
def list_tracking():
    """
    Query params:
      - visitorId  -> sessions of one visitor
      - state      -> active | completed | abandoned
    """
    visitor_token = request.args.get("visitorId") or request.args.get("visitor_id")
    state = request.args.get("state")
    sessions = tracking_service.list_sessions(visitor_token=visitor_token, state=state)
    data = {"sessions": [s.as_api(with_visitor=True) for s in sessions]}
    if not visitor_token:
        data["visitors"] = [v.as_api() for v in tracking_service.list_visitors()]
    return ok("tracking", data)


@bp.get("/summary")
def summary():
    return ok("summary", tracking_service.session_summary())


@bp.get("/export")
def export_sessions():
    state = request.args.get("state")
    df = tracking_service.sessions_frame(tracking_service.list_sessions(state=state, limit=None))

    output = BytesIO()
    df.to_excel(output, index=False)
    output.seek(0)

    return send_file(
        output,
        as_attachment=True,
        download_name="checkout_sessions.xlsx",
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
