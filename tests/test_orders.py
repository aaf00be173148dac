import re

import pytest

from pydantic import ValidationError as PayloadError

from lumina.errors import CourierError, ValidationError
from lumina.extensions import db
from lumina.model import Order
from lumina.schemas import CourierWebhookIn, OrderIn
from lumina.services import order_service


def order_body(catalog, **overrides):
    # potato 2 x 100 + onion 1 x 180 = 380, delivery 60
    body = {
        "customerName": "Karim",
        "customerPhone": "01811-111111",
        "customerAddress": "House 4, Mirpur, Dhaka",
        "items": [
            {"productId": catalog["potato"].id, "name": "Potato", "subtitle": "1kg", "price": 100, "quantity": 2},
            {"productId": catalog["onion"].id, "name": "Onion", "subtitle": "Weight: 1kg", "price": 180, "quantity": 1},
        ],
        "subtotal": 380,
        "discount": 0,
        "deliveryCharge": 60,
        "total": 440,
        "appliedCoupons": [],
    }
    body.update(overrides)
    return OrderIn.model_validate(body)


def test_invoice_format(app):
    inv = order_service.generate_invoice()
    assert re.fullmatch(r"INV-[0-9A-Z]+-[0-9A-Z]{4}", inv)


def test_finalize_stores_snapshot(app, catalog):
    order = order_service.finalize_order(order_body(catalog))
    assert order.status == "pending"
    assert order.payment_status == "cod"
    assert float(order.total) == 440.0
    assert [(i.product_name, i.variety_name, float(i.total)) for i in order.items] == [
        ("Potato", "1kg", 200.0),
        ("Onion", "Weight: 1kg", 180.0),
    ]


def test_snapshot_survives_price_change(app, catalog):
    order = order_service.finalize_order(order_body(catalog))
    catalog["potato"].varieties[0].price = 999
    db.session.commit()
    stored = order_service.get_order(order.id)
    assert float(stored.items[0].price) == 100.0


@pytest.mark.parametrize("field", ["customerName", "customerPhone", "customerAddress"])
def test_customer_fields_required(app, catalog, field):
    with pytest.raises(ValidationError) as e:
        order_service.finalize_order(order_body(catalog, **{field: "  "}))
    assert e.value.message == "Customer name, phone, and address are required"
    assert Order.query.count() == 0


def test_empty_order_rejected(app, catalog):
    with pytest.raises(ValidationError) as e:
        order_service.finalize_order(order_body(catalog, items=[]))
    assert e.value.message == "Order must have at least one item"


def test_coupon_usage_recorded(app, catalog, make_coupon):
    c = make_coupon("SAVE10")
    body = order_body(catalog, discount=38, total=402, appliedCoupons=[
        {"id": c.id, "code": "SAVE10", "type": "percentage", "value": 10, "applyTo": "all", "discount": 38},
    ])
    order = order_service.finalize_order(body)
    assert [(oc.code, float(oc.discount)) for oc in order.coupons] == [("SAVE10", 38.0)]


def test_total_mismatch_rejected(app, catalog):
    with pytest.raises(ValidationError) as e:
        order_service.finalize_order(order_body(catalog, total=300))
    assert e.value.data == {"expected_subtotal": 380.0, "expected_discount": 0.0, "expected_total": 440.0}
    assert Order.query.count() == 0


def test_small_rounding_gap_is_tolerated(app, catalog):
    order = order_service.finalize_order(order_body(catalog, total=440.5))
    assert float(order.total) == 440.5


def test_expired_coupon_fails_verification(app, catalog, make_coupon):
    c = make_coupon("GONE", is_active=False)
    body = order_body(catalog, discount=38, total=402, appliedCoupons=[{"id": c.id, "code": "GONE", "discount": 38}])
    with pytest.raises(ValidationError) as e:
        order_service.finalize_order(body)
    assert e.value.message == "Coupon GONE: This coupon is not active"


def test_removed_product_fails_verification(app, catalog):
    body = order_body(catalog)
    body.items[0].product_id = 9999
    with pytest.raises(ValidationError) as e:
        order_service.finalize_order(body)
    assert "no longer available" in e.value.message


def test_trust_mode_stores_client_totals(app, catalog):
    app.config["ORDER_TOTALS_POLICY"] = "trust"
    order = order_service.finalize_order(order_body(catalog, total=300))
    assert float(order.total) == 300.0


def test_repeated_coupon_counts_once(app, catalog, make_coupon):
    c = make_coupon("SAVE10")
    twice = [{"id": c.id, "code": "SAVE10"}, {"id": c.id, "code": "save10"}]
    with pytest.raises(ValidationError) as e:
        order_service.finalize_order(order_body(catalog, discount=76, total=364, appliedCoupons=twice))
    assert e.value.data["expected_total"] == 402.0

    order = order_service.finalize_order(order_body(catalog, discount=38, total=402, appliedCoupons=twice))
    assert [oc.code for oc in order.coupons] == ["SAVE10"]


def test_coupon_row_uses_server_discount(app, catalog, make_coupon):
    c = make_coupon("SAVE10")
    # the client left out type, value and discount
    order = order_service.finalize_order(order_body(
        catalog, discount=38, total=402, appliedCoupons=[{"id": c.id, "code": "SAVE10"}],
    ))
    [usage] = order.coupons
    assert (usage.coupon_id, usage.type, float(usage.value), float(usage.discount)) == (c.id, "percentage", 10.0, 38.0)


def test_trust_mode_drops_repeated_coupons(app, catalog, make_coupon):
    app.config["ORDER_TOTALS_POLICY"] = "trust"
    c = make_coupon("SAVE10")
    order = order_service.finalize_order(order_body(catalog, appliedCoupons=[
        {"id": c.id, "code": "SAVE10", "discount": 38},
        {"id": c.id, "code": "SAVE10", "discount": 38},
    ]))
    assert len(order.coupons) == 1


def test_subtotal_and_discount_are_checked_too(app, catalog):
    # right total, wrong breakdown
    with pytest.raises(ValidationError):
        order_service.finalize_order(order_body(catalog, subtotal=480, discount=100))
    assert Order.query.count() == 0


def test_item_prices_must_match_live_prices(app, catalog):
    cheap = [
        {"productId": catalog["potato"].id, "name": "Potato", "subtitle": "1kg", "price": 1, "quantity": 2},
        {"productId": catalog["onion"].id, "name": "Onion", "subtitle": "Weight: 1kg", "price": 180, "quantity": 1},
    ]
    with pytest.raises(ValidationError) as e:
        order_service.finalize_order(order_body(catalog, items=cheap))
    assert e.value.data["expected_subtotal"] == 380.0
    assert Order.query.count() == 0


@pytest.mark.parametrize("field", ["subtotal", "discount", "deliveryCharge", "total"])
def test_negative_money_rejected(app, catalog, field):
    with pytest.raises(PayloadError):
        order_body(catalog, **{field: -495})


def test_orders_by_phone_ignores_formatting(app, catalog):
    order_service.finalize_order(order_body(catalog, customerPhone="01811111111"))
    assert len(order_service.orders_by_phone("01811-111111")) == 1
    with pytest.raises(ValidationError):
        order_service.orders_by_phone(" ")


def test_status_update(app, catalog):
    order = order_service.finalize_order(order_body(catalog))
    o = order_service.update_order(order.id, {"status": "approved", "admin_note": "call first"})
    assert o.status == "approved"
    assert o.approved_at is not None
    with pytest.raises(ValidationError):
        order_service.update_order(order.id, {"status": "teleported"})


# ---- courier ----

def test_send_requires_approval(app, catalog, courier):
    order = order_service.finalize_order(order_body(catalog))
    with pytest.raises(ValidationError):
        order_service.send_to_courier(order.id, courier)
    assert courier.created == []


def test_send_to_courier(app, catalog, courier):
    order = order_service.finalize_order(order_body(catalog))
    order_service.update_order(order.id, {"status": "approved"})
    o, consignment = order_service.send_to_courier(order.id, courier)
    assert o.status == "processing"
    assert o.consignment_id == "1424107"
    assert o.tracking_code == "15BAEB8A"
    sent = courier.created[0]
    assert sent["cod_amount"] == 440.0
    assert sent["item_description"] == "Potato (1kg) x2, Onion (Weight: 1kg) x1"

    with pytest.raises(ValidationError):
        order_service.send_to_courier(order.id, courier)


def test_courier_rejection(app, catalog, courier):
    order = order_service.finalize_order(order_body(catalog))
    order_service.update_order(order.id, {"status": "approved"})
    courier.create_reply = {"status": 400, "message": "Invalid phone"}
    with pytest.raises(CourierError) as e:
        order_service.send_to_courier(order.id, courier)
    assert e.value.message == "Invalid phone"
    assert order_service.get_order(order.id).consignment_id is None


def test_refresh_status_marks_delivered(app, catalog, courier):
    order = order_service.finalize_order(order_body(catalog))
    order_service.update_order(order.id, {"status": "approved"})
    order_service.send_to_courier(order.id, courier)
    courier.status_reply = {"status": 200, "delivery_status": "delivered"}
    o, status = order_service.refresh_courier_status(order.id, courier)
    assert status == "delivered"
    assert o.status == "delivered"
    assert o.delivered_at is not None


def test_webhook_updates_by_invoice(app, catalog):
    order = order_service.finalize_order(order_body(catalog))
    o = order_service.handle_courier_webhook(CourierWebhookIn(
        notification_type="delivery_status", invoice=order.invoice,
        status="cancelled", tracking_message="Customer refused",
    ))
    assert o.status == "cancelled"
    assert o.courier_status == "cancelled"
    assert o.tracking_message == "Customer refused"

    o = order_service.handle_courier_webhook(CourierWebhookIn(
        notification_type="tracking_update", invoice=order.invoice, tracking_message="At hub",
    ))
    assert o.tracking_message == "At hub"
    assert o.status == "cancelled"
