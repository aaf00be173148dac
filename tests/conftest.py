import pytest

from lumina import create_app
from lumina.config import TestConfig
from lumina.extensions import db as _db
from lumina.model import Category, Coupon, Product, Variety


class FakeCourier:
    """Stands in for SteadfastClient; records calls, returns canned replies."""

    def __init__(self):
        self.created = []
        self.create_reply = None
        self.status_reply = {"status": 200, "delivery_status": "in_review"}

    def create_order(self, order):
        self.created.append(order)
        if self.create_reply is not None:
            return self.create_reply
        return {
            "status": 200,
            "message": "Consignment has been created successfully.",
            "consignment": {
                "consignment_id": 1424107,
                "invoice": order["invoice"],
                "tracking_code": "15BAEB8A",
                "status": "in_review",
            },
        }

    def status_by_consignment_id(self, consignment_id):
        return self.status_reply

    def status_by_invoice(self, invoice):
        return self.status_reply

    def status_by_tracking_code(self, tracking_code):
        return self.status_reply


@pytest.fixture
def app():
    app = create_app(TestConfig)
    app.extensions["courier"] = FakeCourier()
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def courier(app):
    return app.extensions["courier"]


@pytest.fixture
def catalog(app):
    """
    veg:  potato 1kg @ 100, onion 1kg @ 200 (10% off -> 180)
    rice: miniket 5kg @ 400
    """
    veg = Category(name="Vegetables", code="VEG")
    rice = Category(name="Rice", code="RICE")
    _db.session.add_all([veg, rice])
    _db.session.flush()
    potato = Product(name="Potato", category_id=veg.id, varieties=[Variety(name="1kg", price=100, stock=10)])
    onion = Product(name="Onion", category_id=veg.id, varieties=[
        Variety(name="1kg", price=200, stock=10, has_discount=True, discount_type="percentage", discount_value=10),
    ])
    miniket = Product(name="Miniket", category_id=rice.id, varieties=[Variety(name="5kg", price=400, stock=5)])
    _db.session.add_all([potato, onion, miniket])
    _db.session.commit()
    return {"veg": veg, "rice": rice, "potato": potato, "onion": onion, "miniket": miniket}


@pytest.fixture
def make_coupon(app):
    def _make(code, type="percentage", value=10, apply_to="all", **kw):
        c = Coupon(code=code, type=type, value=value, apply_to=apply_to, **kw)
        _db.session.add(c)
        _db.session.commit()
        return c
    return _make
