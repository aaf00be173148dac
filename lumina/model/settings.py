# lumina/model/settings.py
from sqlalchemy.sql import func
from ..extensions import db
from ..utils.money import to_float

SETTINGS_ID = "site-settings"


class SiteSettings(db.Model):
    __tablename__ = "site_settings"

    id = db.Column(db.String(32), primary_key=True, default=SETTINGS_ID)
    delivery_charge = db.Column(db.Numeric(12, 2), nullable=False, default=60)
    store_name = db.Column(db.String(120), nullable=False, default="Lumina Grocery")
    phone = db.Column(db.String(50))
    facebook = db.Column(db.String(512))
    messenger = db.Column(db.String(512))
    whatsapp = db.Column(db.String(512))
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    def as_api(self):
        return {
            "delivery_charge": to_float(self.delivery_charge),
            "store_name": self.store_name,
            "phone": self.phone,
            "facebook": self.facebook,
            "messenger": self.messenger,
            "whatsapp": self.whatsapp,
        }
