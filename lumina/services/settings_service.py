# lumina/services/settings_service.py
from flask import current_app

from ..cache import SETTINGS_TTL
from ..extensions import db, cache
from ..model import SiteSettings
from ..model.settings import SETTINGS_ID
from ..utils.db import commit
from ..utils.money import D

SETTINGS_KEY = "site-settings"


def _load_or_create() -> SiteSettings:
    s = db.session.get(SiteSettings, SETTINGS_ID)
    if s is None:
        s = SiteSettings(
            id=SETTINGS_ID,
            delivery_charge=D(current_app.config.get("DEFAULT_DELIVERY_CHARGE", 60)),
            store_name=current_app.config.get("STORE_NAME", "Lumina Grocery"),
        )
        db.session.add(s)
        commit("create site settings")
    return s


def get_settings() -> dict:
    return cache.get_or_set(SETTINGS_KEY, lambda: _load_or_create().as_api(), SETTINGS_TTL)


def delivery_charge():
    return D(get_settings()["delivery_charge"])


def update_settings(fields: dict) -> dict:
    s = _load_or_create()
    for key, value in fields.items():
        if key == "delivery_charge":
            value = D(value or 0)
        elif key == "store_name":
            value = value or current_app.config.get("STORE_NAME", "Lumina Grocery")
        else:
            value = value or None
        setattr(s, key, value)
    commit("update settings")
    cache.delete_prefix(SETTINGS_KEY)
    return s.as_api()
