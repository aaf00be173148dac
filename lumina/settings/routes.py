# lumina/settings/routes.py
from ..schemas import SettingsIn
from ..services import settings_service
from ..utils.api import ok
from ..utils.decorators import validate_body
from . import bp


@bp.get("")
def get_settings():
    return ok("settings", settings_service.get_settings())


@bp.put("")
@validate_body(SettingsIn)
def update_settings(body: SettingsIn):
    # only keys present in the body are written
    return ok("settings updated", settings_service.update_settings(body.model_dump(exclude_unset=True)))
