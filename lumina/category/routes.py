# --- lumina/category/routes.py ---
from ..schemas import CategoryIn
from ..services import catalog_service
from ..utils.api import ok
from ..utils.decorators import validate_body
from . import bp


@bp.get("")
def list_categories():
    return ok("categories", catalog_service.list_categories())


@bp.get("/<int:cid>")
def get_category(cid: int):
    return ok("category", {"category": catalog_service.get_category(cid).as_dict()})


@bp.post("")
@validate_body(CategoryIn)
def create_category(body: CategoryIn):
    c = catalog_service.create_category(body.name, body.code, body.image_url)
    return ok("Category created", {"category": c.as_dict()}, status=201)


@bp.delete("/<int:cid>")
def delete_category(cid: int):
    catalog_service.delete_category(cid)
    return ok("deleted")
