from flask import request

from ..schemas import ProductIn
from ..services import catalog_service
from ..utils.api import ok
from ..utils.decorators import validate_body
from . import bp


def _parse_opt_int(v):
    if v is None: return None
    if isinstance(v, str) and v.strip().lower() in {"", "null"}: return None
    try: return int(v)
    except (TypeError, ValueError): return None


# GET /api/products
@bp.get("")
def list_products():
    """
    Query params:
      category_id  -> int (also accepted as categoryId)
    Each variety carries its effective (discounted) price.
    """
    category_id = _parse_opt_int(request.args.get("category_id") or request.args.get("categoryId"))
    return ok("Products fetched", catalog_service.list_products(category_id))


# GET /api/products/<id>
@bp.get("/<int:pid>")
def get_product(pid):
    return ok("Product fetched", catalog_service.get_product(pid).as_api())


# POST /api/products
@bp.post("")
@validate_body(ProductIn)
def create_product(body: ProductIn):
    product = catalog_service.create_product(body)
    return ok("Product created", product.as_api(), status=201)


# DELETE /api/products/<id>
@bp.delete("/<int:pid>")
def delete_product(pid):
    catalog_service.delete_product(pid)
    return ok("Product deleted")
