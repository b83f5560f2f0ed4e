# Overview: Flask API routes for the product catalog; brands, variants and the catalog tree.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_capability
from ..responses import fail, ok
from ..services import catalog_service
from ..services.catalog_service import CatalogError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")
brands_bp = Blueprint("brands", __name__, url_prefix="/api/brands")
variants_bp = Blueprint("variants", __name__, url_prefix="/api/variants")


@products_bp.get("/catalog")
@require_auth
@require_capability("VIEW_CATALOG")
def catalog_route():
    """Active brands -> variants -> size names, used by the mobile order forms."""
    tree = catalog_service.catalog_tree()
    return ok(tree, count=len(tree))


# -- Brands --

@brands_bp.get("")
@require_auth
@require_capability("VIEW_CATALOG")
def list_brands_route():
    include_inactive = request.args.get("includeInactive", "false").lower() == "true"
    brands = catalog_service.list_brands(include_inactive=include_inactive)
    return ok([b.to_dict() for b in brands], count=len(brands))


@brands_bp.get("/<int:brand_id>")
@require_auth
@require_capability("VIEW_CATALOG")
def get_brand_route(brand_id: int):
    return ok(catalog_service.get_brand(brand_id).to_dict())


@brands_bp.post("")
@require_auth
@require_capability("MANAGE_CATALOG")
def create_brand_route():
    payload = request.get_json(silent=True) or {}
    try:
        brand = catalog_service.create_brand(payload=payload, created_by=g.current_user)
    except CatalogError as e:
        return fail(str(e), 400)
    return ok(brand.to_dict(), 201)


@brands_bp.put("/<int:brand_id>")
@require_auth
@require_capability("MANAGE_CATALOG")
def update_brand_route(brand_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        brand = catalog_service.update_brand(brand_id, payload)
    except CatalogError as e:
        return fail(str(e), 400)
    return ok(brand.to_dict())


@brands_bp.delete("/<int:brand_id>")
@require_auth
@require_capability("MANAGE_CATALOG")
def delete_brand_route(brand_id: int):
    catalog_service.delete_brand(brand_id)
    return ok({}, message="Brand deleted")


# -- Variants --

@variants_bp.get("")
@require_auth
@require_capability("VIEW_CATALOG")
def list_variants_route():
    variants = catalog_service.list_variants(brand_id=request.args.get("brand", type=int))
    return ok([v.to_dict() for v in variants], count=len(variants))


@variants_bp.get("/<int:variant_id>")
@require_auth
@require_capability("VIEW_CATALOG")
def get_variant_route(variant_id: int):
    return ok(catalog_service.get_variant(variant_id).to_dict())


@variants_bp.post("")
@require_auth
@require_capability("MANAGE_CATALOG")
def create_variant_route():
    payload = request.get_json(silent=True) or {}
    try:
        variant = catalog_service.create_variant(payload=payload, created_by=g.current_user)
    except CatalogError as e:
        return fail(str(e), 400)
    return ok(variant.to_dict(), 201)


@variants_bp.put("/<int:variant_id>")
@require_auth
@require_capability("MANAGE_CATALOG")
def update_variant_route(variant_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        variant = catalog_service.update_variant(variant_id, payload)
    except CatalogError as e:
        return fail(str(e), 400)
    return ok(variant.to_dict())


@variants_bp.post("/<int:variant_id>/sizes")
@require_auth
@require_capability("MANAGE_CATALOG")
def add_size_route(variant_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        variant = catalog_service.add_size(variant_id, payload)
    except CatalogError as e:
        return fail(str(e), 400)
    return ok(variant.to_dict(), 201)


@variants_bp.delete("/<int:variant_id>")
@require_auth
@require_capability("MANAGE_CATALOG")
def delete_variant_route(variant_id: int):
    catalog_service.delete_variant(variant_id)
    return ok({}, message="Variant deleted")
