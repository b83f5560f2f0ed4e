# Overview: Service-layer operations for the product catalog (brands, variants, sizes).

from __future__ import annotations

from ..errors import NotFoundError
from ..extensions import db
from ..models import Brand, User, Variant, VariantSize
from ..validation import ModelValidationPolicy, field_error, validate_payload

BRAND_POLICY = ModelValidationPolicy(
    writable_fields={"name": "name", "description": "description", "isActive": "is_active"},
    required_on_create=frozenset({"name"}),
)

VARIANT_POLICY = ModelValidationPolicy(
    writable_fields={"name": "name", "isActive": "is_active"},
    required_on_create=frozenset({"name"}),
)


class CatalogError(ValueError):
    pass


# -- Brands --

def _brand_name_taken(name: str, *, exclude_id: int | None = None) -> bool:
    query = db.session.query(Brand.id).filter(db.func.lower(Brand.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Brand.id != exclude_id)
    return query.first() is not None


def get_brand(brand_id: int) -> Brand:
    brand = db.session.get(Brand, brand_id)
    if brand is None:
        raise NotFoundError("Brand not found")
    return brand


def list_brands(*, include_inactive: bool = False) -> list[Brand]:
    query = db.session.query(Brand)
    if not include_inactive:
        query = query.filter(Brand.is_active.is_(True))
    return query.order_by(Brand.name.asc()).all()


def create_brand(*, payload: dict, created_by: User) -> Brand:
    patch = validate_payload(model=Brand, payload=payload, policy=BRAND_POLICY, partial=False)
    if _brand_name_taken(patch["name"]):
        raise CatalogError("A brand with that name already exists")
    brand = Brand(created_by_id=created_by.id, **patch)
    db.session.add(brand)
    db.session.commit()
    return brand


def update_brand(brand_id: int, payload: dict) -> Brand:
    brand = get_brand(brand_id)
    patch = validate_payload(model=Brand, payload=payload, policy=BRAND_POLICY, partial=True)
    if "name" in patch and _brand_name_taken(patch["name"], exclude_id=brand.id):
        raise CatalogError("A brand with that name already exists")
    for key, value in patch.items():
        setattr(brand, key, value)
    db.session.commit()
    return brand


def delete_brand(brand_id: int) -> Brand:
    brand = get_brand(brand_id)
    brand.is_active = False
    db.session.commit()
    return brand


# -- Variants --

def _clean_sizes(raw) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise field_error("sizes", "sizes must be a list")
    names: list[str] = []
    for item in raw:
        name = item.get("name") if isinstance(item, dict) else item
        name = str(name or "").strip()
        if not name:
            raise field_error("sizes", "Size name is required")
        if name not in names:
            names.append(name)
    return names


def get_variant(variant_id: int) -> Variant:
    variant = db.session.get(Variant, variant_id)
    if variant is None:
        raise NotFoundError("Variant not found")
    return variant


def list_variants(*, brand_id: int | None = None) -> list[Variant]:
    query = db.session.query(Variant).filter(Variant.is_active.is_(True))
    if brand_id:
        query = query.filter(Variant.brand_id == brand_id)
    return query.order_by(Variant.name.asc()).all()


def create_variant(*, payload: dict, created_by: User) -> Variant:
    patch = validate_payload(model=Variant, payload=payload, policy=VARIANT_POLICY, partial=False)
    sizes = _clean_sizes(payload.get("sizes"))
    brand_id = payload.get("brand") or payload.get("brandId")
    if brand_id is None:
        raise field_error("brand", "brand is required")
    brand = get_brand(brand_id)

    variant = Variant(brand_id=brand.id, created_by_id=created_by.id, **patch)
    variant.sizes = [VariantSize(name=name) for name in sizes]
    db.session.add(variant)
    db.session.commit()
    return variant


def update_variant(variant_id: int, payload: dict) -> Variant:
    variant = get_variant(variant_id)
    patch = validate_payload(model=Variant, payload=payload, policy=VARIANT_POLICY, partial=True)

    brand_id = payload.get("brand") or payload.get("brandId")
    if brand_id is not None:
        variant.brand_id = get_brand(brand_id).id
    if "sizes" in payload:
        names = _clean_sizes(payload.get("sizes"))
        existing = {s.name: s for s in variant.sizes}
        variant.sizes = [existing.get(name) or VariantSize(name=name) for name in names]

    for key, value in patch.items():
        setattr(variant, key, value)
    db.session.commit()
    return variant


def delete_variant(variant_id: int) -> Variant:
    variant = get_variant(variant_id)
    variant.is_active = False
    db.session.commit()
    return variant


def add_size(variant_id: int, payload: dict) -> Variant:
    variant = get_variant(variant_id)
    name = str(payload.get("name") or "").strip()
    if not name:
        raise field_error("name", "Size name is required")
    if any(s.name == name for s in variant.sizes):
        raise CatalogError("Size already exists for this variant")
    variant.sizes.append(VariantSize(name=name))
    db.session.commit()
    return variant


def catalog_tree() -> list[dict]:
    """Active brands -> active variants -> active sizes, alphabetical."""
    tree = []
    for brand in list_brands():
        variants = [v for v in brand.variants if v.is_active]
        tree.append(
            {
                "id": brand.id,
                "name": brand.name,
                "variants": [
                    {
                        "id": v.id,
                        "name": v.name,
                        "sizes": [s.name for s in v.sizes if s.is_active],
                    }
                    for v in variants
                ],
            }
        )
    return tree
