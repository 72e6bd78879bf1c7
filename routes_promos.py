# routes_promos.py
from datetime import date

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError

from auth import admin_required, require_role
from checkout import validate_promo, normalize_code
from errors import ValidationError, NotFoundError, ConflictError
from models import db, PromoCode, DISCOUNT_TYPES, PROMO_STATUSES
from services import json_body, parse_int, parse_money, parse_str

bp = Blueprint("promos", __name__, url_prefix="/promo-codes")

# JSON field -> column; the camelCase names are what the admin forms send.
FIELD_ALIASES = {
    "discountType": "discount_type",
    "discountValue": "discount_value",
    "maxDiscount": "max_discount",
    "minOrderAmount": "min_purchase",
    "minPurchase": "min_purchase",
    "maxUsage": "usage_limit",
    "usageLimit": "usage_limit",
    "expiryDate": "expiry_date",
}


def _normalized(data):
    out = {}
    for key, value in data.items():
        out[FIELD_ALIASES.get(key, key)] = value
    return out


def _parse_date(value):
    if value in (None, ""):
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError("expiryDate must be an ISO date (YYYY-MM-DD)")


def _apply_fields(promo, data, partial):
    if "code" in data or not partial:
        code = normalize_code(data.get("code"), "code")
        if not code:
            raise ValidationError("code is required")
        clash = PromoCode.query.filter(PromoCode.code == code)
        if promo.id is not None:
            clash = clash.filter(PromoCode.id != promo.id)
        if clash.first():
            raise ConflictError("Promo code already exists")
        promo.code = code

    if "discount_type" in data or not partial:
        dtype = (parse_str(data.get("discount_type"), "discountType") or "").lower()
        if dtype not in DISCOUNT_TYPES:
            raise ValidationError(f"discountType must be one of {', '.join(DISCOUNT_TYPES)}")
        promo.discount_type = dtype

    if "discount_value" in data or not partial:
        promo.discount_value = parse_money(data.get("discount_value"), "discountValue")

    if promo.discount_value is not None and promo.discount_value <= 0:
        raise ValidationError("discountValue must be positive")
    if promo.discount_type == "percentage" and promo.discount_value is not None and promo.discount_value > 100:
        raise ValidationError("percentage discounts cannot exceed 100")

    for field in ("max_discount", "min_purchase"):
        if field in data:
            setattr(promo, field, parse_money(data.get(field), field, required=False))

    if "usage_limit" in data:
        limit = data.get("usage_limit")
        promo.usage_limit = None if limit in (None, "") else parse_int(limit, "usageLimit", minimum=1)
        if promo.usage_limit is not None and promo.usage_limit < (promo.usage_count or 0):
            raise ValidationError("usageLimit cannot be below the current usage count")

    if "expiry_date" in data:
        promo.expiry_date = _parse_date(data.get("expiry_date"))

    if "description" in data:
        promo.description = parse_str(data.get("description"), "description")

    if "status" in data:
        status = (parse_str(data.get("status"), "status") or "").lower()
        if status not in PROMO_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(PROMO_STATUSES)}")
        promo.status = status


def _get_promo_or_404(promo_id):
    promo = db.session.get(PromoCode, promo_id)
    if promo is None:
        raise NotFoundError("Promo code not found")
    return promo


def _commit_unique():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Promo code already exists")


@bp.get("")
def list_or_validate():
    code = request.args.get("code")
    if code is not None:
        subtotal = parse_money(request.args.get("subtotal"), "subtotal", required=False)
        promo, discount = validate_promo(code, subtotal)
        body = {
            "code": promo.code,
            "discount_type": promo.discount_type,
            "discount_value": float(promo.discount_value),
            "max_discount": float(promo.max_discount) if promo.max_discount is not None else None,
            "min_purchase": float(promo.min_purchase) if promo.min_purchase is not None else None,
        }
        if discount is not None:
            body["discount"] = float(discount)
        return jsonify(body)

    require_role("admin")
    promos = PromoCode.query.order_by(desc(PromoCode.created_at), desc(PromoCode.id)).all()
    return jsonify([p.to_dict() for p in promos])


@bp.post("")
@admin_required
def create_promo():
    data = _normalized(json_body(request))
    promo = PromoCode(status="active", usage_count=0)
    _apply_fields(promo, data, partial=False)
    db.session.add(promo)
    _commit_unique()
    current_app.logger.info(f"Promo code {promo.code} created")
    return jsonify(promo.to_dict()), 201


@bp.get("/<int:promo_id>")
@admin_required
def get_promo(promo_id):
    return jsonify(_get_promo_or_404(promo_id).to_dict())


@bp.put("/<int:promo_id>")
@admin_required
def update_promo(promo_id):
    promo = _get_promo_or_404(promo_id)
    _apply_fields(promo, _normalized(json_body(request)), partial=True)
    _commit_unique()
    return jsonify({"message": "Promo code updated successfully", "id": promo.id})


@bp.delete("/<int:promo_id>")
@admin_required
def delete_promo(promo_id):
    promo = _get_promo_or_404(promo_id)
    db.session.delete(promo)
    db.session.commit()
    return jsonify({"message": "Promo code deleted successfully"})
