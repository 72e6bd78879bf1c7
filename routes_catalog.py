# routes_catalog.py
from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import desc, or_

from auth import admin_required, is_admin
from errors import ValidationError, NotFoundError
from models import db, Product, ProductImage, CATEGORIES, PRODUCT_STATUSES
from services import json_body, parse_int, parse_money, parse_str

bp = Blueprint("catalog", __name__)


def images_for(product_ids):
    """Ordered image URLs per product id, fetched in one query."""
    images = {pid: [] for pid in product_ids}
    if not product_ids:
        return images
    rows = (
        ProductImage.query
        .filter(ProductImage.product_id.in_(product_ids))
        .order_by(ProductImage.product_id, ProductImage.position, ProductImage.id)
        .all()
    )
    for row in rows:
        images[row.product_id].append(row.image_url)
    return images


def _replace_images(product, urls):
    if not isinstance(urls, list) or not all(isinstance(u, str) and u.strip() for u in urls):
        raise ValidationError("images must be a list of URLs")
    ProductImage.query.filter_by(product_id=product.id).delete()
    for position, url in enumerate(urls):
        db.session.add(ProductImage(
            product_id=product.id, image_url=url.strip(), position=position, is_main=(position == 0)
        ))


def _apply_fields(product, data, partial):
    if "name" in data or not partial:
        name = parse_str(data.get("name"), "name")
        if not name:
            raise ValidationError("name is required")
        product.name = name

    if "category" in data or not partial:
        category = (parse_str(data.get("category"), "category") or "").lower()
        if category not in CATEGORIES:
            raise ValidationError(f"category must be one of {', '.join(CATEGORIES)}")
        product.category = category

    if "price" in data or not partial:
        product.price = parse_money(data.get("price"), "price")

    if "original_price" in data:
        product.original_price = parse_money(data.get("original_price"), "original_price", required=False)

    if "stock" in data or not partial:
        product.stock = parse_int(data.get("stock"), "stock", minimum=0, default=0)

    if "status" in data:
        status = (parse_str(data.get("status"), "status") or "").lower()
        if status not in PRODUCT_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(PRODUCT_STATUSES)}")
        product.status = status

    for field in ("color", "description"):
        if field in data:
            setattr(product, field, parse_str(data.get(field), field))

    for flag in ("is_hot_selling", "is_new_arrival", "is_top_viewed"):
        if flag in data:
            setattr(product, flag, bool(data.get(flag)))


# ---------- Public catalog ----------

@bp.get("/products")
def list_products():
    cfg = current_app.config
    page = parse_int(request.args.get("page"), "page", minimum=1, default=1)
    limit = parse_int(request.args.get("limit"), "limit", minimum=1, default=cfg["DEFAULT_PAGE_SIZE"])
    limit = min(limit, cfg["MAX_PAGE_SIZE"])

    query = Product.query
    status = (request.args.get("status") or "active").strip().lower()
    if status != "active" and is_admin():
        if status in PRODUCT_STATUSES:
            query = query.filter(Product.status == status)
        elif status != "all":
            raise ValidationError("status must be active, inactive or all")
    else:
        query = query.filter(Product.status == "active")

    category = (request.args.get("category") or "").strip().lower()
    if category:
        query = query.filter(Product.category == category)

    search = (request.args.get("search") or "").strip()
    if search:
        query = query.filter(or_(
            Product.name.icontains(search, autoescape=True),
            Product.description.icontains(search, autoescape=True),
        ))

    total = query.count()
    products = (
        query.order_by(desc(Product.created_at), desc(Product.id))
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    images = images_for([p.id for p in products])
    return jsonify({
        "items": [p.to_dict(images[p.id]) for p in products],
        "page": page,
        "limit": limit,
        "total": total,
    })


@bp.get("/products/<int:product_id>")
def get_product(product_id):
    product = db.session.get(Product, product_id)
    if product is None or (product.status != "active" and not is_admin()):
        raise NotFoundError("Product not found")
    return jsonify(product.to_dict(images_for([product.id])[product.id]))


# ---------- Admin catalog ----------

@bp.post("/products")
@admin_required
def create_product():
    data = json_body(request)
    product = Product(status="active")
    _apply_fields(product, data, partial=False)
    db.session.add(product)
    db.session.flush()
    if data.get("images"):
        _replace_images(product, data["images"])
    db.session.commit()
    current_app.logger.info(f"Product {product.id} created")
    return jsonify({"id": product.id, "message": "Product created successfully"}), 201


@bp.put("/products/<int:product_id>")
@admin_required
def update_product(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    data = json_body(request)
    _apply_fields(product, data, partial=True)
    if "images" in data:
        _replace_images(product, data["images"] or [])
    db.session.commit()
    return jsonify({"message": "Product updated successfully", "id": product.id})


@bp.delete("/products/<int:product_id>")
@admin_required
def delete_product(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    # Order items keep referencing the row; only hide it.
    product.status = "inactive"
    db.session.commit()
    current_app.logger.info(f"Product {product.id} deactivated")
    return jsonify({"message": "Product deleted successfully"})
