# routes_admin.py
from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import desc, func, or_, update
from sqlalchemy.exc import IntegrityError

from auth import admin_required
from errors import ValidationError, NotFoundError, ConflictError
from models import db, Customer, Order, Product, ORDER_STATUSES
from services import json_body, parse_str

bp = Blueprint("admin", __name__)

CUSTOMER_FIELDS = ("name", "email", "phone", "address", "city", "country")
LOW_STOCK_THRESHOLD = 5


def customer_summaries():
    """Customers joined with their order aggregates."""
    return (
        db.session.query(
            Customer,
            func.count(Order.id).label("total_orders"),
            func.coalesce(func.sum(Order.total_amount), 0).label("total_spent"),
            func.max(Order.created_at).label("last_order_date"),
        )
        .outerjoin(Order, Order.customer_id == Customer.id)
        .group_by(Customer.id)
    )


def summary_dict(row):
    customer, total_orders, total_spent, last_order_date = row
    d = customer.to_dict()
    d.update({
        "total_orders": int(total_orders or 0),
        "total_spent": float(total_spent or 0),
        "last_order_date": last_order_date.isoformat() if last_order_date else None,
    })
    return d


def _get_customer_or_404(customer_id):
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def apply_customer_fields(customer, data, partial):
    if "name" in data or not partial:
        name = parse_str(data.get("name"), "name")
        if not name:
            raise ValidationError("Missing required fields")
        customer.name = name

    if "email" in data or not partial:
        email = (parse_str(data.get("email"), "email") or "").lower()
        if not email or "@" not in email:
            raise ValidationError("A valid email is required")
        clash = Customer.query.filter(Customer.email == email)
        if customer.id is not None:
            clash = clash.filter(Customer.id != customer.id)
        if clash.first():
            raise ConflictError("Customer with this email already exists")
        customer.email = email

    for field in CUSTOMER_FIELDS[2:]:
        if field in data:
            setattr(customer, field, parse_str(data.get(field), field))


def commit_customer():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Customer with this email already exists")

# ---------- Customers ----------

@bp.get("/customers")
@admin_required
def list_customers():
    query = customer_summaries()
    search = (request.args.get("search") or "").strip()
    if search:
        query = query.filter(or_(
            Customer.name.icontains(search, autoescape=True),
            Customer.email.icontains(search, autoescape=True),
        ))
    rows = query.order_by(desc(Customer.created_at), desc(Customer.id)).all()
    return jsonify([summary_dict(r) for r in rows])


@bp.post("/customers")
@admin_required
def create_customer():
    customer = Customer()
    apply_customer_fields(customer, json_body(request), partial=False)
    db.session.add(customer)
    commit_customer()
    return jsonify(customer.to_dict()), 201


@bp.get("/customers/<int:customer_id>")
@admin_required
def get_customer(customer_id):
    row = customer_summaries().filter(Customer.id == customer_id).first()
    if row is None:
        raise NotFoundError("Customer not found")
    orders = (
        Order.query.filter_by(customer_id=customer_id)
        .order_by(desc(Order.created_at), desc(Order.id)).all()
    )
    body = summary_dict(row)
    body["orders"] = [o.to_dict() for o in orders]
    return jsonify(body)


@bp.put("/customers/<int:customer_id>")
@admin_required
def update_customer(customer_id):
    customer = _get_customer_or_404(customer_id)
    apply_customer_fields(customer, json_body(request), partial=True)
    commit_customer()
    return jsonify({"message": "Customer updated successfully", "id": customer.id})


@bp.delete("/customers/<int:customer_id>")
@admin_required
def delete_customer(customer_id):
    customer = _get_customer_or_404(customer_id)
    # Orders keep the contact snapshot taken at checkout.
    db.session.execute(update(Order).where(Order.customer_id == customer.id).values(customer_id=None))
    db.session.delete(customer)
    db.session.commit()
    current_app.logger.info(f"Customer {customer_id} deleted")
    return jsonify({"message": "Customer deleted successfully"})

# ---------- Dashboard ----------

@bp.get("/admin/stats")
@admin_required
def dashboard_stats():
    by_status = dict(db.session.query(Order.status, func.count(Order.id)).group_by(Order.status).all())
    revenue = (
        db.session.query(func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.status != "cancelled").scalar()
    )
    low_stock = (
        Product.query.filter(Product.status == "active", Product.stock < LOW_STOCK_THRESHOLD)
        .order_by(Product.stock, Product.id).all()
    )
    return jsonify({
        "products": Product.query.filter_by(status="active").count(),
        "low_stock": [{"id": p.id, "name": p.name, "stock": p.stock} for p in low_stock],
        "orders": {status: int(by_status.get(status, 0)) for status in ORDER_STATUSES},
        "revenue": float(revenue or 0),
        "customers": Customer.query.count(),
    })
