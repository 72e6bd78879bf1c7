# routes_account.py
from flask import Blueprint, request, jsonify
from sqlalchemy import desc, or_

from auth import customer_required, current_customer
from models import Customer, Order
from routes_admin import customer_summaries, summary_dict, apply_customer_fields, commit_customer
from services import json_body, parse_str

bp = Blueprint("account", __name__, url_prefix="/account")


@bp.get("")
@customer_required
def profile():
    customer = current_customer()
    row = customer_summaries().filter(Customer.id == customer.id).first()
    return jsonify(summary_dict(row))


@bp.put("")
@customer_required
def update_profile():
    customer = current_customer()
    data = json_body(request)
    apply_customer_fields(customer, data, partial=True)
    password = parse_str(data.get("password"), "password", strip=False)
    if password:
        customer.set_password(password)
    commit_customer()
    return jsonify({"message": "Profile updated successfully", "user": customer.to_dict()})


@bp.get("/orders")
@customer_required
def my_orders():
    customer = current_customer()
    # Guest orders placed before registering share the e-mail.
    orders = (
        Order.query
        .filter(or_(Order.customer_id == customer.id, Order.customer_email == customer.email))
        .order_by(desc(Order.created_at), desc(Order.id))
        .all()
    )
    return jsonify([o.to_dict(with_items=True) for o in orders])
