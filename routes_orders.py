# routes_orders.py
from flask import Blueprint, request, jsonify, current_app
from sqlalchemy import desc, func

from auth import admin_required, current_customer, is_admin
from checkout import Cart, quote, place_order, totals_json
from errors import APIError, ValidationError, ForbiddenError, NotFoundError
from models import db, Order, Customer, ORDER_STATUSES
from services import (
    init_stripe, send_email, json_body, parse_int, parse_money, parse_str,
    money_to_cents, to_money,
)

bp = Blueprint("orders", __name__)


def _get_order_or_404(order_id):
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")
    return order


def _confirmation_body(order):
    lines = "".join(
        f"- {it.product_name} (x{it.quantity}): ${to_money(it.price * it.quantity)}\n" for it in order.items
    )
    return (
        f"Thank you for your order, {order.customer_name}!\n\n"
        f"Order number: {order.order_number}\n\n"
        f"Order Details:\n{lines}\n"
        f"Subtotal: ${order.subtotal}\n"
        f"Discount: -${order.discount_amount}\n"
        f"Tax: ${order.tax_amount}\n"
        f"Shipping: ${order.shipping_amount}\n"
        f"Total: ${order.total_amount}\n\n"
        f"Shipping to: {order.shipping_address or 'N/A'}\n"
        f"Payment method: {order.payment_method}\n"
    )

# ---------- Checkout ----------

@bp.post("/cart/quote")
def cart_quote():
    data = json_body(request)
    cart = Cart.from_payload(data.get("items"))
    lines, promo, totals = quote(cart, data.get("promoCode"), missing_status=400)
    return jsonify({
        "items": [
            {
                "product_id": line.product.id,
                "name": line.product.name,
                "price": float(line.unit_price),
                "quantity": line.quantity,
                "line_total": float(line.line_total),
                "in_stock": line.product.stock >= line.quantity,
            }
            for line in lines
        ],
        "promo_code": promo.code if promo else None,
        **totals_json(totals),
    })


@bp.post("/orders")
def create_order():
    data = json_body(request)
    cart = Cart.from_payload(data.get("items"))

    customer = current_customer()
    if customer is None and data.get("customerId") is not None:
        if not is_admin():
            raise ForbiddenError("customerId may only be set from the back-office")
        customer = db.session.get(Customer, parse_int(data.get("customerId"), "customerId", minimum=1))
        if customer is None:
            raise NotFoundError("Customer not found")

    contact = {
        "name": parse_str(data.get("customerName"), "customerName") or (customer.name if customer else None),
        "email": parse_str(data.get("customerEmail"), "customerEmail") or (customer.email if customer else None),
        "phone": parse_str(data.get("customerPhone"), "customerPhone") or (customer.phone if customer else None),
    }
    if not contact["name"] or not contact["email"]:
        raise ValidationError("Missing required fields")
    contact["email"] = contact["email"].lower()
    if "@" not in contact["email"]:
        raise ValidationError("Invalid email address")

    shipping_address = (
        parse_str(data.get("shippingAddress"), "shippingAddress") or (customer.address if customer else None)
    )
    client_total = parse_money(data.get("totalAmount", data.get("total")), "totalAmount", required=False)

    order, totals = place_order(
        cart,
        contact,
        shipping_address=shipping_address,
        payment_method=data.get("paymentMethod"),
        promo_code=data.get("promoCode"),
        customer=customer,
        client_total=client_total,
    )

    send_email(f"Order confirmation {order.order_number}", _confirmation_body(order), to_email=order.customer_email)

    return jsonify({
        "message": "Order created successfully",
        "id": order.id,
        "orderNumber": order.order_number,
        "status": order.status,
        **totals_json(totals),
    }), 201


@bp.get("/orders/lookup")
def lookup_order():
    order_number = (request.args.get("orderNumber") or "").strip().upper()
    email = (request.args.get("email") or "").strip().lower()
    if not order_number or not email:
        raise ValidationError("Please provide both orderNumber and email")

    order = Order.query.filter(
        Order.order_number == order_number,
        func.lower(Order.customer_email) == email,
    ).first()
    if not order:
        raise NotFoundError("No order found for that order number and email")
    return jsonify(order.to_dict(with_items=True))

# ---------- Card payments / Stripe ----------

@bp.post("/orders/<int:order_id>/pay")
def pay_order(order_id):
    data = json_body(request) if request.get_data() else {}
    order = _get_order_or_404(order_id)

    # Guests prove ownership with the e-mail used at checkout.
    customer = current_customer()
    email = (parse_str(data.get("email"), "email") or "").lower()
    owns = (customer is not None and order.customer_id == customer.id) or (email and email == order.customer_email)
    if not (owns or is_admin()):
        raise NotFoundError("Order not found")

    if order.payment_method != "card":
        raise ValidationError("Order is not paid by card")
    if order.status != "pending":
        raise ValidationError("Order is not awaiting payment")
    if not current_app.config.get("STRIPE_SECRET_KEY"):
        raise APIError("Card payments are not configured", 503)

    stripe = init_stripe()
    shop_url = current_app.config["SHOP_URL"].rstrip("/")
    try:
        checkout_session = stripe.checkout.Session.create(
            payment_method_types=['card'],
            line_items=[{
                'price_data': {
                    'currency': current_app.config["STRIPE_CURRENCY"],
                    'unit_amount': money_to_cents(order.total_amount),
                    'product_data': {'name': f"Order {order.order_number}"},
                },
                'quantity': 1,
            }],
            mode='payment',
            customer_email=order.customer_email,
            success_url=f"{shop_url}/order-confirmation?orderNumber={order.order_number}",
            cancel_url=f"{shop_url}/checkout",
            metadata={"order_number": order.order_number},
            payment_intent_data={
                "description": f"Order {order.order_number}",
                "metadata": {"order_number": order.order_number},
            },
        )
    except stripe.StripeError as e:
        current_app.logger.exception(f"Stripe session for {order.order_number} failed: {e}")
        raise APIError("Payment provider unavailable", 502)

    return jsonify({"checkoutUrl": checkout_session.url, "sessionId": checkout_session.id})


@bp.post('/payments/webhook')
def stripe_webhook():
    endpoint_secret = current_app.config.get('STRIPE_WEBHOOK_SECRET')
    if not endpoint_secret:
        raise APIError("Card payments are not configured", 503)

    stripe = init_stripe()
    payload = request.get_data(as_text=True)
    sig_header = request.headers.get('Stripe-Signature')

    try:
        event = stripe.Webhook.construct_event(payload, sig_header, endpoint_secret)
    except ValueError:
        raise ValidationError('Invalid payload')
    except stripe.SignatureVerificationError:
        raise ValidationError('Invalid signature')

    if event['type'] == 'checkout.session.completed':
        session_data = event['data']['object']
        order_number = (session_data.get('metadata') or {}).get('order_number')
        order = Order.query.filter_by(order_number=order_number).first()
        if order and order.can_transition_to("processing"):
            order.transition_to("processing")
            db.session.commit()
            current_app.logger.info(f"Order {order.order_number} paid; now processing")
        elif order is None:
            current_app.logger.warning(f"Payment for unknown order {order_number!r}")

    return jsonify({"received": True})

# ---------- Admin ----------

@bp.get("/orders")
@admin_required
def list_orders():
    query = Order.query
    status = (request.args.get("status") or "").strip().lower()
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"unknown order status: {status}")
        query = query.filter(Order.status == status)
    orders = query.order_by(desc(Order.created_at), desc(Order.id)).all()
    return jsonify([o.to_dict() for o in orders])


@bp.get("/orders/<int:order_id>")
@admin_required
def get_order(order_id):
    return jsonify(_get_order_or_404(order_id).to_dict(with_items=True))


@bp.put("/orders/<int:order_id>")
@admin_required
def update_order(order_id):
    order = _get_order_or_404(order_id)
    data = json_body(request)
    previous = order.status

    if "status" in data:
        order.transition_to(parse_str(data.get("status"), "status"))
    if "shippingAddress" in data:
        order.shipping_address = parse_str(data.get("shippingAddress"), "shippingAddress")

    db.session.commit()
    if order.status != previous:
        current_app.logger.info(f"Order {order.order_number}: {previous} -> {order.status}")
    return jsonify({"message": "Order updated successfully", "id": order.id, "status": order.status})


@bp.delete("/orders/<int:order_id>")
@admin_required
def cancel_order(order_id):
    order = _get_order_or_404(order_id)
    previous = order.status
    order.transition_to("cancelled")
    db.session.commit()
    current_app.logger.info(f"Order {order.order_number}: {previous} -> cancelled")
    return jsonify({"message": "Order cancelled successfully", "id": order.id, "status": order.status})
