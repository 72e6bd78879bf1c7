"""
Checkout: cart pricing, promo validation and order placement.

Prices and totals are always resolved from the catalog; nothing the client
sends about money is trusted.  ``place_order`` runs every write of an order
inside one database transaction and rolls back on any failure.
"""
from collections import OrderedDict
from datetime import date
from decimal import Decimal

from flask import current_app
from sqlalchemy import update, or_
from sqlalchemy.exc import SQLAlchemyError

from errors import (
    APIError, ValidationError, ProductUnavailableError,
    InsufficientStockError, PromoError,
)
from models import db, Product, Order, OrderItem, PromoCode, PAYMENT_METHODS
from services import MAX_INT, generate_order_number, parse_int, parse_str, to_money

ZERO = Decimal("0.00")


class Cart:
    """Product id -> quantity, in the order lines were first added."""

    def __init__(self):
        self.lines = OrderedDict()

    def add(self, product_id, quantity):
        self.lines[product_id] = self.lines.get(product_id, 0) + quantity

    def __len__(self):
        return len(self.lines)

    def __iter__(self):
        return iter(self.lines.items())

    @classmethod
    def from_payload(cls, items):
        if not isinstance(items, list) or not items:
            raise ValidationError("Cart is empty")
        cart = cls()
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                raise ValidationError(f"items[{i}] must be an object")
            raw_id = item.get("productId", item.get("id"))
            product_id = parse_int(raw_id, f"items[{i}].productId", minimum=1)
            quantity = parse_int(item.get("quantity"), f"items[{i}].quantity", minimum=1)
            cart.add(product_id, quantity)
            if cart.lines[product_id] > MAX_INT:
                raise ValidationError(f"items[{i}].quantity must be at most {MAX_INT}")
        return cart


class PricedLine:
    def __init__(self, product, quantity):
        self.product = product
        self.quantity = quantity
        self.unit_price = to_money(product.price)

    @property
    def line_total(self):
        return self.unit_price * self.quantity


# ---------- Promo codes ----------

def normalize_code(code, field="promoCode"):
    return (parse_str(code, field) or "").upper()


def find_active_promo(code, today=None):
    today = today or date.today()
    return PromoCode.query.filter(
        PromoCode.code == normalize_code(code),
        PromoCode.status == "active",
        or_(PromoCode.expiry_date.is_(None), PromoCode.expiry_date >= today),
    ).first()


def compute_discount(promo, subtotal):
    subtotal = to_money(subtotal)
    value = Decimal(promo.discount_value)
    if promo.discount_type == "percentage":
        discount = subtotal * value / 100
        if promo.max_discount is not None:
            discount = min(discount, Decimal(promo.max_discount))
    else:
        discount = value
    # A fixed discount never takes the goods below zero.
    return to_money(min(discount, subtotal))


def validate_promo(code, subtotal=None, missing_status=404):
    """Return ``(promo, discount)``; ``discount`` is None without a subtotal.

    Never touches ``usage_count``.
    """
    if not normalize_code(code):
        raise ValidationError("Promo code required")
    promo = find_active_promo(code)
    if promo is None:
        raise PromoError("invalid or expired code", missing_status)
    if promo.usage_limit is not None and promo.usage_count >= promo.usage_limit:
        raise PromoError("usage limit exceeded")
    if subtotal is None:
        return promo, None
    subtotal = to_money(subtotal)
    if promo.min_purchase is not None and subtotal < to_money(promo.min_purchase):
        raise PromoError(f"minimum purchase of {to_money(promo.min_purchase)} not met")
    return promo, compute_discount(promo, subtotal)


# ---------- Totals ----------

def price_cart(cart):
    """Resolve every cart line against the active catalog."""
    ids = [pid for pid, _ in cart]
    products = {p.id: p for p in Product.query.filter(Product.id.in_(ids)).all()}
    lines = []
    for product_id, quantity in cart:
        product = products.get(product_id)
        if product is None or product.status != "active":
            raise ProductUnavailableError(product_id)
        lines.append(PricedLine(product, quantity))
    return lines


def compute_totals(subtotal, discount=ZERO):
    cfg = current_app.config
    subtotal = to_money(subtotal)
    tax = to_money(subtotal * cfg["TAX_RATE"])
    shipping = ZERO if subtotal > cfg["FREE_SHIPPING_THRESHOLD"] else to_money(cfg["SHIPPING_FEE"])
    total = max(ZERO, to_money(subtotal + tax + shipping - discount))
    return {"subtotal": subtotal, "discount": to_money(discount), "tax": tax, "shipping": shipping, "total": total}


def quote(cart, promo_code=None, missing_status=404):
    lines = price_cart(cart)
    subtotal = sum((line.line_total for line in lines), ZERO)
    promo, discount = None, ZERO
    if normalize_code(promo_code):
        promo, discount = validate_promo(promo_code, subtotal, missing_status=missing_status)
    return lines, promo, compute_totals(subtotal, discount)


# ---------- Order placement ----------

def _decrement_stock(product_id, quantity):
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.status == "active", Product.stock >= quantity)
        .values(stock=Product.stock - quantity)
    )
    if result.rowcount != 1:
        raise InsufficientStockError(product_id)


def _consume_promo(promo):
    result = db.session.execute(
        update(PromoCode)
        .where(
            PromoCode.id == promo.id,
            or_(PromoCode.usage_limit.is_(None), PromoCode.usage_count < PromoCode.usage_limit),
        )
        .values(usage_count=PromoCode.usage_count + 1)
    )
    if result.rowcount != 1:
        raise PromoError("usage limit exceeded")


def place_order(cart, contact, shipping_address=None, payment_method="cod",
                promo_code=None, customer=None, client_total=None):
    """Create an order with its items, stock decrements and promo usage atomically.

    ``contact`` holds ``name``, ``email`` and ``phone``.  Returns the committed
    ``(order, totals)``.
    """
    payment_method = (parse_str(payment_method, "paymentMethod") or "cod").lower()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"paymentMethod must be one of {', '.join(PAYMENT_METHODS)}")

    try:
        lines, promo, totals = quote(cart, promo_code, missing_status=400)

        if client_total is not None and to_money(client_total) != totals["total"]:
            current_app.logger.warning(
                f"Client total {client_total} differs from computed {totals['total']}; using computed total"
            )

        order = Order(
            order_number=generate_order_number(),
            customer_id=customer.id if customer is not None else None,
            customer_name=contact["name"],
            customer_email=contact["email"],
            customer_phone=contact.get("phone"),
            subtotal=totals["subtotal"],
            discount_amount=totals["discount"],
            tax_amount=totals["tax"],
            shipping_amount=totals["shipping"],
            total_amount=totals["total"],
            promo_code=promo.code if promo else None,
            status="pending",
            shipping_address=shipping_address,
            payment_method=payment_method,
        )
        db.session.add(order)
        db.session.flush()

        for line in lines:
            db.session.add(OrderItem(
                order_id=order.id,
                product_id=line.product.id,
                product_name=line.product.name,
                price=line.unit_price,
                quantity=line.quantity,
            ))
            _decrement_stock(line.product.id, line.quantity)

        if promo is not None:
            _consume_promo(promo)

        db.session.commit()
    except APIError as e:
        db.session.rollback()
        current_app.logger.warning(f"Order rejected: {e.message}")
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"Order creation failed: {e}")
        raise APIError("Failed to create order", 500)
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(f"Order {order.order_number} placed, total {totals['total']}")
    return order, totals


def totals_json(totals):
    return {k: float(v) for k, v in totals.items()}
