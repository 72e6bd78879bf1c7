from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Numeric
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from errors import InvalidTransitionError, ValidationError

db = SQLAlchemy()

CATEGORIES = ("sunglasses", "clothes")
PRODUCT_STATUSES = ("active", "inactive")
PAYMENT_METHODS = ("cod", "card")
DISCOUNT_TYPES = ("percentage", "fixed")
PROMO_STATUSES = ("active", "expired", "inactive")
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")

# delivered and cancelled are terminal
ORDER_TRANSITIONS = {
    "pending": {"processing", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}


def _money(value):
    return float(value) if value is not None else None


def _iso(value):
    return value.isoformat() if value else None


class Product(db.Model):
    __tablename__ = "products"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    category = db.Column(db.String(50), nullable=False, index=True)
    color = db.Column(db.String(50))
    description = db.Column(db.Text, default="")
    price = db.Column(Numeric(10, 2), nullable=False)
    original_price = db.Column(Numeric(10, 2))
    stock = db.Column(db.Integer, nullable=False, default=0)
    is_hot_selling = db.Column(db.Boolean, default=False)
    is_new_arrival = db.Column(db.Boolean, default=False)
    is_top_viewed = db.Column(db.Boolean, default=False)
    status = db.Column(db.String(20), nullable=False, default="active")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.CheckConstraint("stock >= 0", name="ck_products_stock"),)

    def to_dict(self, images=None):
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "color": self.color,
            "description": self.description,
            "price": _money(self.price),
            "original_price": _money(self.original_price),
            "stock": self.stock,
            "is_hot_selling": bool(self.is_hot_selling),
            "is_new_arrival": bool(self.is_new_arrival),
            "is_top_viewed": bool(self.is_top_viewed),
            "status": self.status,
            "images": list(images or []),
            "created_at": _iso(self.created_at),
        }


class ProductImage(db.Model):
    __tablename__ = "product_images"
    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = db.Column(db.String(500), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)
    is_main = db.Column(db.Boolean, default=False)


class AdminUser(db.Model):
    __tablename__ = "admin_users"
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(50), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255))
    role = db.Column(db.String(20), default="admin")
    status = db.Column(db.String(20), default="active")
    def set_password(self, p): self.password_hash = generate_password_hash(p)
    def check_password(self, p): return check_password_hash(self.password_hash, p)

    def to_dict(self):
        return {"id": self.id, "username": self.username, "email": self.email, "role": self.role}


class Customer(db.Model):
    __tablename__ = "customers"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    phone = db.Column(db.String(50))
    address = db.Column(db.String(255))
    city = db.Column(db.String(100))
    country = db.Column(db.String(100))
    # Customers created from the back-office have no login.
    password_hash = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def set_password(self, p): self.password_hash = generate_password_hash(p)

    def check_password(self, p):
        return bool(self.password_hash) and check_password_hash(self.password_hash, p)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "country": self.country,
            "created_at": _iso(self.created_at),
        }


class Order(db.Model):
    __tablename__ = "orders"
    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(40), unique=True, nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id", ondelete="SET NULL"), index=True)
    customer_name = db.Column(db.String(120), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False, index=True)
    customer_phone = db.Column(db.String(50))
    subtotal = db.Column(Numeric(10, 2), nullable=False)
    discount_amount = db.Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = db.Column(Numeric(10, 2), nullable=False, default=0)
    shipping_amount = db.Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = db.Column(Numeric(10, 2), nullable=False)
    promo_code = db.Column(db.String(50))
    status = db.Column(db.String(20), nullable=False, default="pending", index=True)
    shipping_address = db.Column(db.String(500))
    payment_method = db.Column(db.String(20), nullable=False, default="cod")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = db.relationship("OrderItem", backref="order", lazy="select", order_by="OrderItem.id")

    def can_transition_to(self, status):
        return status in ORDER_TRANSITIONS.get(self.status, set())

    def transition_to(self, status):
        status = (status or "").strip().lower()
        if status not in ORDER_STATUSES:
            raise ValidationError(f"unknown order status: {status or '(empty)'}")
        if not self.can_transition_to(status):
            raise InvalidTransitionError(self.status, status)
        self.status = status

    def to_dict(self, with_items=False):
        d = {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "subtotal": _money(self.subtotal),
            "discount_amount": _money(self.discount_amount),
            "tax_amount": _money(self.tax_amount),
            "shipping_amount": _money(self.shipping_amount),
            "total_amount": _money(self.total_amount),
            "promo_code": self.promo_code,
            "status": self.status,
            "shipping_address": self.shipping_address,
            "payment_method": self.payment_method,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if with_items:
            d["items"] = [it.to_dict() for it in self.items]
        return d


class OrderItem(db.Model):
    __tablename__ = "order_items"
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    product_name = db.Column(db.String(120), nullable=False)
    price = db.Column(Numeric(10, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity"),)

    def to_dict(self):
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "price": _money(self.price),
            "quantity": self.quantity,
            "line_total": _money(self.price * self.quantity),
        }


class PromoCode(db.Model):
    __tablename__ = "promo_codes"
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False)
    description = db.Column(db.String(255))
    discount_type = db.Column(db.String(20), nullable=False)
    discount_value = db.Column(Numeric(10, 2), nullable=False)
    max_discount = db.Column(Numeric(10, 2))
    min_purchase = db.Column(Numeric(10, 2))
    usage_limit = db.Column(db.Integer)
    usage_count = db.Column(db.Integer, nullable=False, default=0)
    expiry_date = db.Column(db.Date)
    status = db.Column(db.String(20), nullable=False, default="active")
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": _money(self.discount_value),
            "max_discount": _money(self.max_discount),
            "min_purchase": _money(self.min_purchase),
            "usage_limit": self.usage_limit,
            "usage_count": self.usage_count,
            "expiry_date": _iso(self.expiry_date),
            "status": self.status,
            "created_at": _iso(self.created_at),
        }
