"""Demo catalog, admin account, customers and promo codes for a fresh database."""
from decimal import Decimal

from flask import current_app

from models import db, Product, ProductImage, AdminUser, Customer, PromoCode

PRODUCTS = [
    # name, category, price, color, description, stock, hot, new, top
    ("Premium Cotton T-Shirt", "clothes", "29.99", "Black", "High quality cotton t-shirt, perfect for everyday wear", 50, True, False, True),
    ("Classic Denim Jeans", "clothes", "79.99", "Blue", "Comfortable and stylish denim jeans for all occasions", 35, True, True, True),
    ("Lightweight Hoodie", "clothes", "49.99", "Gray", "Perfect hoodie for casual and comfortable style", 40, False, True, False),
    ("Elegant Polo Shirt", "clothes", "39.99", "White", "Professional polo shirt suitable for casual or semi-formal wear", 45, False, False, True),
    ("Summer Linen Shirt", "clothes", "44.99", "Beige", "Cool and breathable linen shirt perfect for hot weather", 30, True, True, False),
    ("Classic Aviator Sunglasses", "sunglasses", "89.99", "Silver", "Timeless aviator style with UV protection", 25, True, False, True),
    ("Polarized Wayfarer Shades", "sunglasses", "99.99", "Black", "Premium polarized sunglasses with anti-glare technology", 20, True, True, True),
    ("Sport Wrap Around Glasses", "sunglasses", "74.99", "Blue", "Perfect for sports and outdoor activities", 18, False, False, True),
    ("Oversized Cat Eye Sunglasses", "sunglasses", "84.99", "Brown", "Fashionable oversized cat eye style for a trendy look", 22, False, True, False),
    ("Round Retro Sunglasses", "sunglasses", "69.99", "Gold", "Vintage round design with modern UV protection", 28, True, False, False),
]

CUSTOMERS = [
    ("John Doe", "john@example.com", "+1-234-567-8900", "123 Main Street", "New York", "USA"),
    ("Jane Smith", "jane@example.com", "+1-234-567-8901", "456 Oak Avenue", "Los Angeles", "USA"),
    ("Ahmed Hassan", "ahmed@example.com", "+966-50-1234567", "Riyadh Street", "Riyadh", "Saudi Arabia"),
]

PROMO_CODES = [
    # code, type, value, max_discount, min_purchase, usage_limit
    ("WELCOME10", "percentage", "10", "50", "0", 100),
    ("SUMMER20", "percentage", "20", "100", "50", 50),
    ("SAVE25", "fixed", "25", None, "100", 30),
]


def _dec(value):
    return Decimal(value) if value is not None else None


def seed_demo_data():
    """Insert demo rows; returns False without touching anything if products exist."""
    if Product.query.first() is not None:
        return False

    for name, category, price, color, description, stock, hot, new, top in PRODUCTS:
        product = Product(
            name=name, category=category, price=Decimal(price), color=color,
            description=description, stock=stock, is_hot_selling=hot,
            is_new_arrival=new, is_top_viewed=top, status="active",
        )
        db.session.add(product)
        db.session.flush()
        slug = name.lower().replace(" ", "-")
        db.session.add(ProductImage(
            product_id=product.id, image_url=f"/images/{category}/{slug}.jpg", position=0, is_main=True,
        ))

    if AdminUser.query.filter_by(username=current_app.config["ADMIN_USERNAME"]).first() is None:
        admin = AdminUser(username=current_app.config["ADMIN_USERNAME"], email="admin@alhurwear.com",
                          role="admin", status="active")
        admin.set_password(current_app.config["ADMIN_PASSWORD"])
        db.session.add(admin)

    for name, email, phone, address, city, country in CUSTOMERS:
        if Customer.query.filter_by(email=email).first() is None:
            db.session.add(Customer(name=name, email=email, phone=phone, address=address, city=city, country=country))

    for code, dtype, value, max_discount, min_purchase, limit in PROMO_CODES:
        if PromoCode.query.filter_by(code=code).first() is None:
            db.session.add(PromoCode(
                code=code, discount_type=dtype, discount_value=Decimal(value),
                max_discount=_dec(max_discount), min_purchase=_dec(min_purchase),
                usage_limit=limit, usage_count=0, status="active",
            ))

    db.session.commit()
    return True
