import os
from decimal import Decimal
from dotenv import load_dotenv
load_dotenv()  # fine locally; harmless in production

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///alhurwear.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    TOKEN_TTL_DAYS = int(os.getenv("TOKEN_TTL_DAYS", "7"))
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
    STRIPE_CURRENCY = os.getenv("STRIPE_CURRENCY", "usd")
    EMAIL_USER = os.getenv("EMAIL_USER")
    EMAIL_PASS = os.getenv("EMAIL_PASS")
    SHOP_EMAIL = os.getenv("SHOP_EMAIL", "orders@alhurwear.com")
    SHOP_URL = os.getenv("SHOP_URL", "http://localhost:3000")
    ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
    TAX_RATE = Decimal(os.getenv("TAX_RATE", "0.10"))
    FREE_SHIPPING_THRESHOLD = Decimal(os.getenv("FREE_SHIPPING_THRESHOLD", "100"))
    SHIPPING_FEE = Decimal(os.getenv("SHIPPING_FEE", "10"))
    MAX_PAGE_SIZE = 100
    DEFAULT_PAGE_SIZE = 20

class DevConfig(BaseConfig):
    DEBUG = True

class TestConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    STRIPE_SECRET_KEY = None
    STRIPE_WEBHOOK_SECRET = None
    EMAIL_USER = None
    EMAIL_PASS = None
