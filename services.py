import secrets, string, smtplib
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import stripe
from flask import current_app
from errors import ValidationError

CENT = Decimal("0.01")

def init_stripe():
    stripe.api_key = current_app.config["STRIPE_SECRET_KEY"]
    return stripe

def send_email(subject, body, to_email=None):
    auth_user = current_app.config.get('EMAIL_USER')
    auth_password = current_app.config.get('EMAIL_PASS')
    if not auth_user or not auth_password:
        current_app.logger.info(f'E-mail not configured; skipped "{subject}"')
        return False

    smtp_server, smtp_port = 'smtp.office365.com', 587
    sender_email = current_app.config['SHOP_EMAIL']
    receiver_email = to_email or sender_email

    msg = MIMEMultipart()
    msg['From'], msg['To'], msg['Subject'] = sender_email, receiver_email, subject
    msg.attach(MIMEText(body, 'plain'))

    try:
        server = smtplib.SMTP(smtp_server, smtp_port)
        server.starttls()
        server.login(auth_user, auth_password)
        server.sendmail(sender_email, receiver_email, msg.as_string())
        server.quit()
        return True
    except Exception as e:
        current_app.logger.exception(f'Failed to send email: {e}')
        return False

def generate_order_number(length=5):
    alphabet = string.ascii_uppercase + string.digits
    suffix = ''.join(secrets.choice(alphabet) for _ in range(length))
    return f"ORD-{datetime.utcnow():%Y%m%d%H%M%S}-{suffix}"

def to_money(value) -> Decimal:
    """Parse ``value`` into a Decimal rounded half-up to cents."""
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"not a money amount: {value!r}")

def money_to_cents(value): return int((to_money(value) * 100).to_integral_value())

# ---------- Request payload helpers ----------

# SQL INTEGER columns are 32-bit on some backends.
MAX_INT = 2**31 - 1

def json_body(request):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data

def parse_str(value, field, required=False, strip=True):
    """Text from a JSON payload; blank values come back as None."""
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    text = value.strip() if strip else value
    if not text:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    return text

def parse_int(value, field, minimum=None, maximum=MAX_INT, default=None):
    if value is None or value == "":
        if default is not None:
            return default
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float) and value != number:
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field} must be at most {maximum}")
    return number

def parse_money(value, field, required=True):
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = to_money(value)
    except ValueError:
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} must not be negative")
    return amount
