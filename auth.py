# auth.py
from datetime import datetime, timedelta, timezone
from functools import wraps

from flask import Blueprint, request, jsonify, current_app, g
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError

from errors import AuthError, ForbiddenError, ValidationError, ConflictError
from models import db, AdminUser, Customer
from services import json_body, parse_str

authbp = Blueprint("auth", __name__, url_prefix="/auth")

ALGORITHM = "HS256"


def create_token(subject_id, role):
    ttl = timedelta(days=current_app.config["TOKEN_TTL_DAYS"])
    claims = {"sub": str(subject_id), "role": role, "exp": datetime.now(timezone.utc) + ttl}
    return jwt.encode(claims, current_app.config["SECRET_KEY"], algorithm=ALGORITHM)


def _bearer_token():
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def load_principal():
    """Resolve the bearer token into ``(role, record)`` or ``None``.

    Raises AuthError when a token is present but unusable.
    """
    token = _bearer_token()
    if token is None:
        return None
    try:
        claims = jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=[ALGORITHM])
        subject_id = int(claims.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise AuthError("Could not validate credentials")

    role = claims.get("role")
    if role == "admin":
        record = db.session.get(AdminUser, subject_id)
        if record is None or record.status != "active":
            raise AuthError("Could not validate credentials")
    elif role == "customer":
        record = db.session.get(Customer, subject_id)
        if record is None:
            raise AuthError("Could not validate credentials")
    else:
        raise AuthError("Could not validate credentials")
    return role, record


def optional_principal():
    if "principal" not in g:
        g.principal = load_principal()
    return g.principal


def require_role(role):
    """Return the signed-in record for ``role``; 401 without a token, 403 for another role."""
    principal = optional_principal()
    if principal is None:
        raise AuthError("Authentication required")
    if principal[0] != role:
        raise ForbiddenError("Access denied")
    return principal[1]


def _role_required(role):
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            require_role(role)
            return view(*args, **kwargs)
        return wrapped
    return decorator


admin_required = _role_required("admin")
customer_required = _role_required("customer")


def current_customer():
    principal = optional_principal()
    return principal[1] if principal and principal[0] == "customer" else None


def is_admin():
    principal = optional_principal()
    return bool(principal) and principal[0] == "admin"


def _credentials(data, name_field):
    ident = parse_str(data.get(name_field), name_field)
    password = parse_str(data.get("password"), "password", strip=False)
    if not ident or not password:
        raise ValidationError(f"{name_field.capitalize()} and password required")
    return ident, password


@authbp.post("/login")
def admin_login():
    username, password = _credentials(json_body(request), "username")
    admin = AdminUser.query.filter_by(username=username).first()
    if not admin or admin.status != "active" or not admin.check_password(password):
        current_app.logger.warning(f"Failed admin login for {username!r}")
        raise AuthError("Invalid credentials")
    return jsonify({"message": "Login successful", "token": create_token(admin.id, "admin"), "user": admin.to_dict()})


@authbp.post("/register")
def register():
    data = json_body(request)
    name = parse_str(data.get("name"), "name")
    email = (parse_str(data.get("email"), "email") or "").lower()
    password = parse_str(data.get("password"), "password", strip=False)
    if not name or not email or not password:
        raise ValidationError("Missing required fields")
    if "@" not in email:
        raise ValidationError("Invalid email address")
    if Customer.query.filter_by(email=email).first():
        raise ConflictError("Email already registered")

    customer = Customer(name=name, email=email, phone=parse_str(data.get("phone"), "phone"))
    customer.set_password(password)
    db.session.add(customer)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already registered")
    return jsonify({
        "message": "User registered successfully",
        "token": create_token(customer.id, "customer"),
        "user": customer.to_dict(),
    }), 201


@authbp.post("/customer-login")
def customer_login():
    email, password = _credentials(json_body(request), "email")
    customer = Customer.query.filter_by(email=email.lower()).first()
    if not customer or not customer.check_password(password):
        raise AuthError("Invalid credentials")
    return jsonify({"message": "Login successful", "token": create_token(customer.id, "customer"), "user": customer.to_dict()})


@authbp.get("/me")
def me():
    principal = optional_principal()
    if principal is None:
        raise AuthError("Authentication required")
    role, record = principal
    return jsonify({"role": role, "user": record.to_dict()})
