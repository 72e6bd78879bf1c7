from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException


class APIError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(APIError):
    status_code = 400


class AuthError(APIError):
    status_code = 401


class ForbiddenError(APIError):
    status_code = 403


class NotFoundError(APIError):
    status_code = 404


class ConflictError(APIError):
    """Duplicate unique value (email, promo code)."""
    status_code = 400


class ProductUnavailableError(APIError):
    def __init__(self, product_id):
        super().__init__(f"product unavailable: {product_id}")
        self.product_id = product_id


class InsufficientStockError(APIError):
    def __init__(self, product_id):
        super().__init__(f"insufficient stock for product {product_id}")
        self.product_id = product_id


class PromoError(APIError):
    pass


class InvalidTransitionError(APIError):
    def __init__(self, current, target):
        super().__init__(f"invalid status transition: {current} -> {target}")


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def api_error(e):
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({"error": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def server_error(e):
        current_app.logger.exception(f"Unhandled error: {e}")
        return jsonify({"error": "Something broke on our end"}), 500
