"""
Domain errors raised by services and translated to HTTP responses in main.py
"""


class ShopError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ShopError):
    status_code = 400


class InsufficientStockError(ValidationError):
    pass


class ConflictError(ValidationError):
    """Duplicate record (email, review, wishlist entry, category name)"""


class AuthError(ShopError):
    status_code = 401


class ForbiddenError(ShopError):
    status_code = 403


class NotFoundError(ShopError):
    status_code = 404


class PaymentProviderError(ShopError):
    status_code = 502


class ServiceUnavailableError(ShopError):
    status_code = 503
