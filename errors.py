"""Errors raised by the shop core. Each one knows the HTTP status it maps to."""
from typing import Optional


class ShopError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthRequired(ShopError):
    status_code = 401
    default_message = "Login required"


class Forbidden(ShopError):
    status_code = 403
    default_message = "Admin only"


class ValidationError(ShopError):
    status_code = 400
    default_message = "Invalid request"


class NotFound(ShopError):
    status_code = 404
    default_message = "Not found"


class StoreError(ShopError):
    status_code = 500
