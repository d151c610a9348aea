"""Custom exceptions for the user discounts application."""

class DiscountError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class BusinessLogicError(DiscountError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class NotFoundError(DiscountError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class InvalidDiscountError(BusinessLogicError):
    """Raised when a discount cannot be assigned (inactive, outside its window or exhausted)."""
    def __init__(self, discount_code, reason):
        message = f"Discount {discount_code} is not valid: {reason}"
        super().__init__(message, status_code=422, payload={'code': discount_code, 'reason': reason})
        self.reason = reason
