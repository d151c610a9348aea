"""Models package - exports all SQLAlchemy models."""
from app.models.discount import Discount, DiscountType, utcnow
from app.models.user_discount import UserDiscount
from app.models.discount_audit import DiscountAudit, AuditAction

__all__ = [
    'Discount', 'DiscountType', 'utcnow',
    'UserDiscount',
    'DiscountAudit', 'AuditAction',
]
