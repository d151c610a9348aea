"""UserDiscount model - binds one user to one discount."""
from sqlalchemy import (
    Column, BigInteger, Integer, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class UserDiscount(Base):
    """
    Assignment of a discount to a user.

    A single row exists per (user_id, discount_id); revocation only sets
    revoked_at so history is kept and re-assignment re-uses the row.
    """

    __tablename__ = 'user_discounts'
    __table_args__ = (
        UniqueConstraint('user_id', 'discount_id', name='uq_user_discounts_user_discount'),
        CheckConstraint('usage_count >= 0', name='ck_user_discounts_usage_non_negative'),
    )

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, nullable=False, index=True)
    discount_id = Column(BigInteger, ForeignKey('discounts.id', ondelete='CASCADE'), nullable=False, index=True)
    usage_count = Column(Integer, nullable=False, default=0)
    assigned_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    discount = relationship('Discount', back_populates='user_discounts')
    audits = relationship('DiscountAudit', back_populates='user_discount', passive_deletes=True)

    def is_revoked(self):
        return self.revoked_at is not None

    def has_reached_usage_limit(self, discount=None):
        """Check if the user has used this discount as often as allowed."""
        discount = discount or self.discount
        if discount.max_usage_per_user is None:
            return False
        return (self.usage_count or 0) >= discount.max_usage_per_user

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'discount_id': self.discount_id,
            'code': self.discount.code if self.discount else None,
            'usage_count': self.usage_count,
            'assigned_at': self.assigned_at.isoformat() if self.assigned_at else None,
            'revoked_at': self.revoked_at.isoformat() if self.revoked_at else None,
        }

    def __repr__(self):
        return (
            f"<UserDiscount(id={self.id}, user_id={self.user_id}, discount_id={self.discount_id}, "
            f"usage_count={self.usage_count}, revoked={self.is_revoked()})>"
        )
