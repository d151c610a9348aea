"""Discount model (catalog entry)."""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, BigInteger, Integer, String, Text, Numeric, Boolean, DateTime, Enum,
    CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


def utcnow():
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DiscountType(str, enum.Enum):
    """How a discount's value is interpreted."""
    PERCENTAGE = 'percentage'
    FIXED = 'fixed'


class Discount(Base):
    """
    Discount catalog entry.

    `value` is a percentage (0-100 by convention) for PERCENTAGE discounts
    and a monetary amount for FIXED ones.
    """

    __tablename__ = 'discounts'
    __table_args__ = (
        CheckConstraint('value >= 0', name='ck_discounts_value_non_negative'),
        CheckConstraint('current_total_usage >= 0', name='ck_discounts_usage_non_negative'),
        CheckConstraint(
            'max_total_usage IS NULL OR current_total_usage <= max_total_usage',
            name='ck_discounts_total_usage_within_cap'
        ),
        Index('ix_discounts_active_expires', 'is_active', 'expires_at'),
    )

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    code = Column(String(64), nullable=False, unique=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    type = Column(
        Enum(DiscountType, name='discount_type', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=DiscountType.PERCENTAGE
    )
    value = Column(Numeric(12, 4), nullable=False)
    priority = Column(Integer, nullable=False, default=0, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    starts_at = Column(DateTime)
    expires_at = Column(DateTime)
    max_usage_per_user = Column(Integer)  # NULL = unlimited
    max_total_usage = Column(Integer)  # NULL = unlimited
    current_total_usage = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    user_discounts = relationship('UserDiscount', back_populates='discount')

    def is_valid(self, now=None):
        """Active, inside [starts_at, expires_at] and below the total usage cap."""
        if not self.is_active:
            return False

        now = now or utcnow()

        if self.starts_at is not None and now < self.starts_at:
            return False

        if self.expires_at is not None and now > self.expires_at:
            return False

        return not self.has_reached_total_limit()

    def invalid_reason(self, now=None):
        """Human readable reason why is_valid() is False, or None."""
        now = now or utcnow()
        if not self.is_active:
            return 'inactive'
        if self.starts_at is not None and now < self.starts_at:
            return 'not started'
        if self.expires_at is not None and now > self.expires_at:
            return 'expired'
        if self.has_reached_total_limit():
            return 'total usage limit reached'
        return None

    def has_reached_total_limit(self):
        if self.max_total_usage is None:
            return False
        return (self.current_total_usage or 0) >= self.max_total_usage

    @property
    def is_percentage(self):
        return self.type == DiscountType.PERCENTAGE

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'type': self.type.value,
            'value': str(self.value),
            'priority': self.priority,
            'is_active': self.is_active,
            'starts_at': self.starts_at.isoformat() if self.starts_at else None,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'max_usage_per_user': self.max_usage_per_user,
            'max_total_usage': self.max_total_usage,
            'current_total_usage': self.current_total_usage,
        }

    def __repr__(self):
        return f"<Discount(id={self.id}, code='{self.code}', type={self.type.value}, value={self.value})>"
