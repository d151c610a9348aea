"""
Discount audit model - append-only trail of discount events.
"""
from sqlalchemy import (
    Column, BigInteger, Integer, String, Numeric, DateTime, ForeignKey, Index, JSON,
    Enum as SQLEnum
)
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.discount import utcnow
import enum


class AuditAction(str, enum.Enum):
    """Enumeration of auditable discount actions."""
    ASSIGNED = 'assigned'
    REVOKED = 'revoked'
    APPLIED = 'applied'
    REJECTED = 'rejected'


class DiscountAudit(Base):
    """
    Immutable record of an assignment, revocation or application.
    Rows tagged with a transaction_id reconstruct a prior application.
    """
    __tablename__ = 'discount_audits'
    __table_args__ = (
        Index('ix_discount_audits_user_created', 'user_id', 'created_at'),
        Index('ix_discount_audits_discount_created', 'discount_id', 'created_at'),
    )

    id = Column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, nullable=False)
    discount_id = Column(BigInteger, ForeignKey('discounts.id', ondelete='CASCADE'), nullable=False)
    user_discount_id = Column(BigInteger, ForeignKey('user_discounts.id', ondelete='SET NULL'))
    action = Column(
        SQLEnum(AuditAction, name='discount_audit_action', values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    original_amount = Column(Numeric(12, 2))
    discount_amount = Column(Numeric(12, 2))
    final_amount = Column(Numeric(12, 2))
    # 'metadata' is reserved on declarative classes
    details = Column('metadata', JSON, nullable=False, default=dict)
    transaction_id = Column(String(64), index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    discount = relationship('Discount')
    user_discount = relationship('UserDiscount', back_populates='audits')

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'discount_id': self.discount_id,
            'user_discount_id': self.user_discount_id,
            'action': self.action.value,
            'original_amount': str(self.original_amount) if self.original_amount is not None else None,
            'discount_amount': str(self.discount_amount) if self.discount_amount is not None else None,
            'final_amount': str(self.final_amount) if self.final_amount is not None else None,
            'metadata': self.details or {},
            'transaction_id': self.transaction_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<DiscountAudit {self.action.value} discount {self.discount_id} for user {self.user_id} at {self.created_at}>"
