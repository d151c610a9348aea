"""
Audit logging service for discount events.
Audit rows are append-only; the caller owns the surrounding transaction.
"""
from app.models.discount_audit import DiscountAudit, AuditAction
from app.models.discount import utcnow
import logging

logger = logging.getLogger(__name__)


def log_action(
    session,
    action: AuditAction,
    user_id: int,
    discount_id: int,
    user_discount_id: int = None,
    original_amount=None,
    discount_amount=None,
    final_amount=None,
    transaction_id: str = None,
    details: dict = None
):
    """
    Add an audit record for a discount action to the session.

    Args:
        session: Database session
        action: AuditAction enum value
        user_id: User the action concerns
        discount_id: Discount the action concerns
        user_discount_id: Assignment row, when there is one
        original_amount / discount_amount / final_amount: Amounts for APPLIED
        transaction_id: Idempotency key for APPLIED records
        details: JSON-serializable metadata

    Returns:
        The pending DiscountAudit (flushed, so its id is set)
    """
    audit_entry = DiscountAudit(
        user_id=user_id,
        discount_id=discount_id,
        user_discount_id=user_discount_id,
        action=action,
        original_amount=original_amount,
        discount_amount=discount_amount,
        final_amount=final_amount,
        transaction_id=transaction_id,
        details=details or {},
        created_at=utcnow()
    )

    session.add(audit_entry)
    session.flush()
    # Note: Caller is responsible for committing the session

    logger.debug(f"Audit log added: {action.value} discount {discount_id} for user {user_id}")
    return audit_entry


def get_applied_for_transaction(session, user_id: int, transaction_id: str):
    """APPLIED records of a transaction for a user, in stacking order."""
    return session.query(DiscountAudit).filter(
        DiscountAudit.transaction_id == transaction_id,
        DiscountAudit.action == AuditAction.APPLIED,
        DiscountAudit.user_id == user_id
    ).order_by(DiscountAudit.id.asc()).all()


def get_audit_logs(
    session,
    user_id: int,
    limit: int = 100,
    offset: int = 0,
    action_filter: AuditAction = None,
    discount_id_filter: int = None
):
    """
    Retrieve audit logs for a user with optional filters.

    Args:
        session: Database session
        user_id: User ID
        limit: Max number of results
        offset: Pagination offset
        action_filter: Filter by specific action
        discount_id_filter: Filter by discount

    Returns:
        List of DiscountAudit objects, newest first
    """
    query = session.query(DiscountAudit).filter(
        DiscountAudit.user_id == user_id
    )

    if action_filter:
        query = query.filter(DiscountAudit.action == action_filter)

    if discount_id_filter:
        query = query.filter(DiscountAudit.discount_id == discount_id_filter)

    query = query.order_by(DiscountAudit.created_at.desc(), DiscountAudit.id.desc())
    query = query.limit(limit).offset(offset)

    return query.all()
