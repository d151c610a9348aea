"""
Discount service with transactional logic.
Handles assignment, revocation, eligibility and idempotent application
of stacked discounts.
"""
import logging
import uuid
from decimal import Decimal
from typing import List, Dict, Optional, Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import contains_eager

from app.models import Discount, UserDiscount, AuditAction, utcnow
from app.exceptions import BusinessLogicError, NotFoundError, InvalidDiscountError
from app.services import audit_service
from app.services.discount_events import (
    EVENT_ASSIGNED, EVENT_REVOKED, EVENT_APPLIED, NullDiscountListener, dispatch
)
from app.services.discount_settings import DiscountSettings, RoundingPolicy, DESC
from app.utils.number_format import parse_amount, format_amount

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
HUNDRED = Decimal('100')


class ApplicationResult:
    """Outcome of DiscountService.apply()."""

    def __init__(self, final_amount: Decimal, discount_amount: Decimal,
                 applied_discounts: List[Dict[str, Any]], transaction_id: str):
        self.final_amount = final_amount
        self.discount_amount = discount_amount
        self.applied_discounts = applied_discounts
        self.transaction_id = transaction_id

    def to_dict(self):
        return {
            'final_amount': format_amount(self.final_amount),
            'discount_amount': format_amount(self.discount_amount),
            'applied_discounts': [
                {
                    'discount_id': item['discount_id'],
                    'code': item['code'],
                    'amount': format_amount(item['amount']),
                }
                for item in self.applied_discounts
            ],
            'transaction_id': self.transaction_id,
        }

    def __eq__(self, other):
        if not isinstance(other, ApplicationResult):
            return NotImplemented
        return (
            self.final_amount == other.final_amount
            and self.discount_amount == other.discount_amount
            and self.applied_discounts == other.applied_discounts
            and self.transaction_id == other.transaction_id
        )

    def __repr__(self):
        return (
            f"<ApplicationResult(final_amount={self.final_amount}, discount_amount={self.discount_amount}, "
            f"applied={len(self.applied_discounts)}, transaction_id={self.transaction_id})>"
        )


class DiscountService:
    """
    Discount engine bound to one SQLAlchemy session.

    Every public mutation runs as a single unit of work on the session:
    it commits on success and rolls back on any error. Database errors are
    propagated unchanged; the engine never retries.
    """

    def __init__(self, session, settings: Optional[DiscountSettings] = None, listener=None):
        self.session = session
        self.settings = settings or DiscountSettings()
        self.listener = listener or NullDiscountListener()

    # =====================================================
    # ASSIGNMENT LEDGER
    # =====================================================

    def assign(self, user_id: int, discount_id: int) -> UserDiscount:
        """
        Assign a discount to a user.

        Idempotent while the binding is active. A revoked binding is
        re-activated with its usage counter reset.
        """
        now = utcnow()
        try:
            discount = self.session.get(Discount, discount_id)
            if discount is None:
                raise NotFoundError(f'Discount {discount_id} not found')

            if not discount.is_valid(now):
                raise InvalidDiscountError(discount.code, discount.invalid_reason(now))

            user_discount = self._find_binding(user_id, discount_id, lock=True)

            if user_discount is not None and not user_discount.is_revoked():
                self.session.commit()
                return user_discount

            if user_discount is None:
                user_discount = self._insert_binding(user_id, discount_id, now)
                if user_discount is None:
                    # A concurrent caller created the binding first
                    winner = self._find_binding(user_id, discount_id)
                    self.session.commit()
                    return winner
            else:
                user_discount.usage_count = 0
                user_discount.assigned_at = now
                user_discount.revoked_at = None
                self.session.flush()

            audit = audit_service.log_action(
                self.session,
                AuditAction.ASSIGNED,
                user_id=user_id,
                discount_id=discount_id,
                user_discount_id=user_discount.id
            )
            payload = {
                'user_id': user_id,
                'discount_id': discount_id,
                'user_discount_id': user_discount.id,
                'audit_id': audit.id,
            }
            self.session.commit()

        except (BusinessLogicError, NotFoundError):
            self.session.rollback()
            raise
        except Exception:
            self.session.rollback()
            logger.exception(f"Error assigning discount {discount_id} to user {user_id}")
            raise

        logger.info(f"Discount {discount_id} assigned to user {user_id}")
        self._notify(EVENT_ASSIGNED, payload)
        return user_discount

    def revoke(self, user_id: int, discount_id: int) -> UserDiscount:
        """Revoke the active binding of a discount to a user."""
        now = utcnow()
        try:
            user_discount = self._find_binding(user_id, discount_id, lock=True, active_only=True)
            if user_discount is None:
                raise NotFoundError(
                    f'No active discount {discount_id} for user {user_id}',
                    payload={'user_id': user_id, 'discount_id': discount_id}
                )

            user_discount.revoked_at = now
            self.session.flush()

            audit = audit_service.log_action(
                self.session,
                AuditAction.REVOKED,
                user_id=user_id,
                discount_id=discount_id,
                user_discount_id=user_discount.id
            )
            payload = {
                'user_id': user_id,
                'discount_id': discount_id,
                'user_discount_id': user_discount.id,
                'audit_id': audit.id,
            }
            self.session.commit()

        except NotFoundError:
            self.session.rollback()
            raise
        except Exception:
            self.session.rollback()
            logger.exception(f"Error revoking discount {discount_id} from user {user_id}")
            raise

        logger.info(f"Discount {discount_id} revoked from user {user_id}")
        self._notify(EVENT_REVOKED, payload)
        return user_discount

    # =====================================================
    # ELIGIBILITY
    # =====================================================

    def eligible_for(self, user_id: int, now=None) -> List[UserDiscount]:
        """
        Active assignments whose discount currently applies, in stacking order.

        Order: discount priority, then discount id (directions from settings).
        """
        now = now or utcnow()
        order = self.settings.stacking_order
        priority_key = Discount.priority.desc() if order.priority == DESC else Discount.priority.asc()
        id_key = Discount.id.desc() if order.id == DESC else Discount.id.asc()

        return self.session.query(UserDiscount).join(
            UserDiscount.discount
        ).options(
            contains_eager(UserDiscount.discount)
        ).filter(
            UserDiscount.user_id == user_id,
            UserDiscount.revoked_at.is_(None),
            Discount.is_active == True,
            or_(Discount.starts_at.is_(None), Discount.starts_at <= now),
            or_(Discount.expires_at.is_(None), Discount.expires_at >= now),
            or_(
                Discount.max_total_usage.is_(None),
                Discount.current_total_usage < Discount.max_total_usage
            ),
            or_(
                Discount.max_usage_per_user.is_(None),
                UserDiscount.usage_count < Discount.max_usage_per_user
            )
        ).order_by(priority_key, id_key).all()

    # =====================================================
    # APPLICATION
    # =====================================================

    def apply(self, user_id: int, original_amount, transaction_id: Optional[str] = None) -> ApplicationResult:
        """
        Apply the user's eligible discounts to an amount, at most once per transaction.

        Process:
            1. Replay a previous result if transaction_id was already applied
            2. Read eligible discounts (no locks)
            3. Per candidate: compute amount, lock rows, re-check limits, increment
            4. Round the remaining amount and derive the total discount
        """
        try:
            original_amount = parse_amount(original_amount)
        except ValueError as e:
            raise BusinessLogicError(str(e))

        if transaction_id is None:
            transaction_id = f'discount_{uuid.uuid4().hex}'

        cap = self.settings.max_percentage_cap
        rounding = self.settings.rounding
        events = []

        try:
            replayed = self._replay(user_id, transaction_id)
            if replayed is not None:
                self.session.commit()
                logger.info(f"Transaction {transaction_id} already applied for user {user_id}, replaying")
                return replayed

            eligible = self.eligible_for(user_id)

            remaining = original_amount
            total_discount = ZERO
            applied_percentage = ZERO
            applied_discounts = []

            for user_discount in eligible:
                discount = user_discount.discount

                amount = ZERO
                if discount.is_percentage:
                    percentage = min(Decimal(discount.value), cap - applied_percentage)
                    if percentage > 0:
                        amount = remaining * percentage / HUNDRED
                        applied_percentage += percentage
                else:
                    amount = min(Decimal(discount.value), remaining)

                if amount <= 0:
                    continue

                locked_user_discount, locked_discount = self._lock_pair(user_discount.id, discount.id)

                if (locked_user_discount.has_reached_usage_limit(locked_discount)
                        or locked_discount.has_reached_total_limit()):
                    logger.info(
                        f"Discount {locked_discount.code} exhausted concurrently for user {user_id}, skipping"
                    )
                else:
                    locked_user_discount.usage_count = UserDiscount.usage_count + 1
                    locked_discount.current_total_usage = Discount.current_total_usage + 1
                    self.session.flush()

                    remaining -= amount
                    total_discount += amount
                    applied_discounts.append({
                        'discount_id': locked_discount.id,
                        'code': locked_discount.code,
                        'amount': amount,
                    })

                    stack_position = len(applied_discounts)
                    audit = audit_service.log_action(
                        self.session,
                        AuditAction.APPLIED,
                        user_id=user_id,
                        discount_id=locked_discount.id,
                        user_discount_id=locked_user_discount.id,
                        original_amount=original_amount,
                        discount_amount=amount,
                        final_amount=remaining,
                        transaction_id=transaction_id,
                        details={
                            'stack_position': stack_position,
                            'code': locked_discount.code,
                            'amounts': {
                                'original': format_amount(original_amount),
                                'discount': format_amount(amount),
                                'final': format_amount(remaining),
                            },
                            'rounding': rounding.to_dict(),
                        }
                    )
                    events.append({
                        'user_id': user_id,
                        'discount_id': locked_discount.id,
                        'user_discount_id': locked_user_discount.id,
                        'audit_id': audit.id,
                        'transaction_id': transaction_id,
                        'code': locked_discount.code,
                        'amount': amount,
                        'original_amount': original_amount,
                        'final_amount': remaining,
                        'stack_position': stack_position,
                    })

                if applied_percentage >= cap:
                    break

            final_amount = rounding.apply(remaining)
            self.session.commit()

        except Exception:
            self.session.rollback()
            logger.exception(f"Error applying discounts for user {user_id} (transaction {transaction_id})")
            raise

        # Per-discount amounts stay unrounded; the total follows the rounded final amount
        discount_amount = original_amount - final_amount

        logger.info(
            f"Applied {len(applied_discounts)} discount(s) for user {user_id}: "
            f"{original_amount} -> {final_amount}, unrounded discount {total_discount} "
            f"(transaction {transaction_id})"
        )
        for payload in events:
            self._notify(EVENT_APPLIED, payload)

        return ApplicationResult(final_amount, discount_amount, applied_discounts, transaction_id)

    # =====================================================
    # HISTORY
    # =====================================================

    def history_for(self, user_id: int, limit: int = 100, offset: int = 0, action: Optional[AuditAction] = None):
        """Audit records for a user, newest first."""
        return audit_service.get_audit_logs(
            self.session,
            user_id=user_id,
            limit=limit,
            offset=offset,
            action_filter=action
        )

    # =====================================================
    # PRIVATE HELPERS
    # =====================================================

    def _find_binding(self, user_id: int, discount_id: int, lock: bool = False,
                      active_only: bool = False) -> Optional[UserDiscount]:
        query = self.session.query(UserDiscount).filter(
            UserDiscount.user_id == user_id,
            UserDiscount.discount_id == discount_id
        )
        if active_only:
            query = query.filter(UserDiscount.revoked_at.is_(None))
        if lock:
            query = query.with_for_update().populate_existing()
        return query.first()

    def _insert_binding(self, user_id: int, discount_id: int, now) -> Optional[UserDiscount]:
        """Insert a new binding inside a savepoint; None if the unique constraint fired."""
        user_discount = UserDiscount(
            user_id=user_id,
            discount_id=discount_id,
            usage_count=0,
            assigned_at=now,
            revoked_at=None
        )
        try:
            with self.session.begin_nested():
                self.session.add(user_discount)
        except IntegrityError:
            logger.info(f"Binding of discount {discount_id} to user {user_id} created concurrently")
            return None
        return user_discount

    def _lock_pair(self, user_discount_id: int, discount_id: int):
        """Lock assignment then discount FOR UPDATE, reloading their current state."""
        locked_user_discount = self.session.query(UserDiscount).filter(
            UserDiscount.id == user_discount_id
        ).with_for_update().populate_existing().one()

        locked_discount = self.session.query(Discount).filter(
            Discount.id == discount_id
        ).with_for_update().populate_existing().one()

        return locked_user_discount, locked_discount

    def _replay(self, user_id: int, transaction_id: str) -> Optional[ApplicationResult]:
        """Rebuild the result of an already applied transaction from its audit records."""
        audits = audit_service.get_applied_for_transaction(self.session, user_id, transaction_id)
        if not audits:
            return None

        applied_discounts = []
        for audit in audits:
            details = audit.details or {}
            amounts = details.get('amounts', {})
            applied_discounts.append({
                'discount_id': audit.discount_id,
                'code': details.get('code') or audit.discount.code,
                'amount': Decimal(amounts.get('discount', str(audit.discount_amount))),
            })

        last = audits[-1]
        last_details = last.details or {}
        last_amounts = last_details.get('amounts', {})
        original_amount = Decimal(last_amounts.get('original', str(last.original_amount)))
        remaining = Decimal(last_amounts.get('final', str(last.final_amount)))

        rounding = RoundingPolicy.from_dict(last_details.get('rounding'))
        final_amount = rounding.apply(remaining)

        return ApplicationResult(
            final_amount,
            original_amount - final_amount,
            applied_discounts,
            transaction_id
        )

    def _notify(self, event_kind: str, payload: Dict[str, Any]) -> None:
        dispatch(self.listener, event_kind, payload)


# =====================================================
# FLASK INTEGRATION
# =====================================================

def init_discounts(app, listener=None) -> None:
    """Resolve discount settings from app config and register the default listener."""
    from app.services.discount_events import (
        CompositeDiscountListener, LoggingDiscountListener, SignalDiscountListener
    )

    if listener is None:
        listener = CompositeDiscountListener([
            SignalDiscountListener(),
            LoggingDiscountListener(app.logger),
        ])

    settings = DiscountSettings.from_config(app.config)
    app.extensions['discounts'] = {
        'settings': settings,
        'listener': listener,
    }
    app.logger.info(f"[DISCOUNTS] Policy: {settings!r}")


def get_discount_service(session=None) -> DiscountService:
    """Build a DiscountService for the current app and database session."""
    from flask import current_app
    from app.database import get_session

    state = current_app.extensions.get('discounts')
    if state is None:
        raise RuntimeError("Discounts not initialized.")
    return DiscountService(
        session or get_session(),
        settings=state['settings'],
        listener=state['listener']
    )
