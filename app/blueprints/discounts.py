"""
Discounts JSON API.
Assign, revoke, list and apply a user's discounts.
"""
from flask import Blueprint, request, jsonify
from app.exceptions import BusinessLogicError
from app.models import AuditAction
from app.services.discount_service import get_discount_service
from app.utils.number_format import parse_amount


discounts_bp = Blueprint('discounts', __name__, url_prefix='/api/discounts')

MAX_PAGE_SIZE = 500


@discounts_bp.route('/users/<int:user_id>', methods=['GET'])
def eligible(user_id):
    """List the discounts that currently apply to a user, in stacking order."""
    service = get_discount_service()
    user_discounts = service.eligible_for(user_id)
    return jsonify({
        'status': 'ok',
        'user_id': user_id,
        'discounts': [
            dict(ud.to_dict(), discount=ud.discount.to_dict())
            for ud in user_discounts
        ]
    })


@discounts_bp.route('/users/<int:user_id>/<int:discount_id>', methods=['POST'])
def assign(user_id, discount_id):
    """Assign a discount to a user (idempotent while active)."""
    service = get_discount_service()
    user_discount = service.assign(user_id, discount_id)
    return jsonify({'status': 'ok', 'assignment': user_discount.to_dict()}), 201


@discounts_bp.route('/users/<int:user_id>/<int:discount_id>', methods=['DELETE'])
def revoke(user_id, discount_id):
    """Revoke a user's active discount."""
    service = get_discount_service()
    user_discount = service.revoke(user_id, discount_id)
    return jsonify({'status': 'ok', 'assignment': user_discount.to_dict()})


@discounts_bp.route('/users/<int:user_id>/apply', methods=['POST'])
def apply(user_id):
    """
    Apply eligible discounts to an amount.

    Body: {"amount": "100.00", "transaction_id": "optional-idempotency-key"}
    """
    data = request.get_json(silent=True) or {}

    try:
        amount = parse_amount(data.get('amount'))
    except ValueError as e:
        raise BusinessLogicError(str(e))

    transaction_id = data.get('transaction_id')
    if transaction_id is not None:
        transaction_id = str(transaction_id).strip()
        if not transaction_id or len(transaction_id) > 64:
            raise BusinessLogicError('transaction_id must be 1-64 characters')

    service = get_discount_service()
    result = service.apply(user_id, amount, transaction_id)
    return jsonify(dict(result.to_dict(), status='ok', original_amount=str(amount)))


@discounts_bp.route('/users/<int:user_id>/audits', methods=['GET'])
def audits(user_id):
    """Discount audit trail for a user, newest first."""
    limit = min(request.args.get('limit', 100, type=int), MAX_PAGE_SIZE)
    offset = max(request.args.get('offset', 0, type=int), 0)

    action = None
    action_param = request.args.get('action')
    if action_param:
        try:
            action = AuditAction(action_param.lower())
        except ValueError:
            raise BusinessLogicError(f'Unknown audit action: {action_param}')

    service = get_discount_service()
    records = service.history_for(user_id, limit=limit, offset=offset, action=action)
    return jsonify({
        'status': 'ok',
        'user_id': user_id,
        'audits': [record.to_dict() for record in records]
    })
