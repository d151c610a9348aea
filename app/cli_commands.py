"""
Flask CLI commands for discount management.

Commands:
- flask init-db: Create the database schema
- flask create-discount: Add a discount to the catalog
- flask assign-discount / revoke-discount: Manage a user's discounts
- flask apply-discount: Apply a user's discounts to an amount
"""

import click
from app.database import create_schema, get_session
from app.exceptions import DiscountError
from app.models import Discount, DiscountType
from app.services.discount_service import get_discount_service
from app.utils.number_format import parse_amount


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all discount tables."""
        create_schema()
        click.echo(click.style('Schema created.', fg='green'))

    @app.cli.command('create-discount')
    @click.option('--code', required=True, help='Unique discount code')
    @click.option('--name', required=True, help='Display name')
    @click.option('--type', 'discount_type', type=click.Choice([t.value for t in DiscountType]),
                  default=DiscountType.PERCENTAGE.value, show_default=True)
    @click.option('--value', required=True, help='Percentage (0-100) or fixed amount')
    @click.option('--priority', type=int, default=0, show_default=True, help='Lower is applied first')
    @click.option('--starts-at', type=click.DateTime(), default=None)
    @click.option('--expires-at', type=click.DateTime(), default=None)
    @click.option('--max-usage-per-user', type=int, default=None)
    @click.option('--max-total-usage', type=int, default=None)
    @click.option('--inactive', is_flag=True, help='Create the discount disabled')
    def create_discount(code, name, discount_type, value, priority, starts_at, expires_at,
                        max_usage_per_user, max_total_usage, inactive):
        """Create a discount catalog entry."""
        try:
            value = parse_amount(value)
        except ValueError as e:
            click.echo(click.style(f'Invalid value: {e}', fg='red'))
            return

        session = get_session()
        if session.query(Discount).filter_by(code=code).first():
            click.echo(click.style(f'A discount with code {code} already exists.', fg='red'))
            return

        try:
            discount = Discount(
                code=code,
                name=name,
                type=DiscountType(discount_type),
                value=value,
                priority=priority,
                is_active=not inactive,
                starts_at=starts_at,
                expires_at=expires_at,
                max_usage_per_user=max_usage_per_user,
                max_total_usage=max_total_usage,
                current_total_usage=0
            )
            session.add(discount)
            session.commit()
            click.echo(click.style(f'Discount {code} created (ID: {discount.id}).', fg='green'))
        except Exception as e:
            session.rollback()
            click.echo(click.style(f'Error creating discount: {str(e)}', fg='red'))

    @app.cli.command('assign-discount')
    @click.argument('user_id', type=int)
    @click.argument('discount_id', type=int)
    def assign_discount(user_id, discount_id):
        """Assign DISCOUNT_ID to USER_ID."""
        try:
            user_discount = get_discount_service().assign(user_id, discount_id)
        except DiscountError as e:
            click.echo(click.style(e.message, fg='red'))
            return
        click.echo(click.style(f'Assigned (assignment ID: {user_discount.id}).', fg='green'))

    @app.cli.command('revoke-discount')
    @click.argument('user_id', type=int)
    @click.argument('discount_id', type=int)
    def revoke_discount(user_id, discount_id):
        """Revoke DISCOUNT_ID from USER_ID."""
        try:
            user_discount = get_discount_service().revoke(user_id, discount_id)
        except DiscountError as e:
            click.echo(click.style(e.message, fg='red'))
            return
        click.echo(click.style(f'Revoked at {user_discount.revoked_at:%Y-%m-%d %H:%M:%S}.', fg='green'))

    @app.cli.command('apply-discount')
    @click.argument('user_id', type=int)
    @click.argument('amount')
    @click.option('--transaction-id', default=None, help='Idempotency key')
    def apply_discount(user_id, amount, transaction_id):
        """Apply USER_ID's eligible discounts to AMOUNT."""
        try:
            result = get_discount_service().apply(user_id, amount, transaction_id)
        except DiscountError as e:
            click.echo(click.style(e.message, fg='red'))
            return

        click.echo(f'Transaction: {result.transaction_id}')
        for position, item in enumerate(result.applied_discounts, start=1):
            click.echo(f'  {position}. {item["code"]}: -{item["amount"]}')
        click.echo(f'Discount: {result.discount_amount}')
        click.echo(click.style(f'Final: {result.final_amount}', fg='green', bold=True))
