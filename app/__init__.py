"""Flask application factory."""
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from app.database import init_db
import traceback


def create_app(config_object='config.Config', discount_listener=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Prometheus metrics instrumentation (also subscribes discount counters)
    from app.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Initialize database
    init_db(app)

    # Discount policy and event listener
    from app.services.discount_service import init_discounts
    init_discounts(app, listener=discount_listener)

    # Error Handlers
    from app.exceptions import DiscountError

    @app.errorhandler(DiscountError)
    def handle_discount_error(error):
        """Handle custom application exceptions."""
        app.logger.warning(f"DiscountError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'status': 'error', 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from app.blueprints.discounts import discounts_bp
    from app.blueprints.metrics import metrics_bp

    app.register_blueprint(discounts_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from app.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
