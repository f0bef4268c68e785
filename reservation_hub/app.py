"""Application factory for the church Reservation Hub."""

from __future__ import annotations

import logging

from flask import Flask, jsonify

from . import services
from .config import BaseConfig, get_config
from .controllers.serializers import error_response
from .data_access.db import init_app as init_db_app
from .engine.errors import (
    BookingConflict,
    CapacityExceeded,
    HasActiveBookings,
    NotFound,
    ValidationError,
)


def create_app(config_object: type[BaseConfig] | None = None) -> Flask:
    """Create and configure the Flask application instance."""

    app = Flask(__name__)

    config_cls = config_object or get_config()
    app.config.from_object(config_cls)
    configure_logging(app)

    init_db_app(app)
    services.init_app(app)

    register_blueprints(app)
    register_error_handlers(app)

    @app.route("/")
    def index():
        """Describe the service and its top-level endpoints."""

        return jsonify(
            {
                "service": "reservation-hub",
                "endpoints": ["/resources/", "/bookings/", "/maintenance/", "/reports/summary/<org_id>"],
            }
        )

    return app


def configure_logging(app: Flask) -> None:
    """Apply LOG_LEVEL to the app logger and the engine's module loggers."""

    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    app.logger.setLevel(level)
    logging.getLogger("reservation_hub").setLevel(level)


def register_blueprints(app: Flask) -> None:
    """Import and register application blueprints."""

    from .controllers import (  # pylint: disable=import-outside-toplevel
        bookings,
        maintenance,
        reports,
        resources,
    )

    app.register_blueprint(resources.bp)
    app.register_blueprint(bookings.bp)
    app.register_blueprint(maintenance.bp)
    app.register_blueprint(reports.bp)


def register_error_handlers(app: Flask) -> None:
    """Translate engine errors and HTTP errors into JSON bodies."""

    @app.errorhandler(NotFound)
    def engine_not_found(error: NotFound):
        return error_response(str(error), 404)

    @app.errorhandler(ValidationError)
    def validation_failed(error: ValidationError):
        return error_response(str(error), 400)

    @app.errorhandler(CapacityExceeded)
    def capacity_exceeded(error: CapacityExceeded):
        return error_response(str(error), 409)

    @app.errorhandler(HasActiveBookings)
    def has_active_bookings(error: HasActiveBookings):
        return error_response(str(error), 409, booking_ids=error.booking_ids)

    @app.errorhandler(BookingConflict)
    def booking_conflict(error: BookingConflict):
        return error_response(str(error), 409, conflicting_ids=error.conflicting_ids)

    @app.errorhandler(404)
    def not_found(error: Exception):
        return error_response("We could not locate the resource you requested.", 404)

    @app.errorhandler(405)
    def method_not_allowed(error: Exception):
        return error_response("Method not allowed.", 405)

    @app.errorhandler(500)
    def server_error(error: Exception):
        app.logger.error("Unhandled error: %s", error)
        return error_response("An unexpected error occurred. The team has been notified.", 500)
