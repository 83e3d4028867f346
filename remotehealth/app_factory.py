import logging
import os

from flask import Flask, jsonify
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import OperationalError

from extensions import db, migrate
from config import DevConfig, ProdConfig
from remotehealth.errors import ClinicError, Fatal, from_pydantic


logger = logging.getLogger("app_factory")


def create_app(overrides: dict | None = None, config_object=None, redis_client=None) -> Flask:
    """Initialize Flask app with DB, services and blueprints."""
    app = Flask(__name__)

    if config_object is not None:
        app.config.from_object(config_object)
    elif os.getenv("FLASK_ENV") == "production":
        app.config.from_object(ProdConfig)
    else:
        app.config.from_object(DevConfig)
    if overrides:
        app.config.update(overrides)

    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so SQLAlchemy registers tables.
    with app.app_context():
        import remotehealth.models  # noqa: F401
        # Ensure tables exist (useful for SQLite/dev). For production, prefer migrations.
        try:
            db.create_all()
        except OperationalError as e:
            logger.exception(f"[create_app] Database unavailable: {e}")
            raise Fatal("Database unavailable") from e

        from remotehealth.services.container import build_services
        app.extensions["clinic"] = build_services(app.config, redis_client=redis_client)

        # Register HTTP blueprints
        from remotehealth.routes.auth import auth_bp
        from remotehealth.routes.appointments import appointments_bp
        from remotehealth.routes.patients import patients_bp
        from remotehealth.routes.emergencies import emergencies_bp
        from remotehealth.routes.admin import admin_bp

        app.register_blueprint(auth_bp)
        app.register_blueprint(appointments_bp)
        app.register_blueprint(patients_bp)
        app.register_blueprint(emergencies_bp)
        app.register_blueprint(admin_bp)

    _register_error_handlers(app)
    return app


def _register_error_handlers(app: Flask):
    @app.errorhandler(ClinicError)
    def handle_clinic_error(err: ClinicError):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(PydanticValidationError)
    def handle_validation_error(err: PydanticValidationError):
        wrapped = from_pydantic(err)
        return jsonify(wrapped.to_dict()), wrapped.status_code
