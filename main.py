import atexit
import logging

from extensions import db
from logging_setup import setup_logger
from remotehealth.app_factory import create_app


logger = logging.getLogger("main")


def bootstrap():
    """Connect, seed the default users, sweep broken appointments."""
    app = create_app()

    with app.app_context():
        from remotehealth.services.container import get_services
        from remotehealth.services.seed import ensure_defaults

        if app.config.get("SEED_DEFAULTS"):
            created = ensure_defaults()
            if created:
                logger.info(f"[bootstrap] Seeded users: {', '.join(created)}")
        get_services().appointments.clean_invalid()

        engine = db.engine
    # Close pooled connections on process exit
    atexit.register(engine.dispose)
    return app


if __name__ == "__main__":
    """
    Single entrypoint: the JSON API behind the admin, doctor and patient dashboards.
    """
    setup_logger()
    app = bootstrap()
    app.run(host="0.0.0.0", port=5001, debug=app.config.get("DEBUG", False))
