from contextlib import contextmanager
from flask import has_app_context

# Built on first use when a service is called outside any app context
flask_app = None


def _default_app():
    global flask_app
    if flask_app is None:
        from remotehealth.app_factory import create_app
        flask_app = create_app()
    return flask_app


@contextmanager
def db_context():
    """Provide an app context around a series of DB operations."""
    if has_app_context():
        yield
        return
    with _default_app().app_context():
        yield
