import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from remotehealth.models import SystemLog
from remotehealth.services.db_context import db_context


logger = logging.getLogger("audit")


def log_action(message: str) -> None:
    """Persist an administrative action in the logs table. Never raises."""
    logger.info(f"[log_action] {message}")
    try:
        with db_context():
            db.session.add(SystemLog(message=f"[LOG] {message}", created_at=datetime.utcnow()))
            db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception(f"[log_action] Could not persist audit line: {e}")


def fetch_logs(limit: int = 200) -> list[str]:
    """Newest first, formatted for display."""
    try:
        with db_context():
            rows = (
                SystemLog.query
                .order_by(SystemLog.created_at.desc(), SystemLog.id.desc())
                .limit(limit)
                .all()
            )
            return [f"{r.created_at:%Y-%m-%d %H:%M:%S} - {r.message}" for r in rows]
    except Exception as e:
        logger.exception(f"[fetch_logs] Failed: {e}")
        return []
