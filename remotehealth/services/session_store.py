import json
import logging
import secrets
from dataclasses import dataclass, asdict, field
from datetime import datetime
from typing import Dict, List

import redis

from remotehealth.errors import TransientIOError


logger = logging.getLogger("sessions")


# ✅ Data model for a logged-in user
@dataclass
class SessionContext:
    user_id: str
    role: str            # admin | doctor | patient
    name: str
    email: str | None = None
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())


def _key(token: str) -> str:
    return f"session:{token}"


def connect(config) -> redis.Redis:
    # ✅ Redis connection setup
    return redis.Redis(
        host=config["REDIS_HOST"],
        port=config["REDIS_PORT"],
        db=config["REDIS_DB"],
        decode_responses=True,
    )


class SessionStore:
    """Login sessions keyed by an opaque token, expiring after `ttl_sec`."""

    def __init__(self, client, ttl_sec: int = 8 * 3600):
        self.r = client
        self.ttl_sec = ttl_sec

    def open(self, user, role: str) -> str:
        token = secrets.token_urlsafe(32)
        ctx = SessionContext(user_id=user.id, role=role, name=user.name, email=user.email)
        try:
            self.r.setex(_key(token), self.ttl_sec, json.dumps(asdict(ctx)))
        except redis.RedisError as e:
            logger.exception(f"[open] Could not store session for {user.id}: {e}")
            raise TransientIOError("Session store unavailable") from e
        logger.info(f"[Redis] Saved session for {role} {user.id}")
        return token

    def load(self, token: str) -> SessionContext | None:
        if not token:
            return None
        try:
            raw = self.r.get(_key(token))
        except redis.RedisError as e:
            logger.exception(f"[load] Session lookup failed: {e}")
            raise TransientIOError("Session store unavailable") from e
        if not raw:
            return None
        try:
            return SessionContext(**json.loads(raw))
        except (TypeError, ValueError) as e:
            logger.warning(f"[Redis] ⚠️ Corrupted session {token[:8]}…: {e}")
            return None

    def close(self, token: str):
        try:
            self.r.delete(_key(token))
        except redis.RedisError as e:
            logger.exception(f"[close] Could not delete session: {e}")
            raise TransientIOError("Session store unavailable") from e
        logger.info("[Redis] Cleared session")

    def list_active(self) -> List[Dict]:
        """Active sessions for the admin dashboard, newest first."""
        sessions: List[Dict] = []
        try:
            for key in self.r.scan_iter("session:*"):
                raw = self.r.get(key)
                if not raw:
                    continue
                try:
                    ctx = SessionContext(**json.loads(raw))
                except (TypeError, ValueError):
                    continue
                sessions.append(
                    {
                        "user_id": ctx.user_id,
                        "role": ctx.role,
                        "name": ctx.name,
                        "created_at": ctx.created_at,
                    }
                )
        except redis.RedisError as e:
            # For dashboard display, it's fine to show no sessions.
            logger.warning(f"[list_active] Redis unavailable: {e}")
            return []

        sessions.sort(key=lambda s: s.get("created_at") or "", reverse=True)
        return sessions
