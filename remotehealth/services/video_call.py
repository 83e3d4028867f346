import logging
import re
import webbrowser
from urllib.parse import quote

logger = logging.getLogger("video_call")

DEFAULT_BASE_URL = "https://meet.jit.si/"


def _slug(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "", name or "").lower()


def build_call_url(caller: str, callee: str, password: str | None = None,
                   base_url: str = DEFAULT_BASE_URL) -> str:
    """Same two names always give the same meeting room."""
    room = f"health-{_slug(caller)}-{_slug(callee)}"
    url = base_url.rstrip("/") + "/" + room
    if password:
        url += f"?password={quote(password, safe='')}"
    return url


def start_call(caller: str, callee: str, password: str | None = None,
               base_url: str = DEFAULT_BASE_URL, open_browser: bool = True) -> str:
    """
    Desktop/CLI helper: build the meeting link and open it in the local browser.
    The HTTP API only hands out links (`build_call_url`). Returns the link either way.
    """
    url = build_call_url(caller, callee, password, base_url)
    if open_browser:
        try:
            if not webbrowser.open(url):
                logger.warning(f"[start_call] No browser available, open manually: {url}")
        except webbrowser.Error as e:
            logger.warning(f"[start_call] Could not open browser: {e}")
    logger.info(f"[start_call] Video call link for {caller} -> {callee}: {url}")
    return url
