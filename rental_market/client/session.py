"""
Client-side login session persisted as a small JSON file.
"""

from pathlib import Path
from typing import Any, Dict, Optional
import json
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_SESSION_FILE = Path.home() / ".rental_market" / "session.json"


class ClientSession:
    """
    Holds the token and user returned by login/register between CLI runs.
    """

    def __init__(self, path: Optional[Path] = None):
        env_path = os.environ.get("RENTAL_MARKET_SESSION_FILE")
        self.path = Path(path or env_path or DEFAULT_SESSION_FILE)
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None

    @property
    def user_id(self) -> Optional[str]:
        return self.user.get("id") if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token and self.user)

    def load(self) -> "ClientSession":
        """Read the session file; a missing or unreadable file means logged out."""
        if not self.path.exists():
            return self
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return self
        self.token = data.get("token")
        self.user = data.get("user")
        return self

    def save(self, token: str, user: Dict[str, Any]) -> None:
        self.token = token
        self.user = user
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"token": token, "user": user}, indent=2), encoding="utf-8")

    def clear(self) -> None:
        self.token = None
        self.user = None
        if self.path.exists():
            self.path.unlink()
