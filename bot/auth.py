"""Access control from the users JSON file.

File shape::

    {"authorized_users": [{"id": 123, "name": "me", "admin": true}]}

Authorized users can remix content; admins can also change settings.
"""
import json
from pathlib import Path


def _users_path() -> Path:
    from config import settings
    return Path(settings.users_config)


class Auth:
    def __init__(self, config_path: str | Path | None = None):
        self._path = Path(config_path) if config_path else None

    def _load(self) -> list[dict]:
        path = self._path or _users_path()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (FileNotFoundError, UnicodeDecodeError, json.JSONDecodeError):
            return []
        users = data.get("authorized_users", []) if isinstance(data, dict) else []
        return [u for u in users if isinstance(u, dict)]

    def _find(self, user_id: int) -> dict | None:
        return next((u for u in self._load() if u.get("id") == user_id), None)

    def is_authorized(self, user_id: int) -> bool:
        return self._find(user_id) is not None

    def is_admin(self, user_id: int) -> bool:
        user = self._find(user_id)
        return bool(user and user.get("admin"))


auth = Auth()
