"""Cookie bundles for the DMS session.

Acquiring the session (SSO login, MFA) happens elsewhere; this module only
reads what that process left behind.
"""
from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Dict, List, Protocol

from ge_sync.errors import SessionError

Cookie = Dict[str, Any]


class SessionProvider(Protocol):
    async def get_cookie_header(self, location_id: str) -> str: ...

    async def get_valid_cookies(self, location_id: str) -> List[Cookie]: ...


def cookie_header(cookies: List[Cookie]) -> str:
    return "; ".join(f"{cookie['name']}={cookie['value']}" for cookie in cookies if cookie.get("name"))


def _is_live(cookie: Cookie, now: float) -> bool:
    expires = cookie.get("expires")
    if expires in (None, -1):
        return True
    try:
        return float(expires) > now
    except (TypeError, ValueError):
        return True


class StorageStateSessionProvider:
    """Serve cookies from a Playwright ``storage_state`` JSON file.

    ``path`` may contain ``{location_id}`` when each location logs in with its
    own profile.
    """

    def __init__(self, path: str | Path) -> None:
        self.path_template = str(path)

    def _path_for(self, location_id: str) -> Path:
        return Path(self.path_template.format(location_id=location_id)).expanduser()

    def _load(self, location_id: str) -> List[Cookie]:
        path = self._path_for(location_id)
        if not path.exists():
            raise SessionError(f"Storage state not found for location {location_id}: {path}")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise SessionError(f"Storage state unreadable at {path}: {exc}") from exc
        cookies = payload.get("cookies") if isinstance(payload, dict) else None
        return [cookie for cookie in cookies or [] if isinstance(cookie, dict)]

    async def get_valid_cookies(self, location_id: str) -> List[Cookie]:
        now = time.time()
        cookies = [cookie for cookie in self._load(location_id) if _is_live(cookie, now)]
        if not cookies:
            raise SessionError(f"No valid DMS session cookies for location {location_id}")
        return cookies

    async def get_cookie_header(self, location_id: str) -> str:
        return cookie_header(await self.get_valid_cookies(location_id))
