# app/services/session.py
"""
Client-held login session and the view controller built on top of it.

The session lives in a plain key-value store (the signed session cookie
in the web app, a dict in tests) under three keys:

    current_user  -> user snapshot (dict, no password hash)
    login_expiry  -> ISO timestamp, absolute
    theme         -> "light" | "dark"

Lifecycle: create on login, extend on activity, expire, destroy on logout.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, MutableMapping

import structlog

from models import utcnow
from app.services.policy import allowed_views
from app.settings import get_settings

logger = structlog.get_logger(__name__)

USER_KEY = "current_user"
EXPIRY_KEY = "login_expiry"
THEME_KEY = "theme"
VISITED_KEY = "visited_views"

THEMES = ("light", "dark")

VIEWS = ("dashboard", "transactions", "categories", "reports", "users", "audit", "settings")
DEFAULT_VIEW = "dashboard"

UNAUTHENTICATED = "unauthenticated"
AUTHENTICATED = "authenticated"


@dataclass
class LoginSession:
    user: dict
    expires_at: datetime

    @classmethod
    def create(cls, user: dict, now: datetime, days: int) -> "LoginSession":
        return cls(user=dict(user), expires_at=now + timedelta(days=days))

    def extend(self, now: datetime, days: int) -> None:
        self.expires_at = now + timedelta(days=days)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def save(self, store: MutableMapping[str, Any]) -> None:
        store[USER_KEY] = self.user
        store[EXPIRY_KEY] = self.expires_at.isoformat()

    @classmethod
    def load(cls, store: MutableMapping[str, Any]) -> "LoginSession | None":
        """Read the stored session; None when missing or unreadable."""
        user = store.get(USER_KEY)
        expiry = store.get(EXPIRY_KEY)
        if not user or not expiry:
            return None
        try:
            expires_at = datetime.fromisoformat(expiry)
        except (TypeError, ValueError):
            logger.warning("session_expiry_unreadable", value=expiry)
            return None
        return cls(user=user, expires_at=expires_at)

    @staticmethod
    def destroy(store: MutableMapping[str, Any]) -> None:
        store.pop(USER_KEY, None)
        store.pop(EXPIRY_KEY, None)


class ViewController:
    """
    Unauthenticated <-> Authenticated(view) state machine.

    `panels` maps view names to objects with a load() method; a panel
    is reloaded every time its view is shown.
    """

    def __init__(
        self,
        store: MutableMapping[str, Any],
        clock: Callable[[], datetime] | None = None,
        session_days: int | None = None,
        panels: dict[str, Any] | None = None,
    ):
        self.store = store
        self.clock = clock or utcnow
        self.session_days = session_days or get_settings().session_days
        self.panels = panels or {}

        self.state = UNAUTHENTICATED
        self.current_view: str | None = None
        self.session: LoginSession | None = None

    # ---- state ----

    @property
    def is_authenticated(self) -> bool:
        return self.state == AUTHENTICATED

    @property
    def user(self) -> dict | None:
        return self.session.user if self.session else None

    @property
    def visited_views(self) -> list[str]:
        return list(self.store.get(VISITED_KEY, []))

    @property
    def navigation(self) -> list[str]:
        if not self.is_authenticated:
            return []
        return allowed_views(self.user.get("role"))

    # ---- transitions ----

    def start(self) -> str:
        """
        Restore a stored session if it has not expired.

        Expired or broken sessions are cleared and the controller
        stays Unauthenticated.
        """
        session = LoginSession.load(self.store)
        if session is not None and not session.is_expired(self.clock()):
            self.session = session
            self.state = AUTHENTICATED
            self.current_view = DEFAULT_VIEW
            return self.state

        if session is not None:
            logger.info("session_expired", user_id=session.user.get("id"))
        self._clear()
        return self.state

    def login(self, user: dict) -> None:
        self._clear()
        self.session = LoginSession.create(user, self.clock(), self.session_days)
        self.session.save(self.store)
        self.state = AUTHENTICATED
        self.current_view = DEFAULT_VIEW
        logger.info("session_started", user_id=user.get("id"))

    def logout(self) -> None:
        if self.session:
            logger.info("session_ended", user_id=self.session.user.get("id"))
        self._clear()

    def touch(self) -> bool:
        """Extend the session on user activity. No-op while unauthenticated."""
        if not self.is_authenticated or self.session is None:
            return False
        self.session.extend(self.clock(), self.session_days)
        self.session.save(self.store)
        return True

    def check_session(self) -> bool:
        """Drop to Unauthenticated if the session has expired."""
        if not self.is_authenticated:
            return False
        if self.session is None or self.session.is_expired(self.clock()):
            self.logout()
            return False
        return True

    def refresh_user(self, user: dict) -> None:
        """Replace the stored snapshot (e.g. after a password change)."""
        if self.session is None:
            return
        self.session.user = dict(user)
        self.session.save(self.store)

    def show_view(self, name: str) -> Any:
        """
        Switch to `name` and reload its panel.

        Returns the panel (or True when no panel is registered), or
        None when the view cannot be shown.
        """
        if not self.check_session():
            logger.info("view_refused", view=name, reason="unauthenticated")
            return None
        if name not in VIEWS or name not in self.navigation:
            logger.info("view_refused", view=name, reason="not_allowed")
            return None

        visited = self.visited_views
        if name not in visited:
            visited.append(name)
            self.store[VISITED_KEY] = visited

        self.current_view = name

        panel = self.panels.get(name)
        if panel is None:
            return True
        panel.load()
        return panel

    # ---- preferences ----

    @property
    def theme(self) -> str:
        theme = self.store.get(THEME_KEY)
        return theme if theme in THEMES else "light"

    def toggle_theme(self) -> str:
        new_theme = "dark" if self.theme == "light" else "light"
        self.store[THEME_KEY] = new_theme
        return new_theme

    def _clear(self) -> None:
        LoginSession.destroy(self.store)
        self.store.pop(VISITED_KEY, None)
        self.session = None
        self.state = UNAUTHENTICATED
        self.current_view = None
