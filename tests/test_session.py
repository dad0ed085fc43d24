"""
Tests for the login session lifecycle and the view controller.
"""

from datetime import datetime, timedelta

from app.services.session import (
    AUTHENTICATED,
    EXPIRY_KEY,
    UNAUTHENTICATED,
    USER_KEY,
    LoginSession,
    ViewController,
)

NOW = datetime(2025, 1, 20, 12, 0, 0)

VIEWER = {"id": 3, "username": "victor", "role": "viewer"}
SUPERADMIN = {"id": 1, "username": "admin", "role": "superadmin"}


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class CountingPanel:
    def __init__(self):
        self.load_count = 0

    def load(self):
        self.load_count += 1


def controller_for(store, clock=None, panels=None):
    return ViewController(store, clock=clock or Clock(NOW), session_days=7, panels=panels)


class TestLoginSession:

    def test_create_sets_absolute_expiry(self):
        session = LoginSession.create(VIEWER, NOW, days=7)
        assert session.expires_at == NOW + timedelta(days=7)
        assert not session.is_expired(NOW)
        assert session.is_expired(NOW + timedelta(days=7))

    def test_save_and_load(self):
        store = {}
        LoginSession.create(VIEWER, NOW, days=7).save(store)
        loaded = LoginSession.load(store)
        assert loaded.user == VIEWER
        assert loaded.expires_at == NOW + timedelta(days=7)

    def test_load_ignores_garbage(self):
        assert LoginSession.load({}) is None
        assert LoginSession.load({USER_KEY: VIEWER, EXPIRY_KEY: "not a date"}) is None

    def test_destroy(self):
        store = {USER_KEY: VIEWER, EXPIRY_KEY: NOW.isoformat(), "theme": "dark"}
        LoginSession.destroy(store)
        assert store == {"theme": "dark"}


class TestViewController:

    def test_starts_unauthenticated(self):
        controller = controller_for({})
        assert controller.start() == UNAUTHENTICATED
        assert controller.navigation == []

    def test_valid_stored_session_is_restored(self):
        store = {}
        LoginSession.create(VIEWER, NOW - timedelta(days=1), days=7).save(store)

        controller = controller_for(store)
        assert controller.start() == AUTHENTICATED
        assert controller.user == VIEWER
        assert controller.current_view == "dashboard"

    def test_expired_stored_session_is_cleared(self):
        """A stale session must not reach any panel."""
        store = {}
        LoginSession.create(VIEWER, NOW - timedelta(days=8), days=7).save(store)
        panel = CountingPanel()

        controller = controller_for(store, panels={"transactions": panel})
        assert controller.start() == UNAUTHENTICATED
        assert USER_KEY not in store
        assert controller.show_view("transactions") is None
        assert panel.load_count == 0

    def test_login_and_logout(self):
        store = {}
        controller = controller_for(store)
        controller.login(VIEWER)

        assert controller.is_authenticated
        assert store[USER_KEY] == VIEWER
        assert store[EXPIRY_KEY] == (NOW + timedelta(days=7)).isoformat()

        controller.logout()
        assert not controller.is_authenticated
        assert USER_KEY not in store

    def test_touch_extends_only_when_authenticated(self):
        store = {}
        clock = Clock(NOW)
        controller = controller_for(store, clock)
        assert controller.touch() is False
        assert EXPIRY_KEY not in store

        controller.login(VIEWER)
        clock.advance(days=5)
        assert controller.touch() is True
        assert store[EXPIRY_KEY] == (NOW + timedelta(days=12)).isoformat()

    def test_session_expires_without_activity(self):
        clock = Clock(NOW)
        controller = controller_for({}, clock)
        controller.login(VIEWER)

        clock.advance(days=7, seconds=1)
        assert controller.show_view("dashboard") is None
        assert controller.state == UNAUTHENTICATED

    def test_navigation_depends_on_role(self):
        viewer = controller_for({})
        viewer.login(VIEWER)
        assert "users" not in viewer.navigation
        assert "audit" not in viewer.navigation

        superadmin = controller_for({})
        superadmin.login(SUPERADMIN)
        assert superadmin.navigation == [
            "dashboard", "transactions", "categories", "reports", "users", "audit", "settings",
        ]

    def test_hidden_view_is_refused(self):
        panel = CountingPanel()
        controller = controller_for({}, panels={"users": panel})
        controller.login(VIEWER)
        assert controller.show_view("users") is None
        assert panel.load_count == 0

    def test_panel_reloads_on_every_show(self):
        panel = CountingPanel()
        controller = controller_for({}, panels={"transactions": panel})
        controller.login(VIEWER)

        assert controller.show_view("transactions") is panel
        controller.show_view("dashboard")
        controller.show_view("transactions")

        assert panel.load_count == 2
        assert controller.current_view == "transactions"
        assert controller.visited_views == ["transactions", "dashboard"]

    def test_view_without_panel(self):
        controller = controller_for({})
        controller.login(VIEWER)
        assert controller.show_view("settings") is True

    def test_refresh_user(self):
        store = {}
        controller = controller_for(store)
        controller.login(dict(VIEWER, mustChangePassword=True))
        controller.refresh_user(dict(VIEWER, mustChangePassword=False))
        assert store[USER_KEY]["mustChangePassword"] is False

    def test_theme_toggle_survives_logout(self):
        store = {}
        controller = controller_for(store)
        assert controller.theme == "light"
        controller.login(VIEWER)
        assert controller.toggle_theme() == "dark"
        controller.logout()
        assert controller.theme == "dark"


class TestUtcNow:

    def test_naive_utc(self):
        from datetime import timezone

        from models import utcnow

        now = utcnow()
        assert now.tzinfo is None
        assert abs(now - datetime.now(timezone.utc).replace(tzinfo=None)) < timedelta(seconds=5)

    def test_default_clock(self):
        from models import utcnow

        assert ViewController({}, session_days=7).clock is utcnow
