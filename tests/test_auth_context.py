"""Tests for AuthContext: session lifecycle, remember-me, fail-open settings and permission checks."""

import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

from outsourcing_register.core.database import Store
from outsourcing_register.core.rbac import Permission, Role
from outsourcing_register.core.security import DEFAULT_MASTER_PASSWORD
from outsourcing_register.schemas.auth import LoginError, SessionSnapshot
from outsourcing_register.services import auth as auth_service
from outsourcing_register.services.auth_context import AuthContext, AuthState
from outsourcing_register.services.session_store import SESSION_STORAGE_KEY, MemoryKeyValueStore
from outsourcing_register.services.users import create_user


class AuthContextTestCase(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.store = Store(Path(tmp.name) / "register.db").open()
        self.addCleanup(self.store.close)
        self.storage = MemoryKeyValueStore()

    def enable_auth_with_users(self) -> None:
        with self.store.session() as db:
            auth_service.enable_auth(db)
            create_user(db, {"username": "ed", "password": "secret1", "display_name": "Ed", "role": "editor"})
            create_user(db, {"username": "vi", "password": "secret1", "display_name": "Vi", "role": "viewer"})

    def new_context(self) -> AuthContext:
        ctx = AuthContext(self.store, self.storage)
        ctx.init()
        return ctx


class TestAuthDisabled(AuthContextTestCase):
    def test_everything_allowed_without_session(self) -> None:
        ctx = self.new_context()
        self.assertFalse(ctx.auth_enabled)
        self.assertFalse(ctx.is_authenticated)
        self.assertEqual(ctx.state, AuthState.UNAUTHENTICATED)
        for action in Permission:
            self.assertTrue(ctx.has_permission(action))
        self.assertTrue(ctx.can_edit)

    def test_login_rejected_while_disabled(self) -> None:
        ctx = self.new_context()
        result = ctx.login("admin", "admin")
        self.assertFalse(result.success)
        self.assertEqual(result.error, LoginError.AUTH_DISABLED)
        self.assertIsNone(ctx.session)


class TestFailOpen(unittest.TestCase):
    """Settings that cannot be read count as auth disabled."""

    def test_settings_load_error_disables_auth(self) -> None:
        store = MagicMock()
        store.session.side_effect = RuntimeError("disk on fire")
        ctx = AuthContext(store, MemoryKeyValueStore())
        with self.assertLogs("outsourcing_register.services.auth_context", level="ERROR"):
            ctx.init()
        self.assertFalse(ctx.auth_enabled)
        self.assertTrue(ctx.has_permission(Permission.MANAGE_AUTH))


class TestLoginLogout(AuthContextTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.enable_auth_with_users()

    def test_no_session_means_no_permission(self) -> None:
        ctx = self.new_context()
        self.assertTrue(ctx.auth_enabled)
        for action in Permission:
            self.assertFalse(ctx.has_permission(action))
        self.assertFalse(ctx.can_edit)

    def test_editor_permissions(self) -> None:
        ctx = self.new_context()
        result = ctx.login("ed", "secret1")
        self.assertTrue(result.success)
        self.assertEqual(ctx.state, AuthState.AUTHENTICATED)
        self.assertTrue(ctx.has_permission(Permission.EDIT_SUPPLIERS))
        self.assertFalse(ctx.has_permission(Permission.MANAGE_USERS))
        self.assertTrue(ctx.is_editor)
        self.assertFalse(ctx.is_admin)
        self.assertTrue(ctx.can_edit)

    def test_viewer_flags(self) -> None:
        ctx = self.new_context()
        ctx.login("vi", "secret1")
        self.assertTrue(ctx.is_viewer)
        self.assertFalse(ctx.is_editor)
        self.assertFalse(ctx.can_edit)
        self.assertTrue(ctx.has_permission(Permission.VIEW_REPORTING))

    def test_failed_login_keeps_state(self) -> None:
        ctx = self.new_context()
        result = ctx.login("ed", "wrong")
        self.assertFalse(result.success)
        self.assertEqual(result.error, LoginError.INVALID_CREDENTIALS)
        self.assertFalse(ctx.is_authenticated)

    def test_logout_clears_session_and_snapshot(self) -> None:
        ctx = self.new_context()
        ctx.login("ed", "secret1", remember_me=True)
        ctx.logout()
        self.assertIsNone(ctx.current_user)
        self.assertIsNone(self.storage.get(SESSION_STORAGE_KEY))
        self.assertEqual(ctx.state, AuthState.UNAUTHENTICATED)


class TestRememberMe(AuthContextTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.enable_auth_with_users()

    def test_remembered_session_survives_restart(self) -> None:
        first = self.new_context()
        first.login("ed", "secret1", remember_me=True)
        first.teardown()

        second = self.new_context()
        self.assertTrue(second.is_authenticated)
        self.assertEqual(second.current_user.username, "ed")
        self.assertEqual(second.current_user.role, Role.EDITOR)

    def test_login_without_remember_me_clears_previous_snapshot(self) -> None:
        ctx = self.new_context()
        ctx.login("ed", "secret1", remember_me=True)
        ctx.login("vi", "secret1", remember_me=False)
        self.assertIsNone(self.storage.get(SESSION_STORAGE_KEY))
        self.assertFalse(self.new_context().is_authenticated)

    def test_corrupt_snapshot_is_discarded(self) -> None:
        self.storage.set(SESSION_STORAGE_KEY, "{not json")
        ctx = self.new_context()
        self.assertFalse(ctx.is_authenticated)
        self.assertIsNone(self.storage.get(SESSION_STORAGE_KEY))

    def test_master_override_snapshot_is_never_restored(self) -> None:
        snapshot = SessionSnapshot(
            user=auth_service.master_override_user(),
            login_time=datetime.now(timezone.utc),
            is_master_override=True,
        )
        self.storage.set(SESSION_STORAGE_KEY, snapshot.model_dump_json())
        ctx = self.new_context()
        self.assertFalse(ctx.is_authenticated)
        self.assertIsNone(self.storage.get(SESSION_STORAGE_KEY))


class TestMasterOverride(AuthContextTestCase):
    def test_master_login_is_admin_and_not_persisted(self) -> None:
        self.enable_auth_with_users()
        ctx = self.new_context()
        ctx.login("ed", "secret1", remember_me=True)
        result = ctx.login_with_master(DEFAULT_MASTER_PASSWORD)
        self.assertTrue(result.success)
        self.assertTrue(ctx.is_master_override)
        self.assertTrue(ctx.is_admin)
        self.assertEqual(ctx.current_user.id, 0)
        self.assertTrue(ctx.has_permission(Permission.MANAGE_AUTH))
        self.assertIsNone(self.storage.get(SESSION_STORAGE_KEY))

    def test_failed_master_login_keeps_existing_session(self) -> None:
        self.enable_auth_with_users()
        ctx = self.new_context()
        ctx.login("ed", "secret1")
        result = ctx.login_with_master("wrong-master")
        self.assertFalse(result.success)
        self.assertEqual(ctx.current_user.username, "ed")
        self.assertFalse(ctx.is_master_override)

    def test_refresh_picks_up_enabled_auth(self) -> None:
        ctx = self.new_context()
        self.assertFalse(ctx.auth_enabled)
        with self.store.session() as db:
            auth_service.enable_auth(db)
        ctx.refresh_auth_settings()
        self.assertTrue(ctx.auth_enabled)


if __name__ == "__main__":
    unittest.main()
