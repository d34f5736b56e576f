"""Integration tests for user lifecycle and the account protection rules."""

import tempfile
import unittest
from pathlib import Path

from outsourcing_register.core.database import Store
from outsourcing_register.core.errors import (
    DeletionBlockedError,
    DuplicateUsernameError,
    LastAdminError,
    SystemUserProtectedError,
    UserNotFoundError,
    ValidationFailedError,
)
from outsourcing_register.core.rbac import Role
from outsourcing_register.models import User
from outsourcing_register.services import auth as auth_service
from outsourcing_register.services import users as user_service


def _user(username: str, role: str = "viewer", password: str = "secret1") -> dict:
    return {"username": username, "password": password, "display_name": username.title(), "role": role}


class UsersTestCase(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.store = Store(Path(tmp.name) / "register.db").open()
        self.addCleanup(self.store.close)
        self.db = self.enterContext(self.store.session())


class TestCreateUser(UsersTestCase):
    def test_create_returns_user_without_hash(self) -> None:
        user = user_service.create_user(self.db, _user("alice", "editor"))
        self.assertEqual(user.username, "alice")
        self.assertEqual(user.role, Role.EDITOR)
        self.assertFalse(user.is_system_user)
        self.assertNotIn("password_hash", user.model_dump())
        stored = self.db.get(User, user.id)
        self.assertNotEqual(stored.password_hash, "secret1")

    def test_duplicate_username_is_case_insensitive(self) -> None:
        user_service.create_user(self.db, _user("alice"))
        with self.assertRaises(DuplicateUsernameError) as ctx:
            user_service.create_user(self.db, _user("ALICE"))
        self.assertEqual(ctx.exception.message, "Username already exists")

    def test_invalid_shapes_are_rejected(self) -> None:
        for data in (
            _user("al"),
            _user("a" * 51),
            _user("bad name"),
            _user("alice", password="12345"),
            {**_user("alice"), "display_name": ""},
            {**_user("alice"), "role": "owner"},
        ):
            with self.assertRaises(ValidationFailedError):
                user_service.create_user(self.db, data)
        self.assertEqual(self.db.query(User).count(), 0)

    def test_lookup_by_id_and_username(self) -> None:
        created = user_service.create_user(self.db, _user("alice"))
        self.assertEqual(user_service.get_user_by_id(self.db, created.id).username, "alice")
        self.assertEqual(user_service.get_user_by_username(self.db, "Alice").id, created.id)
        self.assertIsNone(user_service.get_user_by_id(self.db, 999))

    def test_get_all_users_in_creation_order(self) -> None:
        user_service.create_user(self.db, _user("zed"))
        user_service.create_user(self.db, _user("amy"))
        self.assertEqual([u.username for u in user_service.get_all_users(self.db)], ["zed", "amy"])


class TestUpdateUser(UsersTestCase):
    def test_partial_update_keeps_other_fields(self) -> None:
        user = user_service.create_user(self.db, _user("alice"))
        updated = user_service.update_user(self.db, user.id, {"display_name": "Alice B"})
        self.assertEqual(updated.display_name, "Alice B")
        self.assertEqual(updated.role, Role.VIEWER)
        self.assertTrue(auth_service.login_user(self.db, "alice", "secret1").success)

    def test_blank_password_keeps_hash(self) -> None:
        user = user_service.create_user(self.db, _user("alice"))
        user_service.update_user(self.db, user.id, {"password": ""})
        self.assertTrue(auth_service.login_user(self.db, "alice", "secret1").success)

    def test_password_and_role_change(self) -> None:
        user = user_service.create_user(self.db, _user("alice"))
        updated = user_service.update_user(self.db, user.id, {"password": "newpass", "role": "admin"})
        self.assertEqual(updated.role, Role.ADMIN)
        self.assertFalse(auth_service.login_user(self.db, "alice", "secret1").success)
        self.assertTrue(auth_service.login_user(self.db, "alice", "newpass").success)

    def test_system_user_role_cannot_change(self) -> None:
        auth_service.enable_auth(self.db)
        admin = user_service.get_user_by_username(self.db, "admin")
        with self.assertRaises(SystemUserProtectedError):
            user_service.update_user(self.db, admin.id, {"role": "viewer", "display_name": "Changed"})
        self.db.rollback()
        unchanged = user_service.get_user_by_id(self.db, admin.id)
        self.assertEqual(unchanged.role, Role.ADMIN)
        self.assertEqual(unchanged.display_name, "Administrator")

    def test_system_user_other_fields_can_change(self) -> None:
        auth_service.enable_auth(self.db)
        admin = user_service.get_user_by_username(self.db, "admin")
        updated = user_service.update_user(self.db, admin.id, {"password": "better-pw", "role": "admin"})
        self.assertEqual(updated.role, Role.ADMIN)
        self.assertTrue(auth_service.login_user(self.db, "admin", "better-pw").success)

    def test_last_admin_cannot_be_demoted(self) -> None:
        alice = user_service.create_user(self.db, _user("alice", "admin"))
        user_service.create_user(self.db, _user("bob", "viewer"))
        with self.assertRaises(LastAdminError) as ctx:
            user_service.update_user(self.db, alice.id, {"role": "editor", "display_name": "Changed"})
        self.assertEqual(ctx.exception.message, user_service.LAST_ADMIN_ROLE_MESSAGE)
        self.db.rollback()
        unchanged = user_service.get_user_by_id(self.db, alice.id)
        self.assertEqual(unchanged.role, Role.ADMIN)
        self.assertEqual(unchanged.display_name, "Alice")

    def test_admin_can_be_demoted_while_another_remains(self) -> None:
        alice = user_service.create_user(self.db, _user("alice", "admin"))
        user_service.create_user(self.db, _user("bob", "admin"))
        updated = user_service.update_user(self.db, alice.id, {"role": "viewer"})
        self.assertEqual(updated.role, Role.VIEWER)
        with self.assertRaises(LastAdminError):
            user_service.update_user(self.db, user_service.get_user_by_username(self.db, "bob").id, {"role": "viewer"})

    def test_missing_user(self) -> None:
        with self.assertRaises(UserNotFoundError):
            user_service.update_user(self.db, 42, {"display_name": "X"})


class TestDeleteUser(UsersTestCase):
    def test_cannot_delete_self(self) -> None:
        a = user_service.create_user(self.db, _user("alice", "admin"))
        user_service.create_user(self.db, _user("bob", "admin"))
        check = user_service.can_delete_user(self.db, a.id, current_user_id=a.id)
        self.assertFalse(check.can_delete)
        self.assertEqual(check.reason, user_service.REASON_SELF)

    def test_cannot_delete_last_admin(self) -> None:
        a = user_service.create_user(self.db, _user("alice", "admin"))
        user_service.create_user(self.db, _user("bob", "viewer"))
        check = user_service.can_delete_user(self.db, a.id)
        self.assertFalse(check.can_delete)
        self.assertEqual(check.reason, "Cannot delete the last administrator account")
        with self.assertRaises(DeletionBlockedError):
            user_service.delete_user(self.db, a.id)
        self.assertIsNotNone(user_service.get_user_by_id(self.db, a.id))

    def test_system_user_protected_under_never_policy(self) -> None:
        auth_service.enable_auth(self.db)
        admin = user_service.get_user_by_username(self.db, "admin")
        other = user_service.create_user(self.db, _user("bob", "admin"))
        check = user_service.can_delete_user(self.db, admin.id, current_user_id=other.id, system_user_policy="never")
        self.assertFalse(check.can_delete)
        self.assertEqual(check.reason, "Cannot delete the system administrator account")

    def test_system_user_deletable_when_other_admin_policy(self) -> None:
        auth_service.enable_auth(self.db)
        admin = user_service.get_user_by_username(self.db, "admin")
        other = user_service.create_user(self.db, _user("bob", "admin"))
        user_service.delete_user(
            self.db, admin.id, current_user_id=other.id, system_user_policy="when_other_admin"
        )
        self.assertIsNone(user_service.get_user_by_id(self.db, admin.id))

    def test_delete_regular_user(self) -> None:
        user_service.create_user(self.db, _user("alice", "admin"))
        bob = user_service.create_user(self.db, _user("bob", "editor"))
        self.assertTrue(user_service.can_delete_user(self.db, bob.id).can_delete)
        user_service.delete_user(self.db, bob.id)
        self.assertEqual(len(user_service.get_all_users(self.db)), 1)

    def test_missing_user_cannot_be_deleted(self) -> None:
        check = user_service.can_delete_user(self.db, 999)
        self.assertFalse(check.can_delete)
        self.assertEqual(check.reason, user_service.REASON_NOT_FOUND)


class TestChangeUserPassword(UsersTestCase):
    def test_requires_current_password(self) -> None:
        user = user_service.create_user(self.db, _user("alice"))
        self.assertFalse(user_service.change_user_password(self.db, user.id, "wrong", "newpass"))
        self.assertTrue(user_service.change_user_password(self.db, user.id, "secret1", "newpass"))
        self.assertTrue(auth_service.login_user(self.db, "alice", "newpass").success)

    def test_short_new_password_rejected(self) -> None:
        user = user_service.create_user(self.db, _user("alice"))
        with self.assertRaises(ValidationFailedError):
            user_service.change_user_password(self.db, user.id, "secret1", "123")


if __name__ == "__main__":
    unittest.main()
