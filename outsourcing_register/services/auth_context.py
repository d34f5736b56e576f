"""Session and authorization state for one running process.

AuthContext is built once at startup and handed to whatever needs it (the API layer
keeps it on ``app.state``). It owns the current session, the remember-me snapshot and
the cached auth settings, and answers permission questions from the fixed role matrix.

Settings that cannot be loaded are treated as "auth disabled". That keeps a single-user
offline install usable when its store is damaged, at the cost of opening access; a
networked or multi-tenant deployment must not keep this behaviour.
"""

import logging
from datetime import datetime, timezone
from enum import Enum

from pydantic import ValidationError

from outsourcing_register.core.database import Store
from outsourcing_register.core.rbac import Permission, Role, role_at_least, role_has_permission
from outsourcing_register.schemas.auth import (
    AuthSettingsView,
    LoginError,
    LoginResult,
    SessionSnapshot,
    User,
)
from outsourcing_register.services import auth as auth_service
from outsourcing_register.services.session_store import SESSION_STORAGE_KEY, KeyValueStore

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class AuthContext:
    """Process-local session holder and permission checker."""

    def __init__(self, store: Store, storage: KeyValueStore) -> None:
        self._store = store
        self._storage = storage
        self.state = AuthState.UNINITIALIZED
        self.auth_settings: AuthSettingsView | None = None
        self._session: SessionSnapshot | None = None

    # -- lifecycle -------------------------------------------------------------

    def init(self) -> None:
        """Load auth settings, then restore a remembered session if one is stored."""
        self.state = AuthState.LOADING
        self.refresh_auth_settings()
        self._session = self._restore_session()
        self.state = AuthState.AUTHENTICATED if self._session else AuthState.UNAUTHENTICATED

    def teardown(self) -> None:
        """Drop in-memory state. A remembered session stays on disk for the next start."""
        self._session = None
        self.auth_settings = None
        self.state = AuthState.UNINITIALIZED

    def refresh_auth_settings(self) -> None:
        """Reload settings from the store; on any failure fall back to auth disabled."""
        try:
            with self._store.session() as db:
                self.auth_settings = auth_service.get_auth_settings(db)
        except Exception:
            logger.exception("Failed to load auth settings; continuing with authentication disabled")
            self.auth_settings = AuthSettingsView(auth_enabled=False, master_password_set=False)

    # -- remember-me storage ----------------------------------------------------

    def _restore_session(self) -> SessionSnapshot | None:
        raw = self._storage.get(SESSION_STORAGE_KEY)
        if not raw:
            return None
        try:
            snapshot = SessionSnapshot.model_validate_json(raw)
        except ValidationError as e:
            logger.error("Discarding unreadable remembered session: %s", e)
            self._storage.remove(SESSION_STORAGE_KEY)
            return None
        if snapshot.is_master_override:
            # Override sessions are never meant to outlive the process.
            self._storage.remove(SESSION_STORAGE_KEY)
            return None
        return snapshot

    def _save_session(self, snapshot: SessionSnapshot) -> None:
        self._storage.set(SESSION_STORAGE_KEY, snapshot.model_dump_json())

    def _clear_saved_session(self) -> None:
        self._storage.remove(SESSION_STORAGE_KEY)

    # -- login / logout ---------------------------------------------------------

    def login(self, username: str, password: str, remember_me: bool = False) -> LoginResult:
        """Log in with a user account. Rejected with AUTH_DISABLED while auth is off."""
        if not self.auth_enabled:
            return LoginResult(
                success=False,
                error=LoginError.AUTH_DISABLED,
                message=auth_service.AUTH_DISABLED_MESSAGE,
            )
        with self._store.session() as db:
            result = auth_service.login_user(db, username, password)
        if not result.success or result.user is None:
            logger.info("Failed login attempt")
            return result

        snapshot = SessionSnapshot(
            user=result.user,
            login_time=datetime.now(timezone.utc),
            is_master_override=False,
        )
        self._session = snapshot
        self.state = AuthState.AUTHENTICATED
        if remember_me:
            self._save_session(snapshot)
        else:
            self._clear_saved_session()
        logger.info("User logged in: %s", result.user.username)
        return result

    def login_with_master(self, password: str) -> LoginResult:
        """Log in with the master password. The session is never persisted."""
        with self._store.session() as db:
            result = auth_service.login_with_master_password(db, password)
        if not result.success or result.user is None:
            return result

        self._session = SessionSnapshot(
            user=result.user,
            login_time=datetime.now(timezone.utc),
            is_master_override=True,
        )
        self.state = AuthState.AUTHENTICATED
        self._clear_saved_session()
        return result

    def logout(self) -> None:
        self._session = None
        self.state = AuthState.UNAUTHENTICATED
        self._clear_saved_session()

    # -- session view -----------------------------------------------------------

    @property
    def session(self) -> SessionSnapshot | None:
        return self._session

    @property
    def current_user(self) -> User | None:
        return self._session.user if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def is_master_override(self) -> bool:
        return bool(self._session and self._session.is_master_override)

    @property
    def auth_enabled(self) -> bool:
        return bool(self.auth_settings and self.auth_settings.auth_enabled)

    @property
    def _role(self) -> Role | None:
        user = self.current_user
        return user.role if user else None

    # -- permissions ------------------------------------------------------------

    def has_permission(self, action: Permission) -> bool:
        """Everything is allowed while auth is off; nothing without a session; else the role matrix."""
        if not self.auth_enabled:
            return True
        if self._session is None:
            return False
        return role_has_permission(self._role, action)

    @property
    def is_admin(self) -> bool:
        return self._role == Role.ADMIN

    @property
    def is_editor(self) -> bool:
        """Editor or admin."""
        return role_at_least(self._role, Role.EDITOR)

    @property
    def is_viewer(self) -> bool:
        return self._role == Role.VIEWER

    @property
    def can_edit(self) -> bool:
        return self.is_editor if self.auth_enabled else True
