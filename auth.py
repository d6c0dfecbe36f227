"""
Identity bootstrap.

Every store operation runs under a signed-in identity. At startup the app
signs in with the pre-issued token when one is configured, anonymously
otherwise. Until that finishes the identity is pending; a failed or timed-out
sign-in leaves a persistent AuthError instead of a null identity.
"""

import asyncio
import hashlib
import logging
import secrets
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import ValidationError

from database import DocumentStore, TransientStoreError
from schemas import Identity

logger = logging.getLogger(__name__)

IDENTITY_COLLECTION = "identity"
SESSION_COLLECTION = "identity_session"

IdentityListener = Callable[[Optional[Identity]], None]


class AuthError(Exception):
    """Sign-in failed; the app cannot issue store operations."""


class AuthPending(Exception):
    """Sign-in has not completed yet."""


def _token_digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class AuthProvider:
    """Issues and resolves session tokens kept in the document store."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.current: Optional[Identity] = None
        self._listeners: List[IdentityListener] = []

    def sign_in_anonymous(self) -> Identity:
        uid = secrets.token_hex(14)
        token = secrets.token_urlsafe(24)
        now = datetime.now(timezone.utc)
        try:
            self.store.set(IDENTITY_COLLECTION, uid, {"uid": uid, "is_anonymous": True, "created_at": now})
            self.store.set(SESSION_COLLECTION, _token_digest(token), {"uid": uid, "created_at": now})
        except TransientStoreError as e:
            raise AuthError(f"Anonymous sign-in failed: {e}") from e
        identity = Identity(uid=uid, is_anonymous=True, created_at=now, token=token)
        logger.info("Signed in anonymously as %s", uid)
        self._set_current(identity)
        return identity

    def sign_in_with_token(self, token: str) -> Identity:
        if not token:
            raise AuthError("Empty session token")
        try:
            session = self.store.get(SESSION_COLLECTION, _token_digest(token))
            doc = self.store.get(IDENTITY_COLLECTION, session["uid"]) if session else None
        except TransientStoreError as e:
            raise AuthError(f"Token sign-in failed: {e}") from e
        if doc is None:
            raise AuthError("Unknown or revoked session token")
        try:
            identity = Identity(**doc, token=token)
        except ValidationError as e:
            raise AuthError(f"Malformed identity record: {e}") from e
        logger.info("Signed in with token as %s", identity.uid)
        self._set_current(identity)
        return identity

    def sign_out(self) -> None:
        self._set_current(None)

    def on_identity_change(self, callback: IdentityListener) -> Callable[[], None]:
        """Call ``callback`` now and on every identity change. Returns an unsubscribe function."""
        self._listeners.append(callback)
        callback(self.current)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_current(self, identity: Optional[Identity]) -> None:
        self.current = identity
        for listener in list(self._listeners):
            listener(identity)


class IdentityBootstrap:
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"

    def __init__(self, provider: AuthProvider, timeout: float = 10.0):
        self.provider = provider
        self.timeout = timeout
        self.identity: Optional[Identity] = None
        self.error: Optional[AuthError] = None
        self._unsubscribe = provider.on_identity_change(self._on_change)

    def _on_change(self, identity: Optional[Identity]) -> None:
        self.identity = identity

    @property
    def state(self) -> str:
        if self.error is not None:
            return self.ERROR
        if self.identity is not None:
            return self.READY
        return self.LOADING

    async def start(self, initial_token: Optional[str] = None) -> Optional[Identity]:
        """Sign in once. Errors are kept on the bootstrap, not raised."""
        if initial_token:
            def sign_in():
                return self.provider.sign_in_with_token(initial_token)
        else:
            sign_in = self.provider.sign_in_anonymous

        try:
            await asyncio.wait_for(asyncio.to_thread(sign_in), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.error = AuthError(f"Sign-in did not complete within {self.timeout:g}s")
            logger.error("Identity bootstrap timed out after %ss", self.timeout)
        except AuthError as e:
            self.error = e
            logger.error("Identity bootstrap failed: %s", e)
        except Exception as e:
            self.error = AuthError(f"Sign-in failed: {e}")
            logger.exception("Identity bootstrap failed")
        return self.identity if self.error is None else None

    def require(self) -> Identity:
        """The current identity; raises AuthError or AuthPending otherwise."""
        if self.error is not None:
            raise self.error
        if self.identity is None:
            raise AuthPending("Identity bootstrap in progress")
        return self.identity

    def close(self) -> None:
        self._unsubscribe()
