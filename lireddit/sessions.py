"""
Server-side sessions stored in the key-value store.

The browser only ever holds ``<sid>.<signature>`` in the session cookie; the
bound user id lives under ``SESSION_PREFIX + sid``.  The signature is an
HMAC of the session id keyed by ``SESSION_SECRET`` so that a forged or
truncated cookie never reaches the store.
"""
import base64
import hashlib
import hmac
import json
import logging
import secrets

from lireddit.config import settings
from lireddit.kv import KeyValueStore, kv

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(
        self,
        store: KeyValueStore,
        secret: str,
        prefix: str = "sess:",
        max_age: int = 60 * 60 * 24 * 365 * 2,
    ) -> None:
        self._store = store
        self._secret = secret.encode()
        self._prefix = prefix
        self.max_age = max_age

    # ------------------------------------------------------------------
    # Cookie signing
    # ------------------------------------------------------------------

    def _signature(self, sid: str) -> str:
        digest = hmac.new(self._secret, sid.encode(), hashlib.sha256).digest()
        return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()

    def sign(self, sid: str) -> str:
        return f"{sid}.{self._signature(sid)}"

    def unsign(self, cookie: str | None) -> str | None:
        """Return the session id carried by *cookie*, or None if it is not ours."""
        if not cookie:
            return None
        sid, _, signature = cookie.rpartition(".")
        if not sid or not hmac.compare_digest(signature, self._signature(sid)):
            return None
        return sid

    # ------------------------------------------------------------------
    # Store operations
    # ------------------------------------------------------------------

    async def user_id(self, cookie: str | None) -> int | None:
        """Resolve a session cookie to the bound user id."""
        sid = self.unsign(cookie)
        if sid is None:
            return None
        raw = await self._store.get(self._prefix + sid)
        if raw is None:
            return None
        return json.loads(raw).get("userId")

    async def create(self, user_id: int) -> str:
        """Bind *user_id* to a fresh session and return the signed cookie value."""
        sid = secrets.token_urlsafe(32)
        await self._store.set(
            self._prefix + sid, json.dumps({"userId": user_id}), ttl=self.max_age
        )
        return self.sign(sid)

    async def destroy(self, cookie: str | None) -> None:
        """Drop the session behind *cookie*.  Store errors propagate."""
        sid = self.unsign(cookie)
        if sid is not None:
            await self._store.delete(self._prefix + sid)


session_store = SessionStore(
    kv,
    settings.SESSION_SECRET,
    prefix=settings.SESSION_PREFIX,
    max_age=settings.SESSION_MAX_AGE,
)
