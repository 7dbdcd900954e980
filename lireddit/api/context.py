"""GraphQL context: everything a resolver may touch during one request."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, Request
from redis import RedisError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from strawberry.fastapi import BaseContext

from lireddit.config import settings
from lireddit.database import get_session_factory, session_scope
from lireddit.errors import NotAuthenticatedError
from lireddit.kv import KeyValueStore, kv
from lireddit.loaders import create_user_loader
from lireddit.sessions import SessionStore, session_store

logger = logging.getLogger(__name__)


class Context(BaseContext):
    """
    Per-request state threaded explicitly into every resolver.

    ``user_id`` is the session lookup result taken when the request
    arrived; sign-in and sign-out keep it current so that fields resolved
    later in the same response (e.g. ``User.email``) see the new state.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        sessions: SessionStore,
        store: KeyValueStore,
        session_cookie: str | None,
        user_id: int | None,
    ) -> None:
        super().__init__()
        self.session_factory = session_factory
        self.sessions = sessions
        self.store = store
        self.session_cookie = session_cookie
        self.user_id = user_id
        self.user_loader = create_user_loader(session_factory)

    @asynccontextmanager
    async def db(self) -> AsyncIterator[AsyncSession]:
        async with session_scope(self.session_factory) as session:
            yield session

    def require_user_id(self) -> int:
        if self.user_id is None:
            raise NotAuthenticatedError()
        return self.user_id

    async def sign_in(self, user_id: int) -> None:
        """Bind *user_id* to a new session and hand its cookie to the client."""
        previous = self.session_cookie
        cookie = await self.sessions.create(user_id)
        if previous:
            try:
                await self.sessions.destroy(previous)
            except RedisError:
                logger.warning("Could not discard the previous session", exc_info=True)
        self.response.set_cookie(
            settings.COOKIE_NAME,
            cookie,
            max_age=self.sessions.max_age,
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
        )
        self.session_cookie = cookie
        self.user_id = user_id

    async def sign_out(self) -> bool:
        """
        Destroy the session and clear the cookie.  Returns False only when
        the store failed to drop the session.
        """
        cookie = self.session_cookie
        self.response.delete_cookie(
            settings.COOKIE_NAME,
            httponly=True,
            samesite="lax",
            secure=settings.is_production,
        )
        self.session_cookie = None
        self.user_id = None
        try:
            await self.sessions.destroy(cookie)
        except RedisError:
            logger.exception("Destroying session failed")
            return False
        return True


async def get_context(
    request: Request,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> Context:
    cookie = request.cookies.get(settings.COOKIE_NAME)
    user_id = await session_store.user_id(cookie)
    return Context(
        session_factory=session_factory,
        sessions=session_store,
        store=kv,
        session_cookie=cookie,
        user_id=user_id,
    )
