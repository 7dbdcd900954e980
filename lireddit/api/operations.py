"""
Handlers for every query and mutation, plus the registry that maps each
public operation name to its handler.

Handlers own the transaction boundary: all database work for one operation
runs inside a single ``info.context.db()`` scope, which commits when the
block exits cleanly.  Sessions are bound only after that commit.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import strawberry

from lireddit.api.types import FieldError, PaginatedPosts, PostType, UserResponse, UserType
from lireddit.schemas import PostInput, UsernamePasswordInput
from lireddit.services import auth_service, post_service
from lireddit.services.auth_service import UserResult
from lireddit.services.post_service import DeleteOutcome, PostPage


def _user_response(result: UserResult) -> UserResponse:
    if result.errors:
        return UserResponse(errors=[FieldError.from_model(e) for e in result.errors])
    return UserResponse(user=UserType.from_model(result.user))


def _paginated(page: PostPage) -> PaginatedPosts:
    return PaginatedPosts(
        posts=[PostType.from_model(p, page.vote_status.get(p.id)) for p in page.posts],
        has_more=page.has_more,
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def me(info: strawberry.Info) -> UserType | None:
    user_id = info.context.user_id
    if user_id is None:
        return None
    async with info.context.db() as db:
        user = await auth_service.get_user(db, user_id)
    return UserType.from_model(user) if user else None


async def post(info: strawberry.Info, id: int) -> PostType | None:
    viewer_id = info.context.user_id
    async with info.context.db() as db:
        found = await post_service.get_post(db, id)
        if found is None:
            return None
        vote_status = None
        if viewer_id is not None:
            vote_status = (await post_service.vote_statuses(db, viewer_id, [id])).get(id)
    return PostType.from_model(found, vote_status)


async def posts(info: strawberry.Info, limit: int, cursor: str | None = None) -> PaginatedPosts:
    async with info.context.db() as db:
        page = await post_service.get_posts(
            db, limit, cursor, viewer_id=info.context.user_id
        )
    return _paginated(page)


async def user_posts(
    info: strawberry.Info, creator_id: int, limit: int, cursor: str | None = None
) -> PaginatedPosts:
    async with info.context.db() as db:
        page = await post_service.get_posts(
            db, limit, cursor, creator_id=creator_id, viewer_id=info.context.user_id
        )
    return _paginated(page)


# ---------------------------------------------------------------------------
# Auth mutations
# ---------------------------------------------------------------------------

async def register(
    info: strawberry.Info, username: str, email: str, password: str
) -> UserResponse:
    options = UsernamePasswordInput(username=username, email=email, password=password)
    async with info.context.db() as db:
        result = await auth_service.register(db, options)
    if result.user is not None:
        await info.context.sign_in(result.user.id)
    return _user_response(result)


async def login(info: strawberry.Info, username_or_email: str, password: str) -> UserResponse:
    async with info.context.db() as db:
        result = await auth_service.login(db, username_or_email, password)
    if result.user is not None:
        await info.context.sign_in(result.user.id)
    return _user_response(result)


async def logout(info: strawberry.Info) -> bool:
    return await info.context.sign_out()


async def forgot_password(info: strawberry.Info, email: str) -> bool:
    async with info.context.db() as db:
        return await auth_service.forgot_password(db, info.context.store, email)


async def change_password(
    info: strawberry.Info, token: str, new_password: str
) -> UserResponse:
    async with info.context.db() as db:
        result = await auth_service.change_password(
            db, info.context.store, token, new_password
        )
    if result.user is not None:
        await auth_service.discard_reset_token(info.context.store, token)
        await info.context.sign_in(result.user.id)
    return _user_response(result)


# ---------------------------------------------------------------------------
# Post mutations
# ---------------------------------------------------------------------------

async def create_post(info: strawberry.Info, title: str, text: str) -> PostType | None:
    user_id = info.context.require_user_id()
    async with info.context.db() as db:
        created = await post_service.create_post(db, user_id, PostInput(title=title, text=text))
    return PostType.from_model(created) if created else None


async def update_post(info: strawberry.Info, id: int, title: str, text: str) -> PostType | None:
    user_id = info.context.require_user_id()
    async with info.context.db() as db:
        updated = await post_service.update_post(
            db, id, user_id, PostInput(title=title, text=text)
        )
    return PostType.from_model(updated) if updated else None


async def delete_post(info: strawberry.Info, id: int) -> bool:
    user_id = info.context.require_user_id()
    async with info.context.db() as db:
        outcome = await post_service.delete_post(db, id, user_id)
    return outcome is DeleteOutcome.DELETED


async def vote(info: strawberry.Info, post_id: int, value: int) -> bool:
    user_id = info.context.require_user_id()
    async with info.context.db() as db:
        return await post_service.vote(db, post_id, user_id, value)


# ---------------------------------------------------------------------------
# Registry: public operation name -> handler
# ---------------------------------------------------------------------------

QUERIES: dict[str, Callable[..., Any]] = {
    "me": me,
    "post": post,
    "posts": posts,
    "userPosts": user_posts,
}

MUTATIONS: dict[str, Callable[..., Any]] = {
    "register": register,
    "login": login,
    "logout": logout,
    "forgotPassword": forgot_password,
    "changePassword": change_password,
    "createPost": create_post,
    "updatePost": update_post,
    "deletePost": delete_post,
    "vote": vote,
}
