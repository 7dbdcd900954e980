"""
Explicit data definitions for the GraphQL surface.

ORM rows never leave the service layer as-is: each type below is built
from a row with ``from_model`` so that columns such as the password hash
simply have no field to be serialised through.
"""

from __future__ import annotations

import strawberry

from lireddit.models import Post, User, to_millis
from lireddit.schemas import FieldError as FieldErrorModel
from lireddit.services import post_service


@strawberry.type(name="User")
class UserType:
    id: int
    username: str
    created_at: str
    updated_at: str
    stored_email: strawberry.Private[str]

    @strawberry.field
    def email(self, info: strawberry.Info) -> str:
        """Only the account's own session sees the address."""
        if info.context.user_id == self.id:
            return self.stored_email
        return ""

    @classmethod
    def from_model(cls, user: User) -> UserType:
        return cls(
            id=user.id,
            username=user.username,
            created_at=to_millis(user.created_at),
            updated_at=to_millis(user.updated_at),
            stored_email=user.email,
        )


@strawberry.type(name="Post")
class PostType:
    id: int
    title: str
    text: str
    points: int
    creator_id: int
    created_at: str
    updated_at: str
    vote_status: int | None = None

    @strawberry.field
    def text_snippet(self) -> str:
        return post_service.text_snippet(self.text)

    @strawberry.field
    async def creator(self, info: strawberry.Info) -> UserType:
        user = await info.context.user_loader.load(self.creator_id)
        return UserType.from_model(user)

    @classmethod
    def from_model(cls, post: Post, vote_status: int | None = None) -> PostType:
        return cls(
            id=post.id,
            title=post.title,
            text=post.text,
            points=post.points,
            creator_id=post.creator_id,
            created_at=to_millis(post.created_at),
            updated_at=to_millis(post.updated_at),
            vote_status=vote_status,
        )


@strawberry.type
class FieldError:
    field: str
    message: str

    @classmethod
    def from_model(cls, error: FieldErrorModel) -> FieldError:
        return cls(field=error.field, message=error.message)


@strawberry.type
class UserResponse:
    errors: list[FieldError] | None = None
    user: UserType | None = None


@strawberry.type
class PaginatedPosts:
    posts: list[PostType]
    has_more: bool
