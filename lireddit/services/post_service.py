"""
Post service: business logic for the Post aggregate and its votes.

Design notes
------------
- Listings use keyset pagination on ``created_at``: one extra row is
  fetched past the page and only used to answer ``has_more``.
- Scores are kept incrementally.  Every change to ``points`` is issued as a
  single ``UPDATE ... SET points = points + :delta`` in the same transaction
  as the vote row it accounts for, so concurrent voters never overwrite
  each other and ``points`` always equals the sum of the post's votes.
- Ownership failures are soft: callers only learn "no post" / "not
  deleted", never whether the post exists.
- Service functions flush but do not commit; the transaction boundary is
  owned by the caller's session scope.
"""
import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lireddit.config import settings
from lireddit.errors import InvalidVoteError
from lireddit.models import Post, Vote, from_millis, utcnow
from lireddit.schemas import PostInput
from lireddit.validation import is_valid_post

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 50


class DeleteOutcome(enum.Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    NOT_OWNER = "not_owner"
    FAILED = "failed"


@dataclass
class PostPage:
    posts: list[Post]
    has_more: bool
    # post id -> the viewer's vote on it; empty for anonymous viewers
    vote_status: dict[int, int] = field(default_factory=dict)


def text_snippet(text: str) -> str:
    return text[:SNIPPET_LENGTH]


def normalize_vote_value(value: int) -> int:
    if value not in (1, -1):
        raise InvalidVoteError(value)
    return value


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_post(db: AsyncSession, post_id: int) -> Post | None:
    return await db.get(Post, post_id)


async def get_posts(
    db: AsyncSession,
    limit: int,
    cursor: str | None = None,
    creator_id: int | None = None,
    viewer_id: int | None = None,
) -> PostPage:
    """
    Return up to *limit* posts, newest first, strictly older than *cursor*
    (a millisecond epoch string) when one is given.

    *creator_id* narrows the listing to one author.  When *viewer_id* is
    set the page also carries that user's vote on each returned post.
    """
    real_limit = max(0, min(limit, settings.MAX_PAGE_SIZE))

    q = select(Post).order_by(Post.created_at.desc()).limit(real_limit + 1)
    if cursor:
        q = q.where(Post.created_at < from_millis(cursor))
    if creator_id is not None:
        q = q.where(Post.creator_id == creator_id)

    result = await db.execute(q)
    rows = list(result.scalars().all())

    page = PostPage(posts=rows[:real_limit], has_more=len(rows) == real_limit + 1)
    if viewer_id is not None:
        page.vote_status = await vote_statuses(db, viewer_id, [p.id for p in page.posts])
    return page


async def vote_statuses(
    db: AsyncSession, user_id: int, post_ids: Sequence[int]
) -> dict[int, int]:
    """Map each post in *post_ids* that *user_id* voted on to the vote value."""
    if not post_ids:
        return {}
    q = select(Vote.post_id, Vote.value).where(
        Vote.user_id == user_id, Vote.post_id.in_(post_ids)
    )
    result = await db.execute(q)
    return {post_id: value for post_id, value in result.all()}


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_post(db: AsyncSession, creator_id: int, data: PostInput) -> Post | None:
    """Create a post owned by *creator_id*; returns None when *data* is invalid."""
    if not is_valid_post(data):
        return None

    post = Post(title=data.title, text=data.text, creator_id=creator_id, points=0)
    db.add(post)
    await db.flush()
    return post


async def update_post(
    db: AsyncSession, post_id: int, creator_id: int, data: PostInput
) -> Post | None:
    """
    Replace title and text of *post_id* if it is owned by *creator_id*.

    A missing post, someone else's post and invalid input all return None.
    """
    if not is_valid_post(data):
        return None

    result = await db.execute(
        update(Post)
        .where(Post.id == post_id, Post.creator_id == creator_id)
        .values(title=data.title, text=data.text, updated_at=utcnow())
    )
    if result.rowcount == 0:
        return None
    return await db.get(Post, post_id, populate_existing=True)


async def delete_post(db: AsyncSession, post_id: int, user_id: int) -> DeleteOutcome:
    """
    Delete *post_id* and its votes when *user_id* created it.

    Votes go first so the post row is never removed while still referenced.
    Persistence errors are logged and reported as ``FAILED``.
    """
    post = await db.get(Post, post_id)
    if post is None:
        return DeleteOutcome.NOT_FOUND
    if post.creator_id != user_id:
        return DeleteOutcome.NOT_OWNER

    try:
        await db.execute(delete(Vote).where(Vote.post_id == post_id))
        await db.execute(delete(Post).where(Post.id == post_id))
        await db.flush()
    except SQLAlchemyError:
        logger.exception("Deleting post %s failed", post_id)
        await db.rollback()
        return DeleteOutcome.FAILED
    return DeleteOutcome.DELETED


async def vote(db: AsyncSession, post_id: int, user_id: int, value: int) -> bool:
    """
    Record *user_id*'s vote on *post_id* and keep ``points`` in step.

    - no previous vote: insert it and add *value* to the score
    - same value again: nothing changes
    - opposite value: flip the row and move the score by ``2 * value``;
      a concurrent flip that got there first leaves nothing to apply

    Returns False when the post does not exist.
    """
    value = normalize_vote_value(value)

    if await db.get(Post, post_id) is None:
        return False

    result = await db.execute(
        select(Vote).where(Vote.user_id == user_id, Vote.post_id == post_id)
    )
    existing = result.scalar_one_or_none()

    if existing is None:
        db.add(Vote(user_id=user_id, post_id=post_id, value=value))
        await db.flush()
        delta = value
    elif existing.value == value:
        return True
    else:
        # The row may have been flipped since it was read; only the request
        # that actually changes it moves the score.
        result = await db.execute(
            update(Vote)
            .where(
                Vote.user_id == user_id,
                Vote.post_id == post_id,
                Vote.value != value,
            )
            .values(value=value)
        )
        if result.rowcount != 1:
            return True
        delta = 2 * value

    await db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(points=Post.points + delta)
    )
    return True
