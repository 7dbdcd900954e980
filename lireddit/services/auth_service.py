"""
Auth service: registration, login and password reset for the User aggregate.

Design notes
------------
- User-correctable failures come back as ``FieldError`` lists inside a
  ``UserResult``; nothing in this module raises for bad input.
- Binding the resulting user to a session is the caller's job: it needs the
  HTTP response to set the cookie, which this layer never sees.
- Service functions flush but do not commit; the transaction boundary is
  owned by the caller's session scope.
"""
import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lireddit import mailer
from lireddit.config import settings
from lireddit.kv import KeyValueStore
from lireddit.models import User
from lireddit.schemas import FieldError, UsernamePasswordInput
from lireddit.security import hash_password, verify_password
from lireddit.validation import validate_password, validate_register

logger = logging.getLogger(__name__)

# constraint name -> column, as created by alembic/versions/0001_initial.py
UNIQUE_CONSTRAINTS = {
    "users_email_key": "email",
    "ix_users_username": "username",
}


@dataclass
class UserResult:
    user: User | None = None
    errors: list[FieldError] = field(default_factory=list)

    @classmethod
    def error(cls, field_name: str, message: str) -> "UserResult":
        return cls(errors=[FieldError(field=field_name, message=message)])


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def get_user(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)


async def get_users_by_ids(db: AsyncSession, user_ids: Sequence[int]) -> list[User]:
    """Fetch every user in *user_ids* with a single ``IN`` query (order not kept)."""
    if not user_ids:
        return []
    result = await db.execute(select(User).where(User.id.in_(user_ids)))
    return list(result.scalars().all())


async def get_user_by_login(db: AsyncSession, username_or_email: str) -> User | None:
    """Look the user up by email when the identifier has an ``@``, else by username."""
    if "@" in username_or_email:
        q = select(User).where(User.email == username_or_email)
    else:
        q = select(User).where(User.username == username_or_email)
    result = await db.execute(q)
    return result.scalar_one_or_none()


def conflicting_column(exc: IntegrityError) -> str | None:
    """
    Name the ``users`` column behind a unique violation.

    asyncpg exposes the violated constraint on the driver error chained to
    ``exc.orig``; its message also quotes the offending value, so only the
    constraint name is trusted.  SQLite names the column in its message
    (``UNIQUE constraint failed: users.email``) and never quotes values.
    """
    constraint = getattr(exc.orig.__cause__, "constraint_name", None)
    if constraint is not None:
        return UNIQUE_CONSTRAINTS.get(constraint)
    message = str(exc.orig)
    for column in ("email", "username"):
        if f"users.{column}" in message:
            return column
    return None


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def register(db: AsyncSession, options: UsernamePasswordInput) -> UserResult:
    """
    Create a user after validating *options*.

    Uniqueness is enforced by the database; a violation is translated into
    a field error on the offending column instead of a generic failure.
    """
    errors = validate_register(options)
    if errors:
        return UserResult(errors=errors)

    user = User(
        username=options.username,
        email=options.email,
        password=hash_password(options.password),
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        logger.info("Registration conflict for username=%r: %s", options.username, exc.orig)
        if conflicting_column(exc) == "email":
            return UserResult.error("email", "the email already exists")
        return UserResult.error("username", "the username already exists")
    return UserResult(user=user)


async def login(db: AsyncSession, username_or_email: str, password: str) -> UserResult:
    user = await get_user_by_login(db, username_or_email)
    if user is None:
        return UserResult.error("usernameOrEmail", "that user does not exist")
    if not verify_password(password, user.password):
        return UserResult.error("password", "invalid credentials")
    return UserResult(user=user)


async def forgot_password(db: AsyncSession, store: KeyValueStore, email: str) -> bool:
    """
    Issue a single-use reset token for the account registered under *email*.

    Always returns True so the response never reveals whether the email
    belongs to an account.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        return True

    token = str(uuid.uuid4())
    await store.set(
        settings.FORGOT_PASSWORD_PREFIX + token,
        str(user.id),
        ttl=settings.FORGOT_PASSWORD_TTL,
    )
    link = f"{settings.FRONTEND_URL}/change-password/{token}"
    await mailer.send_email(email, f'<a href="{link}">reset password</a>')
    return True


async def change_password(
    db: AsyncSession,
    store: KeyValueStore,
    token: str,
    new_password: str,
) -> UserResult:
    """
    Set a new password for the user behind reset *token*.

    The token is left in place; the caller discards it with
    ``discard_reset_token`` once the password change has been committed.
    """
    errors = validate_password(new_password, field="newPassword")
    if errors:
        return UserResult(errors=errors)

    key = settings.FORGOT_PASSWORD_PREFIX + token
    user_id = await store.get(key)
    if user_id is None:
        return UserResult.error("token", "token expired")

    user = await get_user(db, int(user_id))
    if user is None:
        return UserResult.error("token", "user no longer exists")

    user.password = hash_password(new_password)
    await db.flush()
    return UserResult(user=user)


async def discard_reset_token(store: KeyValueStore, token: str) -> None:
    await store.delete(settings.FORGOT_PASSWORD_PREFIX + token)
