"""
Request-scoped batching loaders.

A loader is built once per GraphQL request (see ``api.context``) and
dropped with it, so nothing it memoises can go stale across requests.
"""
from strawberry.dataloader import DataLoader
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lireddit.database import session_scope
from lireddit.errors import UserNotFoundError
from lireddit.models import User
from lireddit.services import auth_service


def create_user_loader(
    session_factory: async_sessionmaker[AsyncSession],
) -> DataLoader[int, User]:
    """
    Return a loader that turns every ``load(id)`` issued in the same
    event-loop turn into one ``SELECT ... WHERE id IN (...)``.

    Keys reach the batch function already deduplicated.  An id with no row
    fails only its own ``load`` with ``UserNotFoundError``.
    """

    async def batch_load(user_ids: list[int]) -> list[User | UserNotFoundError]:
        async with session_scope(session_factory) as db:
            users = await auth_service.get_users_by_ids(db, user_ids)
        by_id = {user.id: user for user in users}
        return [by_id.get(user_id) or UserNotFoundError(user_id) for user_id in user_ids]

    return DataLoader(load_fn=batch_load)
