# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single domain aggregate:
#
#   auth_service: registration, login, password reset for User
#   post_service: CRUD + keyset pagination + voting for Post
#
# All service functions accept an AsyncSession as their first argument
# so that the GraphQL layer controls the transaction boundary via
# ``Context.db()``.
