import logging
import time
from contextvars import ContextVar

from sqlalchemy import event
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("lireddit.access")


class QueryStats:
    """Mutable per-request counter shared by every task spawned for the request."""

    __slots__ = ("count",)

    def __init__(self) -> None:
        self.count = 0


# ---------------------------------------------------------------------------
# Per-request context variable
# ---------------------------------------------------------------------------

# GraphQL resolves sibling fields in separate tasks, each with a *copy* of the
# context.  Storing a mutable holder (rather than an int) keeps increments made
# in those tasks visible to the middleware.
query_stats_var: ContextVar[QueryStats | None] = ContextVar("query_stats", default=None)


def install_query_counter(engine) -> None:
    """
    Register a ``before_cursor_execute`` listener on *engine* that counts
    every SQL statement against the current request's ``QueryStats``.

    Must be called once per engine (production engine in ``database.py``,
    test engine in ``conftest.py``).
    """
    sync_engine = engine.sync_engine

    @event.listens_for(sync_engine, "before_cursor_execute")
    def _count_query(conn, cursor, statement, parameters, context, executemany):
        stats = query_stats_var.get()
        if stats is not None:
            stats.count += 1


# ---------------------------------------------------------------------------
# Middleware (pure ASGI, avoids BaseHTTPMiddleware ContextVar isolation)
# ---------------------------------------------------------------------------

class RequestMetricsMiddleware:
    """
    Pure ASGI middleware that reports, per HTTP request:

    - ``X-Response-Time-Ms``: wall-clock time for the entire request.
    - ``X-Query-Count``: SQL statements executed while serving it.

    The same figures are written as one access-log line once the response
    has started.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        stats = QueryStats()
        token = query_stats_var.set(stats)
        start = time.perf_counter()

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                headers = list(message.get("headers", []))
                headers.append((b"x-response-time-ms", str(duration_ms).encode()))
                headers.append((b"x-query-count", str(stats.count).encode()))
                message["headers"] = headers
                logger.info(
                    "%s %s %s %.2fms queries=%d",
                    scope["method"],
                    scope["path"],
                    message["status"],
                    duration_ms,
                    stats.count,
                )
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            query_stats_var.reset(token)
