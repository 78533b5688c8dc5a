"""Structured JSON logging for the catalog engine."""

import contextlib
import contextvars
import logging
import uuid
from collections.abc import Iterator
from typing import TextIO

from pythonjsonlogger.json import JsonFormatter

query_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("query_id", default="")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(query_id)s"


class QueryIdFilter(logging.Filter):
    """Inject the current query_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.query_id = query_id_var.get("")  # type: ignore[attr-defined]
        return True


def setup_logging(*, debug: bool = False, stream: TextIO | None = None) -> None:
    """Configure root logger with JSON formatter and query-id filter."""
    handler = logging.StreamHandler(stream)
    formatter = JsonFormatter(
        fmt=LOG_FORMAT,
        rename_fields={"asctime": "timestamp", "levelname": "level"},
    )
    handler.setFormatter(formatter)
    handler.addFilter(QueryIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)


def new_query_id() -> str:
    """Generate a new query ID."""
    return uuid.uuid4().hex[:16]


@contextlib.contextmanager
def query_context(query_id: str | None = None) -> Iterator[str]:
    """Bind a query id to every record logged inside the block.

    A nested block without an explicit id keeps the enclosing one, so a
    suggestion lookup and the search it runs share an id.
    """
    current = query_id_var.get("")
    if current and query_id is None:
        yield current
        return

    token = query_id_var.set(query_id or new_query_id())
    try:
        yield query_id_var.get()
    finally:
        query_id_var.reset(token)
