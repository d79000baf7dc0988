"""Structured JSON logging for tracking sessions.

Records are handed to a bounded queue on the calling thread and rendered to
the output stream by a background :class:`~logging.handlers.QueueListener`,
so a slow stream never stalls the sampling loop. When the queue is full the
record is dropped and counted.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from queue import Full, Queue
from typing import IO, Final, override
from uuid import uuid4

__all__ = [
    "BoundedQueueHandler",
    "JsonFormatter",
    "LoggingHandle",
    "configure_structured_logging",
]

LOGGER = logging.getLogger(__name__)

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", None, None).__dict__
) | {"message", "asctime", "trace_id"}

DEFAULT_QUEUE_CAPACITY: Final[int] = 1024


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line.

    Args:
        default_trace_id: Trace id used when a record does not carry its own
            ``trace_id`` attribute.
        static_fields: Fields added to every payload, such as the project name.
    """

    def __init__(
        self,
        *,
        default_trace_id: str | None = None,
        static_fields: Mapping[str, object] | None = None,
    ) -> None:
        super().__init__()
        self._default_trace_id = default_trace_id
        self._static_fields = dict(static_fields or {})

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - inherited
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "trace_id": getattr(record, "trace_id", None) or self._default_trace_id,
            **self._static_fields,
            "context": {
                key: value
                for key, value in record.__dict__.items()
                if key not in _RECORD_ATTRIBUTES
            },
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            payload["exception"] = record.exc_text

        return json.dumps(payload, default=str)


class BoundedQueueHandler(logging.handlers.QueueHandler):
    """Queue handler that never blocks; overflowing records are counted and dropped."""

    def __init__(self, queue: Queue[logging.LogRecord]) -> None:
        super().__init__(queue)
        self.dropped = 0

    @override
    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except Full:
            self.dropped += 1

    @override
    def handleError(self, record: logging.LogRecord) -> None:
        self.dropped += 1


@dataclass(slots=True)
class LoggingHandle:
    """Handler and listener installed by :func:`configure_structured_logging`."""

    logger: logging.Logger
    handler: BoundedQueueHandler
    listener: logging.handlers.QueueListener
    trace_id: str
    closed: bool = field(default=False, init=False)

    @property
    def dropped(self) -> int:
        """Records discarded because the queue was full."""
        return self.handler.dropped

    def close(self) -> None:
        """Detach the handler and drain the listener. Safe to call twice."""
        if self.closed:
            return
        self.closed = True
        self.logger.removeHandler(self.handler)
        try:
            self.listener.stop()
        except Exception as exc:  # pragma: no cover - listener teardown
            LOGGER.warning("Failed to stop logging listener", exc_info=exc)
        if self.handler.dropped:
            LOGGER.warning(
                "Structured log records dropped",
                extra={"trace_id": self.trace_id, "dropped": self.handler.dropped},
            )


def configure_structured_logging(
    logger: logging.Logger,
    *,
    trace_id: str | None = None,
    level: int = logging.INFO,
    stream: IO[str] | None = None,
    static_fields: Mapping[str, object] | None = None,
    capacity: int = DEFAULT_QUEUE_CAPACITY,
) -> LoggingHandle:
    """Attach a structured JSON handler to ``logger``.

    Args:
        logger: Target logger, usually the ``green_carbon`` package logger.
        trace_id: Identifier stamped on every record; a uuid4 when omitted.
        level: Logger verbosity.
        stream: Destination stream; ``sys.stderr`` when omitted.
        static_fields: Extra top-level fields for every payload.
        capacity: Maximum number of records buffered before dropping.

    Returns:
        Handle owning the queue handler and listener; ``close()`` undoes the
        configuration.
    """
    logger.setLevel(level)
    effective_trace_id = trace_id or str(uuid4())

    record_queue: Queue[logging.LogRecord] = Queue(maxsize=capacity)
    queue_handler = BoundedQueueHandler(record_queue)

    stream_handler = logging.StreamHandler(stream)
    stream_handler.setFormatter(
        JsonFormatter(default_trace_id=effective_trace_id, static_fields=static_fields)
    )
    listener = logging.handlers.QueueListener(
        record_queue, stream_handler, respect_handler_level=True
    )
    listener.start()
    logger.addHandler(queue_handler)
    return LoggingHandle(
        logger=logger,
        handler=queue_handler,
        listener=listener,
        trace_id=effective_trace_id,
    )
