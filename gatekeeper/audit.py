# CampusGate - audit sink (every denial and every approval is recorded)
import json
import logging
import logging.handlers
import queue
from collections import deque
from pathlib import Path

from .models import AuditEvent, PolicyDecision, ReasonCode

AUDIT_LOGGER_NAME = "campusgate.audit"


class AuditFileHandler(logging.Handler):
    """Appends one JSON object per audit event to a .jsonl file."""

    def __init__(self, filepath: Path):
        super().__init__()
        self.filepath = Path(filepath)
        self.filepath.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = getattr(record, "audit_event", None)
            if entry:
                with open(self.filepath, "a", encoding="utf-8") as f:
                    f.write(json.dumps(entry, default=str) + "\n")
        except Exception:
            self.handleError(record)


class AuditMemoryHandler(logging.Handler):
    """Keeps the most recent events for the admin audit sample endpoint."""

    def __init__(self, capacity: int = 1000):
        super().__init__()
        self.entries: deque[dict] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = getattr(record, "audit_event", None)
            if entry:
                self.entries.append(entry)
        except Exception:
            self.handleError(record)


def _level_for(event: AuditEvent) -> int:
    if event.reason == ReasonCode.NO_MATCHING_RULE:
        return logging.ERROR
    if event.policy_decision == PolicyDecision.DENY:
        return logging.WARNING
    return logging.INFO


class AuditSink:
    """
    Append-only audit trail.

    record() only enqueues; a QueueListener thread delivers to the file and
    memory handlers, so callers never wait on disk I/O.
    """

    def __init__(
        self,
        log_path: Path | None = None,
        memory_capacity: int = 1000,
        extra_handlers: list[logging.Handler] | None = None,
    ):
        self._queue: queue.Queue = queue.Queue(-1)
        self._queue_handler = logging.handlers.QueueHandler(self._queue)
        self.memory = AuditMemoryHandler(memory_capacity)
        handlers: list[logging.Handler] = [self.memory]
        if log_path is not None:
            handlers.append(AuditFileHandler(log_path))
        handlers.extend(extra_handlers or [])
        self._listener = logging.handlers.QueueListener(self._queue, *handlers, respect_handler_level=True)
        self._running = False
        self.start()

    def start(self) -> None:
        if not self._running:
            self._listener.start()
            self._running = True

    def stop(self) -> None:
        """Drain pending events and stop the delivery thread."""
        if self._running:
            self._listener.stop()
            self._running = False

    def flush(self) -> None:
        self.stop()
        self.start()

    def record(self, event: AuditEvent) -> None:
        level = _level_for(event)
        record = logging.LogRecord(
            name=AUDIT_LOGGER_NAME,
            level=level,
            pathname="",
            lineno=0,
            msg="%s %s %s/%s",
            args=(event.policy_decision.value, event.action.value, event.resource_kind.value, event.resource_id),
            exc_info=None,
        )
        record.audit_event = event.model_dump(mode="json")
        self._queue_handler.handle(record)

    def recent(self, limit: int = 50) -> list[dict]:
        entries = list(self.memory.entries)
        return entries[-limit:] if limit > 0 else []
