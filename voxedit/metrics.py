"""
Thread-safe JSONL event log for the command engine.

Usage:
    metrics = MetricsWriter(config.metrics_file)
    attach_metrics(engine.events, metrics)   # log every engine event
    ...
    metrics.shutdown()
"""

import json
import threading
import time
from pathlib import Path
from queue import Empty, Queue
from typing import Any, Callable, List, Optional

from .events import (
    CommandDetected, CommandIgnored, CommandUnrecognized, ControlActionRequested,
    ControlActionResult, Event, EventDispatcher, HistoryChanged,
)


class MetricsWriter:
    """
    Appends one JSON object per line. log() never blocks the caller:
    entries are queued and written in batches by a background thread.
    """

    def __init__(self, metrics_file: Path):
        self.metrics_file = Path(metrics_file)
        self._queue: "Queue[dict]" = Queue()
        self._shutdown = threading.Event()
        self._write_lock = threading.Lock()
        self._writer_thread = threading.Thread(target=self._writer_loop, daemon=True)
        self._writer_thread.start()

    def log(self, event: str, **kwargs: Any) -> None:
        """
        Queue an entry for writing.

        Args:
            event: Entry name (e.g., "command_detected", "history_change")
            **kwargs: Additional JSON-serializable fields
        """
        self._queue.put({"ts": time.time(), "event": event, **kwargs})

    def _writer_loop(self) -> None:
        while not self._shutdown.is_set():
            try:
                entries = [self._queue.get(timeout=0.5)]
            except Empty:
                continue
            entries.extend(self._drain())
            self._write_entries(entries)

    def _drain(self) -> List[dict]:
        entries = []
        while True:
            try:
                entries.append(self._queue.get_nowait())
            except Empty:
                return entries

    def _write_entries(self, entries: List[dict]) -> None:
        if not entries:
            return
        try:
            with self._write_lock:
                self.metrics_file.parent.mkdir(parents=True, exist_ok=True)
                with open(self.metrics_file, "a") as f:
                    for entry in entries:
                        f.write(json.dumps(entry, default=str) + "\n")
        except OSError as e:
            print(f"[Metrics] Failed to write {len(entries)} entries: {e}")

    def flush(self) -> None:
        """Write everything queued so far."""
        self._write_entries(self._drain())

    def shutdown(self) -> None:
        """Stop the writer thread after flushing."""
        self._shutdown.set()
        self._writer_thread.join(timeout=2.0)
        self.flush()


# Typed helpers for consistent entries

def log_command_detected(metrics: MetricsWriter, event: CommandDetected) -> None:
    command = event.command
    metrics.log(
        "command_detected",
        command_type=command.command_type.value,
        trigger_text=command.trigger_text[:100],
        confidence=round(command.confidence, 4),
        parameters=command.parameters,
        status=event.status,
        version=event.transcript.version,
        word_count=event.transcript.word_count,
    )


def log_command_ignored(metrics: MetricsWriter, event: CommandIgnored) -> None:
    metrics.log(
        "command_ignored",
        reason=event.reason,
        score=round(event.score, 4),
        phrase=event.phrase,
        text=event.text[:100],
    )


def log_command_unrecognized(metrics: MetricsWriter, event: CommandUnrecognized) -> None:
    pattern = event.command.pattern
    metrics.log(
        "command_unrecognized",
        trigger_text=event.command.trigger_text[:100],
        name=pattern.name if pattern else "",
    )


def log_history_change(metrics: MetricsWriter, event: HistoryChanged) -> None:
    metrics.log(
        "history_change",
        action=event.action,
        label=event.label,
        undo_depth=event.undo_depth,
        redo_depth=event.redo_depth,
        version=event.transcript.version,
    )


def log_control_action(metrics: MetricsWriter, event: Event) -> None:
    if isinstance(event, ControlActionResult):
        metrics.log(
            "control_result",
            action=event.action,
            success=event.success,
            error=event.error,
            state=event.state,
        )
    elif isinstance(event, ControlActionRequested):
        metrics.log("control_request", action=event.action)


def attach_metrics(events: EventDispatcher, metrics: MetricsWriter) -> Callable[[], None]:
    """
    Log every engine event to `metrics`.

    Returns:
        Function that detaches the logger
    """
    loggers = {
        CommandDetected: log_command_detected,
        CommandIgnored: log_command_ignored,
        CommandUnrecognized: log_command_unrecognized,
        HistoryChanged: log_history_change,
        ControlActionRequested: log_control_action,
        ControlActionResult: log_control_action,
    }

    unsubscribers = [
        events.subscribe(event_type, lambda e, fn=fn: fn(metrics, e))
        for event_type, fn in loggers.items()
    ]

    def detach() -> None:
        for unsubscribe in unsubscribers:
            unsubscribe()

    return detach


# Global instance (initialized lazily)
_metrics: Optional[MetricsWriter] = None


def get_metrics(metrics_file: Path) -> MetricsWriter:
    """Get or create the global metrics writer."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsWriter(metrics_file)
    return _metrics
