"""
In-process event dispatch for engine consumers (UI, audio pipeline, logs).

Handlers subscribe per event type and are called synchronously, in
subscription order, on the engine's thread. Consumers living on other
threads take a bounded channel (a Queue) instead.
"""

import asyncio
import threading
from collections import defaultdict
from dataclasses import dataclass
from queue import Empty, Full, Queue
from typing import Any, Callable, DefaultDict, List, Optional, Type

from .types import DetectedCommand, ExecutionStatus, TranscriptSnapshot


class Event:
    """Base class for all engine events."""
    pass


@dataclass
class CommandDetected(Event):
    command: DetectedCommand
    status: ExecutionStatus
    transcript: TranscriptSnapshot


@dataclass
class CommandIgnored(Event):
    text: str
    reason: str                         # "below_threshold" | "missing_prefix" | "disabled" | "paused" | "stopped"
    score: float = 0.0
    phrase: Optional[str] = None        # closest pattern, for near misses


@dataclass
class CommandUnrecognized(Event):
    command: DetectedCommand


@dataclass
class HistoryChanged(Event):
    action: str                         # "push" | "undo" | "redo" | "clear"
    transcript: TranscriptSnapshot
    undo_depth: int
    redo_depth: int
    label: str = ""


@dataclass
class ControlActionRequested(Event):
    action: str                         # "pause" | "resume" | "stop"
    command: Optional[DetectedCommand] = None


@dataclass
class ControlActionResult(Event):
    action: str
    success: bool
    error: Optional[str] = None
    state: str = ""                     # recording state after the acknowledgment


Handler = Callable[[Event], Any]


class EventDispatcher:
    """
    Publish/subscribe keyed by event class.

    Usage:
        events = EventDispatcher()
        events.subscribe(CommandDetected, lambda e: print(e.command))
        ui_queue = events.channel(maxsize=100)
    """

    def __init__(self):
        self._subs: DefaultDict[Type[Event], List[Handler]] = defaultdict(list)
        self._all: List[Handler] = []
        self._lock = threading.Lock()
        self.dropped_count = 0

    def subscribe(self, event_type: Type[Event], handler: Handler) -> Callable[[], None]:
        """
        Register a handler for one event type.

        Returns:
            Function that removes the subscription
        """
        with self._lock:
            self._subs[event_type].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._subs[event_type]:
                    self._subs[event_type].remove(handler)

        return unsubscribe

    def subscribe_all(self, handler: Handler) -> Callable[[], None]:
        """Register a handler for every event type."""
        with self._lock:
            self._all.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._all:
                    self._all.remove(handler)

        return unsubscribe

    def emit(self, event: Event) -> None:
        """
        Deliver an event to all matching handlers.

        A failing handler is reported and skipped; the rest still run.
        Coroutine results are scheduled on the running loop, if any.
        """
        with self._lock:
            handlers = list(self._subs[type(event)]) + list(self._all)

        for handler in handlers:
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    _schedule(result)
            except Exception as e:
                print(f"[Events] Handler error for {type(event).__name__}: {e}")

    def channel(self, maxsize: int = 100) -> "Queue[Event]":
        """
        Bounded queue receiving every event.

        When the queue is full the oldest event is dropped to make room,
        so a slow consumer never blocks the engine.
        """
        queue: "Queue[Event]" = Queue(maxsize=maxsize)

        def enqueue(event: Event) -> None:
            while True:
                try:
                    queue.put_nowait(event)
                    return
                except Full:
                    try:
                        queue.get_nowait()
                        self.dropped_count += 1
                    except Empty:
                        pass

        self.subscribe_all(enqueue)
        return queue


def _schedule(coro) -> None:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        print("[Events] Async handler called without a running loop, skipping")
        coro.close()
        return
    loop.create_task(coro)
