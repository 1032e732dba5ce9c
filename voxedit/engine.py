"""
Command engine: the single-writer pipeline behind a live transcript.

Transcript deltas from speech recognition arrive on any thread. They are
queued to one worker thread and pass matcher -> executor in arrival
order. UI calls (undo, redo, clear, config changes) take the same
pipeline lock, so only one detection-to-execution step is ever in flight.

Usage:
    engine = CommandEngine(config.snapshot(), controller=BackgroundController(...))
    engine.events.subscribe(CommandDetected, on_command)
    engine.feed("the quick brown fox")
    engine.feed("delete last 2 words").result()
    engine.snapshot().text   # "the quick"
"""

import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Deque, List, Optional, Tuple

from .controller import CONTROL_ACTIONS, NullController, RecordingController
from .events import CommandIgnored, ControlActionRequested, ControlActionResult, EventDispatcher
from .executor import CommandExecutor
from .history import HistoryManager
from .matcher import CommandMatcher, MatchResult
from .metrics import MetricsWriter, attach_metrics
from .patterns import build_pattern_table, make_pattern, registered_types
from .similarity import Scorer, get_scorer, tokenize
from .transcript import TranscriptBuffer
from .types import (
    CommandPattern, CommandType, ConfigSnapshot, DetectedCommand, ExecutionResult,
    HistoryEntry, Token, TranscriptSnapshot,
)


# Most recent commands kept for consumers (newest first)
RECENT_COMMANDS_LIMIT = 20

# Recording state after each control action
_STATE_AFTER = {
    "pause": "paused",
    "resume": "active",
    "stop": "stopped",
}

# Only these are listened for while recording is paused
_PAUSED_COMMANDS = frozenset({CommandType.RESUME, CommandType.STOP})


class CommandEngine:
    """
    Owns one transcript, its history and the detection pipeline.

    Consumers never see the live buffer: every event and accessor hands
    out immutable snapshots.
    """

    def __init__(
        self,
        config: Optional[ConfigSnapshot] = None,
        controller: Optional[RecordingController] = None,
        events: Optional[EventDispatcher] = None,
        scorer: Optional[Scorer] = None,
        metrics: Optional[MetricsWriter] = None,
    ):
        self.config: ConfigSnapshot = config or ConfigSnapshot()
        self.events = events or EventDispatcher()
        self.controller = controller or NullController()

        self.transcript = TranscriptBuffer()
        self.history = HistoryManager(self.transcript, self.config.history_depth)
        self.executor = CommandExecutor(
            self.transcript, self.history, self.events, on_control=self.request_control,
        )

        self._scorer_override = scorer
        self._registered: List[CommandPattern] = []
        self.matcher = self._build_matcher(self.config)

        # Unconsumed tail of earlier dictation, offsets into the transcript
        self._context: List[Token] = []
        self._last_version: Optional[int] = None
        self._running = True
        self._recording_state = "active"
        self._recent: Deque[DetectedCommand] = deque(maxlen=RECENT_COMMANDS_LIMIT)

        self._lock = threading.RLock()          # pipeline lock
        self._state_lock = threading.Lock()     # recording state only
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="voxedit")

        self._detach_metrics = None
        if metrics is not None:
            self._detach_metrics = attach_metrics(self.events, metrics)

    # Delta intake

    def feed(self, delta: str, version: Optional[int] = None) -> "Future[Optional[ExecutionResult]]":
        """
        Queue a transcript delta. Never blocks.

        Args:
            delta: Newly recognized text
            version: Optional sequence marker; deltas not newer than the
                last processed one are dropped as duplicates

        Returns:
            Future resolving to the executed command's result, or None
        """
        future = self._worker.submit(self.process, delta, version)
        future.add_done_callback(self._report_failure)
        return future

    def process(self, delta: str, version: Optional[int] = None) -> Optional[ExecutionResult]:
        """Run one delta through the pipeline on the calling thread."""
        with self._lock:
            if version is not None:
                if self._last_version is not None and version <= self._last_version:
                    print(f"[Engine] Dropping duplicate delta (version {version})")
                    return None
                self._last_version = version

            if not delta or not delta.strip():
                return None

            config = self.config
            if not config.enabled or not self._running:
                self.events.emit(CommandIgnored(text=delta, reason="disabled"))
                return None

            state = self.recording_state
            if state == "stopped":
                print("[Engine] Recording stopped, discarding delta")
                self.events.emit(CommandIgnored(text=delta, reason="stopped"))
                return None

            if state == "paused":
                result = self.matcher.scan([], delta, config, allowed=_PAUSED_COMMANDS)
                if result.command is None:
                    self.events.emit(CommandIgnored(text=delta, reason="paused"))
                    return None
                self._context = []
                return self._execute(result)

            result = self.matcher.scan(self._context, delta, config)
            if result.command is None:
                if result.near_miss is not None:
                    self._report_near_miss(result)
                self._append_dictation(delta)
                return None

            before = delta[:result.before_end].rstrip()
            if before:
                self._append_dictation(before)

            self._context = []
            executed = self._execute(result)

            after = delta[result.after_start:]
            if after.strip():
                if self.recording_state == "active":
                    self._append_dictation(after)
                else:
                    print(f"[Engine] Discarding text after {executed.command.command_type.value}: {after.strip()!r}")
            return executed

    def _execute(self, result: MatchResult) -> ExecutionResult:
        executed = self.executor.execute(result.command, retract_from=result.retract_from)
        self._recent.appendleft(executed.command)
        return executed

    def _append_dictation(self, text: str) -> Optional[HistoryEntry]:
        entry = self.executor.append_dictation(text)
        if entry is None:
            return None
        operation = entry.operation
        tokens = tokenize(operation.inserted, offset=operation.start, in_delta=False)
        lookback = self.config.lookback_words
        self._context = (self._context + tokens)[-lookback:] if lookback > 0 else []
        return entry

    def _report_near_miss(self, result: MatchResult) -> None:
        near = result.near_miss
        text = " ".join(t.raw or t.text for t in result.window[near.phrase_start:near.end])
        print(f"[Matcher] Near miss '{near.pattern.phrase}' ({near.raw_score:.2f}, {result.ignore_reason})")
        self.events.emit(CommandIgnored(
            text=text,
            reason=result.ignore_reason,
            score=near.raw_score,
            phrase=near.pattern.phrase,
        ))

    def _report_failure(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            print(f"[Engine] Delta processing failed: {error}")

    # UI entry points

    def undo(self) -> Optional[HistoryEntry]:
        with self._lock:
            self._context = []
            return self.executor.undo()

    def redo(self) -> Optional[HistoryEntry]:
        with self._lock:
            self._context = []
            return self.executor.redo()

    def clear(self) -> TranscriptSnapshot:
        """Reset the transcript and wipe both history stacks in one step."""
        with self._lock:
            self._context = []
            return self.executor.clear()

    def snapshot(self) -> TranscriptSnapshot:
        return self.transcript.snapshot()

    def history_snapshot(self) -> Tuple[Tuple[HistoryEntry, ...], Tuple[HistoryEntry, ...]]:
        """(undo stack, redo stack), oldest first."""
        return self.history.entries()

    # Detection lifecycle and configuration

    def start(self) -> None:
        """Start detection. A stopped recording counts as a new one."""
        with self._lock:
            self._running = True
            with self._state_lock:
                self._recording_state = "active"
            print("[Engine] Voice command detection started")

    def stop(self) -> None:
        """Stop detection; incoming deltas are discarded until start()."""
        with self._lock:
            self._running = False
            self._context = []
            print("[Engine] Voice command detection stopped")

    @property
    def is_enabled(self) -> bool:
        return self._running and self.config.enabled

    def set_config(self, config: ConfigSnapshot) -> None:
        """Swap configuration between deltas."""
        with self._lock:
            self.config = config
            self.history.set_depth(config.history_depth)
            self.matcher = self._build_matcher(config)
            print(f"[Engine] Config updated (threshold {config.confidence_threshold:.2f}, "
                  f"prefix {config.trigger_prefix!r}, required {config.require_prefix})")

    def register_pattern(self, trigger: str, command: str) -> CommandPattern:
        """
        Add a trigger phrase at runtime.

        Raises:
            ValueError: if the trigger is empty after normalization
        """
        pattern = make_pattern(trigger, command)
        if pattern is None:
            raise ValueError(f"Empty trigger for command '{command}'")
        with self._lock:
            self._registered.append(pattern)
            self.matcher = self._build_matcher(self.config)
        print(f"[Engine] Registered '{pattern.phrase}' -> {pattern.name or pattern.command_type.value}")
        return pattern

    def is_command_registered(self, command_type: CommandType) -> bool:
        return command_type in registered_types(self.matcher.patterns)

    def _build_matcher(self, config: ConfigSnapshot) -> CommandMatcher:
        custom = list(config.custom_commands)
        patterns = build_pattern_table(custom)
        for pattern in self._registered:
            if all(p.phrase != pattern.phrase for p in patterns):
                patterns.append(pattern)
        scorer = self._scorer_override or get_scorer(config.scorer)
        return CommandMatcher(patterns, scorer)

    # Recent commands

    def recent_commands(self) -> List[DetectedCommand]:
        """Executed commands, newest first."""
        with self._lock:
            return list(self._recent)

    def last_command(self) -> Optional[DetectedCommand]:
        with self._lock:
            return self._recent[0] if self._recent else None

    def clear_recent_commands(self) -> None:
        with self._lock:
            self._recent.clear()

    # Recording control

    @property
    def recording_state(self) -> str:
        """"active", "paused" or "stopped" as last requested."""
        with self._state_lock:
            return self._recording_state

    def request_control(self, action: str, command: Optional[DetectedCommand] = None) -> None:
        """
        Ask the recording controller to pause, resume or stop.

        The local state changes right away; a failed acknowledgment
        restores the previous state.
        """
        if action not in CONTROL_ACTIONS:
            raise ValueError(f"Unknown control action: {action}")

        with self._state_lock:
            previous = self._recording_state
            self._recording_state = _STATE_AFTER[action]

        print(f"[Control] Requesting {action} ({previous} -> {_STATE_AFTER[action]})")
        self.events.emit(ControlActionRequested(action=action, command=command))

        def on_result(acked: str, success: bool, error: Optional[str]) -> None:
            self._on_control_result(acked, success, error, previous)

        try:
            self.controller.request(action, on_result)
        except Exception as e:
            on_result(action, False, str(e)[:100])

    def _on_control_result(self, action: str, success: bool, error: Optional[str], previous: str) -> None:
        with self._state_lock:
            if not success and self._recording_state == _STATE_AFTER[action]:
                self._recording_state = previous
            state = self._recording_state

        if success:
            print(f"[Control] {action} acknowledged")
        else:
            print(f"[Control] {action} failed: {error} (state restored to {state})")
        self.events.emit(ControlActionResult(action=action, success=success, error=error, state=state))

    def shutdown(self) -> None:
        """Finish queued deltas and release threads."""
        self._worker.shutdown(wait=True)
        self.controller.shutdown()
        if self._detach_metrics is not None:
            self._detach_metrics()
            self._detach_metrics = None
