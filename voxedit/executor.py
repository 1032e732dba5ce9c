"""
Command executor: turns a DetectedCommand into a transcript edit or a
control request.

Text commands are pure text -> text transforms looked up in a strategy
table. The executor diffs the result against the current transcript,
applies the single resulting EditOperation and records it as one history
entry. Control commands never touch the transcript or the history.
"""

from dataclasses import replace
from typing import Callable, Dict, Optional

from .events import CommandDetected, CommandUnrecognized, EventDispatcher, HistoryChanged
from .history import HistoryManager
from .params import resolve_count
from .transcript import (
    TranscriptBuffer, append_break, capitalize_last_word, delete_last_paragraphs,
    delete_last_sentences, delete_last_words, join_dictation, lowercase_last_word,
    punctuate, word_count,
)
from .types import (
    CommandType, DetectedCommand, EditOperation, ExecutionResult, ExecutionStatus,
    HistoryEntry, TranscriptSnapshot,
)


TextTransform = Callable[[str, DetectedCommand], str]

# on_control(action, command)
ControlSink = Callable[[str, DetectedCommand], None]


def _count(command: DetectedCommand) -> int:
    return command.count or 1


TEXT_COMMANDS: Dict[CommandType, TextTransform] = {
    CommandType.DELETE_WORDS: lambda text, cmd: delete_last_words(text, _count(cmd)),
    CommandType.DELETE_SENTENCES: lambda text, cmd: delete_last_sentences(text, _count(cmd)),
    CommandType.DELETE_PARAGRAPHS: lambda text, cmd: delete_last_paragraphs(text, _count(cmd)),
    CommandType.CAPITALIZE: lambda text, cmd: capitalize_last_word(text),
    CommandType.LOWERCASE: lambda text, cmd: lowercase_last_word(text),
    CommandType.NEW_LINE: lambda text, cmd: append_break(text, 1),
    CommandType.NEW_PARAGRAPH: lambda text, cmd: append_break(text, 2),
    CommandType.PERIOD: lambda text, cmd: punctuate(text, "."),
    CommandType.COMMA: lambda text, cmd: punctuate(text, ","),
    CommandType.QUESTION_MARK: lambda text, cmd: punctuate(text, "?"),
    CommandType.EXCLAMATION_MARK: lambda text, cmd: punctuate(text, "!"),
}

CONTROL_COMMANDS: Dict[CommandType, str] = {
    CommandType.PAUSE: "pause",
    CommandType.RESUME: "resume",
    CommandType.STOP: "stop",
}


class CommandExecutor:
    """
    The only writer of the transcript and the history.

    Usage:
        executor = CommandExecutor(buffer, history, events, on_control=engine.request_control)
        result = executor.execute(command)
        executor.append_dictation("hello world")
    """

    def __init__(
        self,
        transcript: TranscriptBuffer,
        history: HistoryManager,
        events: EventDispatcher,
        on_control: Optional[ControlSink] = None,
    ):
        self.transcript = transcript
        self.history = history
        self.events = events
        self.on_control = on_control

    def execute(self, command: DetectedCommand, retract_from: Optional[int] = None) -> ExecutionResult:
        """
        Execute one command.

        Args:
            command: The detected command
            retract_from: Transcript offset where the spoken phrase began, when
                part of it was already appended as dictation. That text is
                removed as part of the same edit.

        Returns:
            ExecutionResult; never raises for unknown or no-op commands
        """
        command_type = command.command_type

        if command_type in (CommandType.UNDO, CommandType.REDO):
            return self._execute_history(command)

        current = self.transcript.text
        base = current if retract_from is None else current[:retract_from]

        if command_type.category == "destructive":
            command = replace(command, parameters=resolve_count(command, word_count(base)))

        transform = TEXT_COMMANDS.get(command_type)
        if transform is not None:
            new_text = transform(base, command)
        else:
            new_text = base

        entry = self._record(current, new_text, command)

        if transform is not None:
            status: ExecutionStatus = "applied" if entry else "no_effect"
        elif command_type in CONTROL_COMMANDS:
            status = "forwarded"
            self._forward_control(command)
        else:
            status = "unrecognized"
            name = command.pattern.name if command.pattern else command_type.value
            print(f"[Executor] Unrecognized command '{name}' ({command.trigger_text!r})")
            self.events.emit(CommandUnrecognized(command=command))

        result = ExecutionResult(
            command=command,
            status=status,
            transcript=self.transcript.snapshot(),
            entry=entry,
        )
        print(f"[Executor] {command_type.value} -> {status} "
              f"(confidence {command.confidence:.2f}, params {command.parameters})")
        self.events.emit(CommandDetected(command=command, status=status, transcript=result.transcript))
        return result

    def append_dictation(self, text: str) -> Optional[HistoryEntry]:
        """Append dictated text as its own history entry. Returns None if nothing was added."""
        current = self.transcript.text
        addition = join_dictation(current, text)
        if not addition:
            return None
        return self._record(current, current + addition, None)

    def undo(self) -> Optional[HistoryEntry]:
        entry = self.history.undo()
        if entry is not None:
            self._emit_history("undo", entry.label)
        return entry

    def redo(self) -> Optional[HistoryEntry]:
        entry = self.history.redo()
        if entry is not None:
            self._emit_history("redo", entry.label)
        return entry

    def clear(self) -> TranscriptSnapshot:
        snapshot = self.history.clear()
        print("[Executor] Transcript and history cleared")
        self._emit_history("clear")
        return snapshot

    def _execute_history(self, command: DetectedCommand) -> ExecutionResult:
        if command.command_type == CommandType.UNDO:
            entry = self.undo()
            status: ExecutionStatus = "applied" if entry else "nothing_to_undo"
        else:
            entry = self.redo()
            status = "applied" if entry else "nothing_to_redo"

        snapshot = self.transcript.snapshot()
        print(f"[Executor] {command.command_type.value} -> {status}")
        self.events.emit(CommandDetected(command=command, status=status, transcript=snapshot))
        return ExecutionResult(command=command, status=status, transcript=snapshot, entry=entry)

    def _record(self, before: str, after: str, command: Optional[DetectedCommand]) -> Optional[HistoryEntry]:
        """Apply before -> after as one history entry. None when nothing changed."""
        operation = EditOperation.diff(before, after)
        if operation is None:
            return None
        entry = self.history.record(operation, command)
        self._emit_history("push", entry.label)
        return entry

    def _forward_control(self, command: DetectedCommand) -> None:
        action = CONTROL_COMMANDS[command.command_type]
        if self.on_control is None:
            print(f"[Executor] No recording controller for '{action}'")
            return
        self.on_control(action, command)

    def _emit_history(self, action: str, label: str = "") -> None:
        self.events.emit(HistoryChanged(
            action=action,
            transcript=self.transcript.snapshot(),
            undo_depth=self.history.undo_depth,
            redo_depth=self.history.redo_depth,
            label=label,
        ))
