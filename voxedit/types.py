"""
Shared type definitions for VoxEdit.
"""

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Literal, Optional, Tuple


class CommandType(Enum):
    """Closed set of commands the engine knows how to execute."""

    # Destructive text edits
    DELETE_WORDS = "delete_words"
    DELETE_SENTENCES = "delete_sentences"
    DELETE_PARAGRAPHS = "delete_paragraphs"

    # History
    UNDO = "undo"
    REDO = "redo"

    # Formatting (last word only)
    CAPITALIZE = "capitalize"
    LOWERCASE = "lowercase"

    # Structure
    NEW_LINE = "new_line"
    NEW_PARAGRAPH = "new_paragraph"

    # Punctuation
    PERIOD = "period"
    COMMA = "comma"
    QUESTION_MARK = "question_mark"
    EXCLAMATION_MARK = "exclamation_mark"

    # Recording control (forwarded to the audio collaborator)
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"

    # User-defined trigger with no built-in behaviour
    CUSTOM = "custom"

    @property
    def category(self) -> str:
        return _CATEGORIES[self]

    @classmethod
    def from_name(cls, name: str) -> Optional["CommandType"]:
        """Look up a type by name: "new_line", "NEW_LINE", "NewLine" or an alias like "delete"."""
        key = re.sub(r"(?<=[a-z])(?=[A-Z])", "_", name.strip()).lower().replace(" ", "_")
        key = _ALIASES.get(key, key)
        for member in cls:
            if member.value == key:
                return member
        return None


_CATEGORIES: Dict[CommandType, str] = {
    CommandType.DELETE_WORDS: "destructive",
    CommandType.DELETE_SENTENCES: "destructive",
    CommandType.DELETE_PARAGRAPHS: "destructive",
    CommandType.UNDO: "history",
    CommandType.REDO: "history",
    CommandType.CAPITALIZE: "formatting",
    CommandType.LOWERCASE: "formatting",
    CommandType.NEW_LINE: "structural",
    CommandType.NEW_PARAGRAPH: "structural",
    CommandType.PERIOD: "punctuation",
    CommandType.COMMA: "punctuation",
    CommandType.QUESTION_MARK: "punctuation",
    CommandType.EXCLAMATION_MARK: "punctuation",
    CommandType.PAUSE: "control",
    CommandType.RESUME: "control",
    CommandType.STOP: "control",
    CommandType.CUSTOM: "custom",
}

# Short names accepted in custom command mappings
_ALIASES: Dict[str, str] = {
    "delete": "delete_words",
    "newline": "new_line",
    "exclamation": "exclamation_mark",
    "question": "question_mark",
    "full_stop": "period",
}


@dataclass(frozen=True)
class CommandPattern:
    """A trigger phrase template mapped to a command."""
    phrase: str                         # normalized, e.g. "delete last words"
    command_type: CommandType
    parameter: Optional[str] = None     # parameter grammar, e.g. "count"
    name: str = ""                      # custom command name (CUSTOM patterns)

    @property
    def words(self) -> Tuple[str, ...]:
        return tuple(self.phrase.split())


@dataclass(frozen=True)
class Token:
    """A normalized word with its position in the source text."""
    text: str
    start: int
    end: int
    in_delta: bool = True       # False for lookback context (offsets into the transcript)
    raw: str = ""               # word as it appeared, punctuation included


@dataclass(frozen=True)
class DetectedCommand:
    """One command found in the transcript stream."""
    command_type: CommandType
    trigger_text: str                   # verbatim phrase as spoken
    confidence: float
    parameters: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)
    pattern: Optional[CommandPattern] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range: {self.confidence}")

    @property
    def count(self) -> Optional[int]:
        if self.parameters is None:
            return None
        return self.parameters.get("count")


@dataclass(frozen=True)
class ConfigSnapshot:
    """
    Immutable snapshot of engine configuration.
    The engine swaps snapshots between deltas, never mid-delta.
    """
    enabled: bool = True
    trigger_prefix: Optional[str] = None
    require_prefix: bool = False
    confidence_threshold: float = 0.8

    # Engine tuning
    history_depth: int = 10
    lookback_words: int = 8
    prefix_window: int = 3
    scorer: str = "edit_distance"

    # User-defined patterns: ((trigger, command type name), ...)
    custom_commands: Tuple[Tuple[str, str], ...] = ()

    # Structured event log
    metrics_enabled: bool = False


@dataclass(frozen=True)
class TranscriptSnapshot:
    """Read-only view of the transcript handed to consumers."""
    text: str
    version: int
    word_count: int

    def preview(self, limit: int = 50) -> str:
        return self.text if len(self.text) <= limit else "..." + self.text[-limit:]


EditKind = Literal["insert", "delete", "replace"]


@dataclass(frozen=True)
class EditOperation:
    """
    Atomic, invertible text mutation: replace `removed` at `start` with `inserted`.

    The inverse is built together with the operation and points back to it.
    """
    start: int
    removed: str
    inserted: str
    inverse: "EditOperation" = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"negative edit offset: {self.start}")
        object.__setattr__(self, "inverse", self._mirror(self))

    @classmethod
    def _mirror(cls, operation: "EditOperation") -> "EditOperation":
        """Inverse of `operation`, already paired back to it."""
        inverse = object.__new__(cls)
        object.__setattr__(inverse, "start", operation.start)
        object.__setattr__(inverse, "removed", operation.inserted)
        object.__setattr__(inverse, "inserted", operation.removed)
        object.__setattr__(inverse, "inverse", operation)
        return inverse

    @classmethod
    def diff(cls, before: str, after: str) -> Optional["EditOperation"]:
        """Smallest single-range operation turning `before` into `after`, or None."""
        if before == after:
            return None
        limit = min(len(before), len(after))
        prefix = 0
        while prefix < limit and before[prefix] == after[prefix]:
            prefix += 1
        suffix = 0
        while (suffix < limit - prefix
               and before[len(before) - 1 - suffix] == after[len(after) - 1 - suffix]):
            suffix += 1
        return cls(prefix, before[prefix:len(before) - suffix], after[prefix:len(after) - suffix])

    @property
    def kind(self) -> EditKind:
        if not self.removed:
            return "insert"
        if not self.inserted:
            return "delete"
        return "replace"

    @property
    def range(self) -> Tuple[int, int]:
        return (self.start, self.start + len(self.removed))

    @property
    def payload(self) -> str:
        return self.inserted

    def apply_to(self, text: str) -> str:
        """Return `text` with this operation applied."""
        end = self.start + len(self.removed)
        if text[self.start:end] != self.removed or self.start > len(text):
            raise ValueError(
                f"{self.kind} at {self.start} does not match transcript "
                f"(expected {self.removed!r}, found {text[self.start:end]!r})"
            )
        return text[:self.start] + self.inserted + text[end:]


@dataclass(frozen=True)
class HistoryEntry:
    """One undoable unit: an applied edit and the command that caused it (None for dictation)."""
    operation: EditOperation
    command: Optional[DetectedCommand] = None

    @property
    def label(self) -> str:
        if self.command is None:
            return "dictation"
        return self.command.command_type.value


ExecutionStatus = Literal[
    "applied", "no_effect", "forwarded", "unrecognized",
    "nothing_to_undo", "nothing_to_redo",
]


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of executing one command."""
    command: DetectedCommand
    status: ExecutionStatus
    transcript: TranscriptSnapshot
    entry: Optional[HistoryEntry] = None

    @property
    def changed(self) -> bool:
        return self.status == "applied"
