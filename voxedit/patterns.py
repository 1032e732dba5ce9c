"""
Pattern library: the static table of spoken command templates.

Order matters. When two patterns score the same, the one declared first
wins, so longer and more specific phrases are listed before their short
forms ("undo that" before "undo").
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from .similarity import normalize_for_matching
from .types import CommandPattern, CommandType


# Parameter grammar for commands that take a unit count
COUNT = "count"


DEFAULT_PATTERNS: Tuple[CommandPattern, ...] = (
    # Destructive edits
    CommandPattern("delete last words", CommandType.DELETE_WORDS, COUNT),
    CommandPattern("delete last word", CommandType.DELETE_WORDS, COUNT),
    CommandPattern("delete that", CommandType.DELETE_WORDS, COUNT),
    CommandPattern("delete last sentence", CommandType.DELETE_SENTENCES, COUNT),
    CommandPattern("delete last paragraph", CommandType.DELETE_PARAGRAPHS, COUNT),

    # History
    CommandPattern("undo that", CommandType.UNDO),
    CommandPattern("undo", CommandType.UNDO),
    CommandPattern("redo that", CommandType.REDO),
    CommandPattern("redo", CommandType.REDO),

    # Formatting
    CommandPattern("capitalize that", CommandType.CAPITALIZE),
    CommandPattern("capitalize last word", CommandType.CAPITALIZE),
    CommandPattern("lowercase that", CommandType.LOWERCASE),
    CommandPattern("lowercase last word", CommandType.LOWERCASE),

    # Structure
    CommandPattern("new line", CommandType.NEW_LINE),
    CommandPattern("new paragraph", CommandType.NEW_PARAGRAPH),

    # Punctuation
    CommandPattern("period", CommandType.PERIOD),
    CommandPattern("full stop", CommandType.PERIOD),
    CommandPattern("comma", CommandType.COMMA),
    CommandPattern("question mark", CommandType.QUESTION_MARK),
    CommandPattern("exclamation mark", CommandType.EXCLAMATION_MARK),
    CommandPattern("exclamation point", CommandType.EXCLAMATION_MARK),

    # Recording control
    CommandPattern("pause recording", CommandType.PAUSE),
    CommandPattern("resume recording", CommandType.RESUME),
    CommandPattern("stop recording", CommandType.STOP),
)


def make_pattern(trigger: str, command: str) -> Optional[CommandPattern]:
    """
    Build a pattern from a user-defined (trigger, command name) pair.

    Names that are not a known CommandType become CUSTOM patterns that
    keep the name for consumers. Returns None for an empty trigger.
    """
    phrase = normalize_for_matching(trigger)
    if not phrase:
        return None

    command_type = CommandType.from_name(command)
    if command_type is None:
        return CommandPattern(phrase, CommandType.CUSTOM, name=command.strip())

    parameter = COUNT if command_type.category == "destructive" else None
    return CommandPattern(phrase, command_type, parameter)


def build_pattern_table(
    custom_commands: Iterable[Tuple[str, str]] = (),
    base: Sequence[CommandPattern] = DEFAULT_PATTERNS,
) -> List[CommandPattern]:
    """
    Built-in patterns followed by user-defined ones.

    Duplicated trigger phrases keep their first definition.
    """
    table = list(base)
    seen = {p.phrase for p in table}

    for trigger, command in custom_commands:
        pattern = make_pattern(trigger, command)
        if pattern is None:
            print(f"[Patterns] Skipping empty trigger for '{command}'")
            continue
        if pattern.phrase in seen:
            print(f"[Patterns] Trigger '{pattern.phrase}' already defined, skipping")
            continue
        seen.add(pattern.phrase)
        table.append(pattern)

    return table


def registered_types(patterns: Iterable[CommandPattern]) -> set:
    """Command types reachable from a pattern table."""
    return {p.command_type for p in patterns}
