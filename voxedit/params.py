"""
Parameter extraction for commands with a count ("delete last 2 words").

Extraction never fails: a missing or ambiguous count resolves to a
command-specific default.
"""

from typing import Any, Dict, Optional, Sequence, Tuple

from .types import CommandType, DetectedCommand, Token


NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

# Default delete size scales with the transcript: ~10% of words, 1..3
DEFAULT_DELETE_RATIO_DIVISOR = 10
DEFAULT_DELETE_MIN = 1
DEFAULT_DELETE_MAX = 3


def parse_number(word: str) -> Optional[int]:
    """Parse a normalized token as a digit string or a number word (one..ten)."""
    if word.isdigit():
        return int(word)
    return NUMBER_WORDS.get(word)


def is_number(word: str) -> bool:
    return parse_number(word) is not None


def extract_count(tokens: Sequence[Token], start: int, end: int) -> Tuple[Optional[int], int]:
    """
    Find a count inside tokens[start:end] or in the token right after it.

    Returns:
        (count or None, span end including a consumed trailing number)
        None means no usable count: absent, zero, or several different values.
    """
    values = []
    for token in tokens[start:end]:
        value = parse_number(token.text)
        if value is not None:
            values.append(value)

    if end < len(tokens):
        trailing = parse_number(tokens[end].text)
        if trailing is not None:
            values.append(trailing)
            end += 1

    distinct = set(values)
    if len(distinct) != 1:
        return None, end

    count = distinct.pop()
    return (count if count > 0 else None), end


def default_count(command_type: CommandType, word_count: int) -> int:
    """
    Count used when none was spoken.

    Words: ceil(10% of the transcript), at least 1 and at most 3.
    Sentences and paragraphs: 1.
    """
    if command_type != CommandType.DELETE_WORDS:
        return 1
    tenth = -(-word_count // DEFAULT_DELETE_RATIO_DIVISOR)  # ceil without floats
    return max(DEFAULT_DELETE_MIN, min(DEFAULT_DELETE_MAX, tenth))


def resolve_count(command: DetectedCommand, word_count: int) -> Dict[str, Any]:
    """Parameters for execution: the spoken count, or the default for this transcript."""
    explicit = command.count
    if explicit is not None and explicit > 0:
        return {"count": explicit, "explicit": True}
    return {"count": default_count(command.command_type, word_count), "explicit": False}
