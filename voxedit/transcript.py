"""
Transcript buffer and text-unit helpers.

The buffer owns the live text and a monotonic version counter. The only
way to change it is to apply an EditOperation (or reset it), which keeps
every change invertible.

The helpers below are pure functions from text to text; the executor
turns their results into edit operations with EditOperation.diff().
"""

import re
import threading
from typing import List, Optional

from .types import EditOperation, TranscriptSnapshot


_WORD = re.compile(r'\S+')
_SENTENCE_END = re.compile(r'[.!?]+(?=\s|$)|\n+')
_PARAGRAPH_BREAK = re.compile(r'\n\s*\n')


class TranscriptBuffer:
    """
    Mutable transcript text with a version counter.

    Readers get TranscriptSnapshot copies, never the live buffer.
    """

    def __init__(self, text: str = ""):
        self._text = text
        self._version = 0
        self._lock = threading.Lock()

    @property
    def text(self) -> str:
        return self._text

    @property
    def version(self) -> int:
        return self._version

    def apply(self, operation: EditOperation) -> TranscriptSnapshot:
        """
        Apply an edit operation and bump the version.

        Raises:
            ValueError: if the operation does not match the current text
        """
        with self._lock:
            self._text = operation.apply_to(self._text)
            self._version += 1
            return self._snapshot()

    def reset(self) -> TranscriptSnapshot:
        """Empty the transcript. The version still moves forward."""
        with self._lock:
            self._text = ""
            self._version += 1
            return self._snapshot()

    def snapshot(self) -> TranscriptSnapshot:
        with self._lock:
            return self._snapshot()

    def _snapshot(self) -> TranscriptSnapshot:
        return TranscriptSnapshot(self._text, self._version, word_count(self._text))


# Text units

def word_count(text: str) -> int:
    return len(text.split())


def _unit_starts(text: str, boundary: re.Pattern) -> List[int]:
    """Start offsets of the non-blank units of `text` separated by `boundary`."""
    starts = []
    pos = 0
    for match in boundary.finditer(text):
        if text[pos:match.start()].strip():
            starts.append(pos)
        pos = match.end()
    if text[pos:].strip():
        starts.append(pos)
    return starts


def delete_last_words(text: str, count: int) -> str:
    """Remove the last `count` whitespace-delimited words. Over-requests clear the text."""
    words = list(_WORD.finditer(text))
    if count <= 0:
        return text
    if count >= len(words):
        return ""
    return text[:words[len(words) - count - 1].end()]


def delete_last_sentences(text: str, count: int) -> str:
    """
    Remove the last `count` sentences.

    A sentence ends at . ! or ? followed by whitespace, or at a line break.
    An unterminated tail counts as a sentence.
    """
    if count <= 0:
        return text
    starts = _unit_starts(text.rstrip(), _SENTENCE_END)
    if count >= len(starts):
        return ""
    return text[:starts[len(starts) - count]].rstrip(" \t")


def delete_last_paragraphs(text: str, count: int) -> str:
    """Remove the last `count` paragraphs (separated by blank lines)."""
    if count <= 0:
        return text
    starts = _unit_starts(text.rstrip(), _PARAGRAPH_BREAK)
    if count >= len(starts):
        return ""
    return text[:starts[len(starts) - count]].rstrip()


def _last_word(text: str) -> Optional[re.Match]:
    last = None
    for last in _WORD.finditer(text):
        pass
    return last


def capitalize_last_word(text: str) -> str:
    """Uppercase the first letter of the final word ("hello," -> "Hello,")."""
    word = _last_word(text)
    if word is None:
        return text
    token = word.group()
    for i, ch in enumerate(token):
        if ch.isalpha():
            token = token[:i] + ch.upper() + token[i + 1:]
            break
    return text[:word.start()] + token + text[word.end():]


def lowercase_last_word(text: str) -> str:
    word = _last_word(text)
    if word is None:
        return text
    return text[:word.start()] + word.group().lower() + text[word.end():]


def punctuate(text: str, mark: str) -> str:
    """Trim trailing whitespace, append the mark and exactly one space."""
    return text.rstrip() + mark + " "


def append_break(text: str, newlines: int) -> str:
    return text + "\n" * newlines


def join_dictation(text: str, addition: str) -> str:
    """
    Text to append for a dictation chunk.

    Leading spaces are dropped when the transcript is empty or already ends
    in whitespace, so commands that leave a trailing space ("period") do not
    produce double spaces. A chunk starting with a word character after a
    word gets one separating space.
    """
    if not text or text[-1].isspace():
        return addition.lstrip(" \t")
    if addition[:1].isalnum():
        return " " + addition
    return addition
