"""
Text normalization and similarity scorers for command recognition.

A scorer compares a normalized candidate phrase against a pattern's
trigger phrase and returns a confidence in [0.0, 1.0]. The matcher only
depends on the Scorer interface, so the algorithm can be swapped without
touching detection or dispatch.
"""

import re
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Dict, List, Type

import numpy as np

from .types import Token


def normalize_for_matching(text: str) -> str:
    """
    Strip punctuation and normalize whitespace for comparison.

    Examples:
        "Computer, delete that." -> "computer delete that"
        "New   line"             -> "new line"
    """
    text = re.sub(r'[^\w\s]', '', text)
    return ' '.join(text.lower().split())


def tokenize(text: str, offset: int = 0, in_delta: bool = True) -> List[Token]:
    """
    Split text into normalized word tokens, keeping source offsets.

    Words that normalize to nothing (a lone dash, "...") are dropped.
    """
    tokens = []
    for match in re.finditer(r'\S+', text):
        word = normalize_for_matching(match.group())
        if not word:
            continue
        tokens.append(Token(
            text=word,
            start=offset + match.start(),
            end=offset + match.end(),
            in_delta=in_delta,
            raw=match.group(),
        ))
    return tokens


class Scorer(ABC):
    """Base class for similarity scorers."""

    name: str = "base"

    @abstractmethod
    def similarity(self, candidate: str, template: str) -> float:
        """
        Score how well `candidate` matches `template`.

        Both arguments are already normalized (lowercase, no punctuation,
        single spaces).

        Returns:
            Confidence in [0.0, 1.0]; 1.0 means identical
        """
        pass

    def upper_bound(self, candidate: str, template: str) -> float:
        """Cheap ceiling on similarity(); lets the matcher skip hopeless candidates."""
        return 1.0


@lru_cache(maxsize=4096)
def levenshtein(a: str, b: str) -> int:
    """
    Edit distance between two strings (insert, delete, substitute all cost 1).

    Row-at-a-time DP; the insertion pass within a row is a running minimum.
    """
    if a == b:
        return 0
    if not a or not b:
        return max(len(a), len(b))

    target = np.array([ord(c) for c in b], dtype=np.int32)
    cols = np.arange(len(b) + 1, dtype=np.int32)
    prev = cols.copy()

    for i, ch in enumerate(a, start=1):
        cost = (target != ord(ch)).astype(np.int32)
        row = np.empty_like(prev)
        row[0] = i
        row[1:] = np.minimum(prev[1:] + 1, prev[:-1] + cost)
        row = np.minimum.accumulate(row - cols) + cols
        prev = row

    return int(prev[-1])


class EditDistanceScorer(Scorer):
    """
    Character-level edit-distance ratio over the whole phrase.

    Tolerant of small recognition slips ("delete last word" vs
    "delete last words", "new lime" vs "new line").
    """

    name = "edit_distance"

    def similarity(self, candidate: str, template: str) -> float:
        if not candidate or not template:
            return 0.0
        longest = max(len(candidate), len(template))
        score = 1.0 - levenshtein(candidate, template) / longest
        return float(min(1.0, max(0.0, score)))

    def upper_bound(self, candidate: str, template: str) -> float:
        longest = max(len(candidate), len(template))
        if longest == 0:
            return 0.0
        # Distance is at least the length difference
        return 1.0 - abs(len(candidate) - len(template)) / longest


class TokenOverlapScorer(Scorer):
    """Jaccard overlap of word sets. Order-insensitive, strict on spelling."""

    name = "token_overlap"

    def similarity(self, candidate: str, template: str) -> float:
        a = set(candidate.split())
        b = set(template.split())
        if not a or not b:
            return 0.0
        return len(a & b) / len(a | b)


SCORERS: Dict[str, Type[Scorer]] = {
    EditDistanceScorer.name: EditDistanceScorer,
    TokenOverlapScorer.name: TokenOverlapScorer,
}


def get_scorer(name: str = EditDistanceScorer.name) -> Scorer:
    """Create a scorer by name. Unknown names fall back to edit distance."""
    scorer_cls = SCORERS.get(name)
    if scorer_cls is None:
        print(f"[Matcher] Unknown scorer '{name}', using {EditDistanceScorer.name}")
        scorer_cls = EditDistanceScorer
    return scorer_cls()


def available_scorers() -> List[str]:
    return list(SCORERS)
