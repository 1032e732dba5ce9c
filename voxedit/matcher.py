"""
Command matcher: finds the single best spoken command in a text delta.

The window scanned is the tail of the previous context (so a phrase split
across two deltas is still caught) followed by the new delta. Every
candidate span must reach into the new delta; text that was already
scanned never triggers twice.

Matching is a pure function of (window, pattern table, configuration):
no I/O, no engine state.
"""

from dataclasses import dataclass
from typing import Collection, Iterator, List, Optional, Sequence, Tuple

from .params import extract_count, is_number
from .patterns import COUNT, DEFAULT_PATTERNS
from .similarity import EditDistanceScorer, Scorer, normalize_for_matching, tokenize
from .types import CommandPattern, CommandType, ConfigSnapshot, DetectedCommand, Token


# Near misses scoring at least this fraction of the threshold are reported
NEAR_MISS_RATIO = 0.75

# Deltas shorter than this (after stripping) are not scanned
MIN_SCAN_CHARS = 2

# Words allowed between the trigger prefix and the command phrase
FILLER_WORDS = frozenset({"please", "uh", "um", "okay", "ok", "now", "just"})


@dataclass(frozen=True)
class Candidate:
    """One pattern aligned against one span of the window."""
    pattern: CommandPattern
    score: float            # effective score (0 when a required prefix is missing)
    raw_score: float        # similarity before the prefix rule
    start: int              # first token of the command phrase
    end: int                # one past the last consumed token (trailing count included)
    phrase_start: int       # first consumed token (the prefix, when present)
    count: Optional[int] = None


@dataclass(frozen=True)
class MatchResult:
    """Outcome of scanning one delta."""
    window: Tuple[Token, ...]
    command: Optional[DetectedCommand] = None
    candidate: Optional[Candidate] = None
    near_miss: Optional[Candidate] = None
    ignore_reason: Optional[str] = None     # "below_threshold" | "missing_prefix"

    @property
    def retract_from(self) -> Optional[int]:
        """Transcript offset to retract from when the phrase began in prior context."""
        if self.candidate is None:
            return None
        first = self.window[self.candidate.phrase_start]
        return None if first.in_delta else first.start

    @property
    def before_end(self) -> int:
        """Delta offset where the consumed phrase starts (0 if it started earlier)."""
        if self.candidate is None:
            return 0
        first = self.window[self.candidate.phrase_start]
        return first.start if first.in_delta else 0

    @property
    def after_start(self) -> int:
        """Delta offset just past the consumed phrase."""
        if self.candidate is None:
            return 0
        return self.window[self.candidate.end - 1].end

    def remaining_tokens(self) -> List[Token]:
        """Window tokens after the consumed phrase (these become the next context)."""
        if self.candidate is None:
            return list(self.window)
        return list(self.window[self.candidate.end:])


class CommandMatcher:
    """
    Scores every pattern against every span of the window and keeps the best.

    Usage:
        matcher = CommandMatcher(build_pattern_table(config.custom_commands))
        result = matcher.scan(context_tokens, "hello world period", config)
        if result.command:
            ...
    """

    def __init__(
        self,
        patterns: Sequence[CommandPattern] = DEFAULT_PATTERNS,
        scorer: Optional[Scorer] = None,
    ):
        self.patterns: Tuple[CommandPattern, ...] = tuple(patterns)
        self.scorer: Scorer = scorer or EditDistanceScorer()

    def scan(
        self,
        context: Sequence[Token],
        delta: str,
        config: ConfigSnapshot,
        allowed: Optional[Collection[CommandType]] = None,
    ) -> MatchResult:
        """
        Scan a delta for commands.

        Args:
            context: Tokens from previous deltas that were not consumed by a command
            delta: Newly transcribed text
            config: Threshold and prefix rules
            allowed: Restrict detection to these command types (None = all)

        Returns:
            MatchResult with at most one command
        """
        delta_tokens = tokenize(delta)
        lookback = list(context[-config.lookback_words:]) if config.lookback_words > 0 else []
        window = tuple(lookback + delta_tokens)

        if len(delta.strip()) < MIN_SCAN_CHARS or not delta_tokens:
            return MatchResult(window=window)

        first_delta = len(lookback)
        threshold = config.confidence_threshold
        floor = threshold * NEAR_MISS_RATIO
        prefix_words = tuple(normalize_for_matching(config.trigger_prefix or "").split())

        best: Optional[Candidate] = None
        near: Optional[Candidate] = None

        for pattern in self.patterns:
            if allowed is not None and pattern.command_type not in allowed:
                continue
            for candidate in self._candidates(pattern, window, first_delta, prefix_words, config, floor):
                if candidate.score >= threshold:
                    # Strict comparison: earlier patterns and positions win ties
                    if best is None or candidate.score > best.score:
                        best = candidate
                elif candidate.raw_score >= floor:
                    if near is None or candidate.raw_score > near.raw_score:
                        near = candidate

        if best is not None:
            return MatchResult(window=window, command=self._to_command(best, window), candidate=best)

        if near is not None:
            reason = "missing_prefix" if near.raw_score >= threshold else "below_threshold"
            return MatchResult(window=window, near_miss=near, ignore_reason=reason)

        return MatchResult(window=window)

    def _candidates(
        self,
        pattern: CommandPattern,
        window: Tuple[Token, ...],
        first_delta: int,
        prefix_words: Tuple[str, ...],
        config: ConfigSnapshot,
        floor: float,
    ) -> Iterator[Candidate]:
        """Yield every alignment of `pattern` that reaches into the new delta."""
        length = len(pattern.words)
        if length == 0:
            return

        # Count patterns align around number tokens: "delete last 2 words"
        if pattern.parameter == COUNT:
            positions = [i for i, t in enumerate(window) if not is_number(t.text)]
        else:
            positions = list(range(len(window)))

        for s in range(len(positions) - length + 1):
            indices = positions[s:s + length]
            start, end = indices[0], indices[-1] + 1
            if end <= first_delta:
                continue

            text = " ".join(window[i].text for i in indices)
            if self.scorer.upper_bound(text, pattern.phrase) < floor:
                continue
            raw = min(1.0, max(0.0, float(self.scorer.similarity(text, pattern.phrase))))

            count = None
            if pattern.parameter == COUNT:
                count, end = extract_count(window, start, end)

            phrase_start = start
            score = raw
            prefix_at = _find_prefix(window, start, prefix_words, config.prefix_window)
            if prefix_at is not None:
                phrase_start = prefix_at
            elif config.require_prefix and prefix_words:
                score = 0.0

            yield Candidate(
                pattern=pattern,
                score=score,
                raw_score=raw,
                start=start,
                end=end,
                phrase_start=phrase_start,
                count=count,
            )

    def _to_command(self, candidate: Candidate, window: Tuple[Token, ...]) -> DetectedCommand:
        trigger = " ".join(t.raw or t.text for t in window[candidate.start:candidate.end])
        parameters = None
        if candidate.count is not None:
            parameters = {"count": candidate.count, "explicit": True}
        return DetectedCommand(
            command_type=candidate.pattern.command_type,
            trigger_text=trigger,
            confidence=candidate.score,
            parameters=parameters,
            pattern=candidate.pattern,
        )


def _find_prefix(
    window: Tuple[Token, ...],
    start: int,
    prefix_words: Tuple[str, ...],
    prefix_window: int,
) -> Optional[int]:
    """
    Index of the trigger prefix if it sits right before `start`.

    Up to `prefix_window - 1` filler words ("computer, please delete that")
    may separate the two. Any other word in between means the prefix word
    was dictation, not an address.
    """
    size = len(prefix_words)
    if size == 0:
        return None

    for gap in range(max(1, prefix_window)):
        prefix_end = start - gap
        prefix_start = prefix_end - size
        if prefix_start < 0:
            break
        if gap and window[prefix_end].text not in FILLER_WORDS:
            break
        if tuple(t.text for t in window[prefix_start:prefix_end]) == prefix_words:
            return prefix_start
    return None
