"""
Tests for voxedit command matching.

Covers scoring, thresholds, the trigger prefix rule, parameter alignment
and phrases split across deltas.
"""

import pytest


class FixedScorer:
    """Scorer stub returning preset scores per template phrase."""

    def __init__(self, scores):
        self.scores = scores

    def similarity(self, candidate, template):
        return self.scores.get(template, 0.0)

    def upper_bound(self, candidate, template):
        return 1.0


def make_matcher(scorer=None, patterns=None):
    from voxedit.matcher import CommandMatcher
    from voxedit.patterns import DEFAULT_PATTERNS

    return CommandMatcher(patterns or DEFAULT_PATTERNS, scorer=scorer)


class TestNormalization:
    """Tests for text normalization and tokenizing."""

    def test_normalize_strips_punctuation(self):
        from voxedit.similarity import normalize_for_matching

        assert normalize_for_matching("Computer, delete that.") == "computer delete that"

    def test_normalize_handles_whitespace(self):
        from voxedit.similarity import normalize_for_matching

        assert normalize_for_matching("  New   line ") == "new line"

    def test_tokenize_keeps_offsets(self):
        from voxedit.similarity import tokenize

        tokens = tokenize("Hello, world!", offset=10, in_delta=False)

        assert [t.text for t in tokens] == ["hello", "world"]
        assert tokens[0].start == 10
        assert tokens[0].raw == "Hello,"
        assert tokens[1].end == 23
        assert not tokens[1].in_delta

    def test_tokenize_drops_bare_punctuation(self):
        from voxedit.similarity import tokenize

        assert [t.text for t in tokenize("well - okay ...")] == ["well", "okay"]


class TestScorers:
    """Tests for the similarity scorers."""

    def test_levenshtein_known_distances(self):
        from voxedit.similarity import levenshtein

        assert levenshtein("kitten", "sitting") == 3
        assert levenshtein("flaw", "lawn") == 2
        assert levenshtein("", "abc") == 3
        assert levenshtein("same", "same") == 0

    def test_edit_distance_tolerates_small_slips(self):
        from voxedit.similarity import EditDistanceScorer

        scorer = EditDistanceScorer()

        assert scorer.similarity("new line", "new line") == 1.0
        assert scorer.similarity("new lime", "new line") == pytest.approx(0.875)
        assert scorer.similarity("", "new line") == 0.0

    def test_edit_distance_upper_bound_is_a_ceiling(self):
        from voxedit.similarity import EditDistanceScorer

        scorer = EditDistanceScorer()
        pairs = [("delete", "delete last words"), ("comma", "come on"), ("undo", "redo")]

        for candidate, template in pairs:
            assert scorer.similarity(candidate, template) <= scorer.upper_bound(candidate, template)

    def test_token_overlap_ignores_order(self):
        from voxedit.similarity import TokenOverlapScorer

        scorer = TokenOverlapScorer()

        assert scorer.similarity("that delete", "delete that") == 1.0
        assert scorer.similarity("delete this", "delete that") == pytest.approx(1 / 3)

    def test_unknown_scorer_falls_back(self):
        from voxedit.similarity import EditDistanceScorer, available_scorers, get_scorer

        assert isinstance(get_scorer("nonexistent"), EditDistanceScorer)
        assert "token_overlap" in available_scorers()


class TestMatcherScan:
    """Tests for CommandMatcher.scan()."""

    def test_detects_trailing_punctuation_command(self):
        from voxedit.types import CommandType, ConfigSnapshot

        result = make_matcher().scan([], "hello world period", ConfigSnapshot())

        assert result.command.command_type == CommandType.PERIOD
        assert result.command.trigger_text == "period"
        assert result.command.confidence == 1.0
        assert result.before_end == 12
        assert result.after_start == 18
        assert result.retract_from is None

    def test_plain_dictation_has_no_command(self):
        from voxedit.types import ConfigSnapshot

        result = make_matcher().scan([], "the quick brown fox", ConfigSnapshot())

        assert result.command is None
        assert result.candidate is None

    def test_short_delta_not_scanned(self):
        from voxedit.types import ConfigSnapshot

        result = make_matcher(FixedScorer({"undo": 1.0})).scan([], "a", ConfigSnapshot())

        assert result.command is None

    def test_explicit_count_with_digit(self):
        from voxedit.types import CommandType, ConfigSnapshot

        result = make_matcher().scan([], "delete last 2 words", ConfigSnapshot())

        assert result.command.command_type == CommandType.DELETE_WORDS
        assert result.command.parameters == {"count": 2, "explicit": True}
        assert result.command.trigger_text == "delete last 2 words"

    def test_explicit_count_with_number_word(self):
        from voxedit.types import ConfigSnapshot

        result = make_matcher().scan([], "delete last three words", ConfigSnapshot())

        assert result.command.count == 3

    def test_conflicting_counts_fall_back_to_default(self):
        from voxedit.types import CommandType, ConfigSnapshot

        result = make_matcher().scan([], "delete last 2 3 words", ConfigSnapshot())

        assert result.command.command_type == CommandType.DELETE_WORDS
        assert result.command.parameters is None

    def test_earlier_pattern_wins_ties(self):
        from voxedit.types import ConfigSnapshot

        result = make_matcher().scan([], "undo that", ConfigSnapshot())

        assert result.candidate.pattern.phrase == "undo that"
        assert result.command.trigger_text == "undo that"

    def test_allowed_restricts_command_types(self):
        from voxedit.types import CommandType, ConfigSnapshot

        matcher = make_matcher()
        allowed = {CommandType.RESUME, CommandType.STOP}

        assert matcher.scan([], "period", ConfigSnapshot(), allowed=allowed).command is None
        result = matcher.scan([], "resume recording", ConfigSnapshot(), allowed=allowed)
        assert result.command.command_type == CommandType.RESUME


class TestThreshold:
    """A score equal to the threshold is accepted; anything below is not."""

    def test_score_at_threshold_accepted(self):
        from voxedit.types import CommandType, ConfigSnapshot

        matcher = make_matcher(FixedScorer({"period": 0.8}))
        result = matcher.scan([], "blah", ConfigSnapshot(confidence_threshold=0.8))

        assert result.command.command_type == CommandType.PERIOD
        assert result.command.confidence == pytest.approx(0.8)

    def test_score_just_below_threshold_rejected(self):
        from voxedit.types import ConfigSnapshot

        matcher = make_matcher(FixedScorer({"period": 0.8 - 1e-9}))
        result = matcher.scan([], "blah", ConfigSnapshot(confidence_threshold=0.8))

        assert result.command is None
        assert result.ignore_reason == "below_threshold"
        assert result.near_miss.pattern.phrase == "period"

    def test_far_below_threshold_is_not_a_near_miss(self):
        from voxedit.types import ConfigSnapshot

        matcher = make_matcher(FixedScorer({"period": 0.3}))
        result = matcher.scan([], "blah", ConfigSnapshot(confidence_threshold=0.8))

        assert result.command is None
        assert result.near_miss is None

    def test_highest_score_wins(self):
        from voxedit.types import CommandType, ConfigSnapshot

        matcher = make_matcher(FixedScorer({"period": 0.85, "comma": 0.95}))
        result = matcher.scan([], "blah", ConfigSnapshot())

        assert result.command.command_type == CommandType.COMMA


class TestTriggerPrefix:
    """Tests for the optional and required trigger prefix."""

    def prefix_config(self, **kwargs):
        from voxedit.types import ConfigSnapshot

        defaults = {"trigger_prefix": "computer", "require_prefix": True}
        defaults.update(kwargs)
        return ConfigSnapshot(**defaults)

    def test_required_prefix_missing_is_ignored(self):
        result = make_matcher().scan([], "delete that", self.prefix_config())

        assert result.command is None
        assert result.ignore_reason == "missing_prefix"

    def test_required_prefix_present_is_accepted(self):
        from voxedit.types import CommandType

        result = make_matcher().scan([], "computer, delete that", self.prefix_config())

        assert result.command.command_type == CommandType.DELETE_WORDS
        assert result.command.trigger_text == "delete that"
        # The prefix is consumed with the command
        assert result.before_end == 0

    def test_prefix_may_be_separated_by_filler(self):
        result = make_matcher().scan([], "computer please delete that", self.prefix_config())

        assert result.command is not None

    def test_prefix_outside_window_does_not_count(self):
        result = make_matcher().scan(
            [], "computer the big red dog delete that", self.prefix_config(),
        )

        assert result.command is None
        assert result.ignore_reason == "missing_prefix"

    def test_optional_prefix_is_consumed_when_present(self):
        result = make_matcher().scan(
            [], "so computer new line", self.prefix_config(require_prefix=False),
        )

        assert result.command is not None
        assert result.before_end == 3

    def test_optional_prefix_not_adjacent_stays_dictation(self):
        from voxedit.types import CommandType

        result = make_matcher().scan(
            [], "hey there you period", self.prefix_config(trigger_prefix="hey", require_prefix=False),
        )

        assert result.command.command_type == CommandType.PERIOD
        assert result.before_end == 14

    def test_words_between_prefix_and_phrase_do_not_count(self):
        result = make_matcher().scan([], "my computer is slow period", self.prefix_config())

        assert result.command is None
        assert result.ignore_reason == "missing_prefix"

    def test_prefix_ignored_when_not_configured(self):
        from voxedit.types import ConfigSnapshot

        result = make_matcher().scan([], "delete that", ConfigSnapshot(require_prefix=True))

        assert result.command is not None


class TestLookbackContext:
    """Phrases split across deltas are matched through the lookback context."""

    def test_split_phrase_detected_and_retracted(self):
        from voxedit.similarity import tokenize
        from voxedit.types import CommandType, ConfigSnapshot

        context = tokenize("hello delete last", in_delta=False)
        result = make_matcher().scan(context, "word", ConfigSnapshot())

        assert result.command.command_type == CommandType.DELETE_WORDS
        assert result.command.trigger_text == "delete last word"
        assert result.retract_from == 6
        assert result.before_end == 0
        assert result.after_start == 4

    def test_context_alone_never_triggers_again(self):
        from voxedit.similarity import tokenize
        from voxedit.types import ConfigSnapshot

        context = tokenize("hello period", in_delta=False)
        result = make_matcher().scan(context, "and more", ConfigSnapshot())

        assert result.command is None

    def test_lookback_disabled(self):
        from voxedit.similarity import tokenize
        from voxedit.types import ConfigSnapshot

        context = tokenize("hello delete last", in_delta=False)
        result = make_matcher().scan(context, "word", ConfigSnapshot(lookback_words=0))

        assert result.command is None


class TestPatterns:
    """Tests for the pattern table and custom commands."""

    def test_custom_command_mapped_to_known_type(self):
        from voxedit.patterns import COUNT, make_pattern
        from voxedit.types import CommandType

        pattern = make_pattern("Scratch that!", "delete")

        assert pattern.phrase == "scratch that"
        assert pattern.command_type == CommandType.DELETE_WORDS
        assert pattern.parameter == COUNT

    def test_unknown_command_becomes_custom(self):
        from voxedit.patterns import make_pattern
        from voxedit.types import CommandType

        pattern = make_pattern("send it", "SendEmail")

        assert pattern.command_type == CommandType.CUSTOM
        assert pattern.name == "SendEmail"

    def test_command_type_name_forms(self):
        from voxedit.types import CommandType

        assert CommandType.from_name("NewLine") == CommandType.NEW_LINE
        assert CommandType.from_name("new line") == CommandType.NEW_LINE
        assert CommandType.from_name("QUESTION_MARK") == CommandType.QUESTION_MARK
        assert CommandType.from_name("full_stop") == CommandType.PERIOD
        assert CommandType.from_name("fly") is None

    def test_table_skips_duplicates_and_empty_triggers(self):
        from voxedit.patterns import DEFAULT_PATTERNS, build_pattern_table

        table = build_pattern_table([("period", "comma"), ("...", "period"), ("next item", "new_line")])

        assert len(table) == len(DEFAULT_PATTERNS) + 1
        assert table[-1].phrase == "next item"

    def test_custom_pattern_detected(self):
        from voxedit.patterns import build_pattern_table
        from voxedit.types import CommandType, ConfigSnapshot

        matcher = make_matcher(patterns=build_pattern_table([("scratch that", "delete")]))
        result = matcher.scan([], "oops scratch that", ConfigSnapshot())

        assert result.command.command_type == CommandType.DELETE_WORDS
        assert result.command.trigger_text == "scratch that"
