"""
Tests for voxedit CommandExecutor.

Each handler is exercised directly with a hand-built DetectedCommand.
"""

from unittest.mock import Mock


def command(command_type, trigger="", parameters=None, **kwargs):
    from voxedit.types import DetectedCommand

    return DetectedCommand(command_type, trigger or command_type.value, 1.0, parameters, **kwargs)


class TestCommandExecutor:
    """Tests for CommandExecutor.execute()."""

    def create_executor(self, text="", on_control=None):
        from voxedit.events import EventDispatcher
        from voxedit.executor import CommandExecutor
        from voxedit.history import HistoryManager
        from voxedit.transcript import TranscriptBuffer

        buffer = TranscriptBuffer()
        history = HistoryManager(buffer)
        events = EventDispatcher()
        executor = CommandExecutor(buffer, history, events, on_control=on_control)
        if text:
            executor.append_dictation(text)
        return executor

    def test_delete_explicit_count_then_undo(self):
        from voxedit.types import CommandType

        executor = self.create_executor("the quick brown fox")

        result = executor.execute(command(CommandType.DELETE_WORDS, parameters={"count": 2}))

        assert result.status == "applied"
        assert result.transcript.text == "the quick"
        assert result.entry.operation.kind == "delete"

        executor.undo()
        assert executor.transcript.text == "the quick brown fox"

    def test_delete_default_count(self):
        from voxedit.types import CommandType

        words = " ".join(f"w{i}" for i in range(20))
        executor = self.create_executor(words)

        result = executor.execute(command(CommandType.DELETE_WORDS, "delete that"))

        assert result.command.parameters == {"count": 2, "explicit": False}
        assert result.transcript.word_count == 18

    def test_delete_over_request_clamps(self):
        from voxedit.types import CommandType

        executor = self.create_executor("only three words")

        result = executor.execute(command(CommandType.DELETE_WORDS, parameters={"count": 9}))

        assert result.status == "applied"
        assert result.transcript.text == ""

    def test_delete_sentence(self):
        from voxedit.types import CommandType

        executor = self.create_executor("First one. Second one.")

        result = executor.execute(command(CommandType.DELETE_SENTENCES))

        assert result.transcript.text == "First one."

    def test_period_appends_mark_and_space(self):
        from voxedit.types import CommandType

        executor = self.create_executor("hello world")

        result = executor.execute(command(CommandType.PERIOD))

        assert result.transcript.text == "hello world. "
        assert result.entry.operation.kind == "insert"

    def test_question_mark_replaces_trailing_space(self):
        from voxedit.types import CommandType

        executor = self.create_executor("really   ")

        result = executor.execute(command(CommandType.QUESTION_MARK))

        assert result.transcript.text == "really? "
        assert result.entry.operation.kind == "replace"

    def test_capitalize_empty_transcript_is_no_effect(self):
        from voxedit.types import CommandType

        executor = self.create_executor()

        result = executor.execute(command(CommandType.CAPITALIZE))

        assert result.status == "no_effect"
        assert result.transcript.text == ""
        assert result.entry is None
        assert executor.history.undo_depth == 0

    def test_new_paragraph(self):
        from voxedit.types import CommandType

        executor = self.create_executor("done")

        result = executor.execute(command(CommandType.NEW_PARAGRAPH))

        assert result.transcript.text == "done\n\n"

    def test_each_command_is_one_history_entry(self):
        from voxedit.types import CommandType

        executor = self.create_executor("hello")
        executor.execute(command(CommandType.CAPITALIZE))
        executor.execute(command(CommandType.COMMA))

        assert executor.history.undo_depth == 3
        assert [e.label for e in executor.history.entries()[0]] == ["dictation", "capitalize", "comma"]

    def test_spoken_undo_and_redo(self):
        from voxedit.types import CommandType

        executor = self.create_executor("hello")
        executor.execute(command(CommandType.PERIOD))

        undone = executor.execute(command(CommandType.UNDO))
        assert undone.status == "applied"
        assert undone.transcript.text == "hello"

        redone = executor.execute(command(CommandType.REDO))
        assert redone.transcript.text == "hello. "

        assert executor.execute(command(CommandType.REDO)).status == "nothing_to_redo"

    def test_spoken_undo_with_empty_history(self):
        from voxedit.types import CommandType

        executor = self.create_executor()

        assert executor.execute(command(CommandType.UNDO)).status == "nothing_to_undo"

    def test_control_command_forwarded_without_edit(self):
        from voxedit.types import CommandType

        on_control = Mock()
        executor = self.create_executor("hello", on_control=on_control)
        pause = command(CommandType.PAUSE, "pause recording")

        result = executor.execute(pause)

        assert result.status == "forwarded"
        assert result.transcript.text == "hello"
        assert executor.history.undo_depth == 1
        on_control.assert_called_once_with("pause", pause)

    def test_custom_command_is_unrecognized(self):
        from voxedit.events import CommandUnrecognized
        from voxedit.types import CommandPattern, CommandType

        executor = self.create_executor("hello")
        received = []
        executor.events.subscribe(CommandUnrecognized, received.append)
        pattern = CommandPattern("send it", CommandType.CUSTOM, name="send_email")

        result = executor.execute(command(CommandType.CUSTOM, "send it", pattern=pattern))

        assert result.status == "unrecognized"
        assert result.transcript.text == "hello"
        assert len(received) == 1
        assert received[0].command.pattern.name == "send_email"

    def test_retraction_is_part_of_the_same_edit(self):
        from voxedit.types import CommandType

        executor = self.create_executor("hello world new")

        result = executor.execute(command(CommandType.NEW_LINE, "new line"), retract_from=12)

        assert result.transcript.text == "hello world \n"
        assert executor.history.undo_depth == 2

        executor.undo()
        assert executor.transcript.text == "hello world new"

    def test_events_emitted_for_command(self):
        from voxedit.events import CommandDetected, HistoryChanged
        from voxedit.types import CommandType

        executor = self.create_executor("hello")
        seen = []
        executor.events.subscribe_all(seen.append)

        executor.execute(command(CommandType.PERIOD))

        assert [type(e) for e in seen] == [HistoryChanged, CommandDetected]
        assert seen[0].action == "push"
        assert seen[0].undo_depth == 2
        assert seen[1].status == "applied"


class TestDictation:
    """Tests for append_dictation()."""

    def test_joins_with_single_space_after_punctuation(self):
        from voxedit.events import EventDispatcher
        from voxedit.executor import CommandExecutor
        from voxedit.history import HistoryManager
        from voxedit.transcript import TranscriptBuffer
        from voxedit.types import CommandType, DetectedCommand

        buffer = TranscriptBuffer()
        executor = CommandExecutor(buffer, HistoryManager(buffer), EventDispatcher())

        executor.append_dictation("hello")
        executor.execute(DetectedCommand(CommandType.PERIOD, "period", 1.0))
        executor.append_dictation(" next")

        assert buffer.text == "hello. next"

    def test_empty_dictation_adds_nothing(self):
        from voxedit.events import EventDispatcher
        from voxedit.executor import CommandExecutor
        from voxedit.history import HistoryManager
        from voxedit.transcript import TranscriptBuffer

        buffer = TranscriptBuffer()
        history = HistoryManager(buffer)
        executor = CommandExecutor(buffer, history, EventDispatcher())

        assert executor.append_dictation("   ") is None
        assert history.undo_depth == 0
