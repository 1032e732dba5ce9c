"""
Tests for voxedit HistoryManager.

Covers push/undo/redo semantics, redo invalidation and the depth bound.
"""


class TestHistoryManager:
    """Tests for HistoryManager."""

    def create_history(self, text="", depth=10):
        from voxedit.history import HistoryManager
        from voxedit.transcript import TranscriptBuffer

        buffer = TranscriptBuffer(text)
        return buffer, HistoryManager(buffer, depth=depth)

    def append(self, history, buffer, word):
        from voxedit.types import EditOperation

        return history.record(EditOperation(len(buffer.text), "", word))

    def test_record_applies_and_pushes(self):
        buffer, history = self.create_history()

        entry = self.append(history, buffer, "hello")

        assert buffer.text == "hello"
        assert history.undo_depth == 1
        assert entry.label == "dictation"

    def test_undo_and_redo_round_trip(self):
        buffer, history = self.create_history("start")
        for word in [" one", " two", " three"]:
            self.append(history, buffer, word)
        final = buffer.text

        for _ in range(3):
            assert history.undo() is not None
        assert buffer.text == "start"

        for _ in range(3):
            assert history.redo() is not None
        assert buffer.text == final

    def test_undo_on_empty_history(self):
        buffer, history = self.create_history("text")

        assert history.undo() is None
        assert history.redo() is None
        assert buffer.text == "text"

    def test_push_clears_redo(self):
        buffer, history = self.create_history()
        self.append(history, buffer, "a")
        self.append(history, buffer, "b")
        history.undo()
        assert history.can_redo()

        self.append(history, buffer, "c")

        assert not history.can_redo()
        assert history.redo() is None
        assert buffer.text == "ac"

    def test_depth_bound_evicts_oldest(self):
        buffer, history = self.create_history(depth=10)
        for i in range(11):
            self.append(history, buffer, str(i))

        assert history.undo_depth == 10
        for _ in range(10):
            assert history.undo() is not None

        # The first push was evicted and stays applied
        assert buffer.text == "0"
        assert history.undo() is None

    def test_push_returns_evicted_entry(self):
        from voxedit.types import EditOperation, HistoryEntry

        buffer, history = self.create_history(depth=1)
        first = HistoryEntry(EditOperation(0, "", "a"))

        assert history.push(first) is None
        assert history.push(HistoryEntry(EditOperation(1, "", "b"))) is first

    def test_clear_resets_everything(self):
        buffer, history = self.create_history()
        self.append(history, buffer, "a")
        self.append(history, buffer, "b")
        history.undo()

        snapshot = history.clear()

        assert snapshot.text == ""
        assert history.undo_depth == 0
        assert history.redo_depth == 0

    def test_set_depth_trims_oldest(self):
        buffer, history = self.create_history()
        for word in "abcde":
            self.append(history, buffer, word)

        history.set_depth(2)
        undo_stack, _ = history.entries()

        assert [e.operation.inserted for e in undo_stack] == ["d", "e"]
