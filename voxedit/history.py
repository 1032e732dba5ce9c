"""
Bounded undo/redo history over the transcript buffer.

Two stacks of invertible edits (classic command pattern). Pushing a new
entry invalidates the redo stack; pushing past the depth bound drops the
oldest entry, which then can no longer be undone.
"""

import threading
from collections import deque
from typing import Deque, Optional, Tuple

from .transcript import TranscriptBuffer
from .types import DetectedCommand, EditOperation, HistoryEntry, TranscriptSnapshot


DEFAULT_DEPTH = 10


class HistoryManager:
    """
    Undo/redo stacks bound to one TranscriptBuffer.

    Usage:
        history = HistoryManager(buffer, depth=10)
        history.record(operation, command)   # apply + push
        history.undo()                       # None when nothing to undo
    """

    def __init__(self, transcript: TranscriptBuffer, depth: int = DEFAULT_DEPTH):
        self.transcript = transcript
        self.depth = max(1, depth)
        self._undo: Deque[HistoryEntry] = deque()
        self._redo: Deque[HistoryEntry] = deque()
        self._lock = threading.RLock()

    def push(self, entry: HistoryEntry) -> Optional[HistoryEntry]:
        """
        Record an already-applied entry.

        Returns:
            The evicted oldest entry, if the depth bound was exceeded
        """
        with self._lock:
            self._undo.append(entry)
            self._redo.clear()
            if len(self._undo) > self.depth:
                evicted = self._undo.popleft()
                print(f"[History] Depth {self.depth} reached, dropped oldest entry ({evicted.label})")
                return evicted
            return None

    def record(self, operation: EditOperation, command: Optional[DetectedCommand] = None) -> HistoryEntry:
        """Apply an operation to the transcript and push it as one entry."""
        with self._lock:
            self.transcript.apply(operation)
            entry = HistoryEntry(operation=operation, command=command)
            self.push(entry)
            return entry

    def undo(self) -> Optional[HistoryEntry]:
        """Revert the most recent entry. Returns None if there is nothing to undo."""
        with self._lock:
            if not self._undo:
                print("[History] Nothing to undo")
                return None
            entry = self._undo.pop()
            self.transcript.apply(entry.operation.inverse)
            self._redo.append(entry)
            return entry

    def redo(self) -> Optional[HistoryEntry]:
        """Re-apply the most recently undone entry. Returns None if there is nothing to redo."""
        with self._lock:
            if not self._redo:
                print("[History] Nothing to redo")
                return None
            entry = self._redo.pop()
            self.transcript.apply(entry.operation)
            self._undo.append(entry)
            return entry

    def clear(self) -> TranscriptSnapshot:
        """Empty both stacks and the transcript in one step."""
        with self._lock:
            self._undo.clear()
            self._redo.clear()
            return self.transcript.reset()

    def set_depth(self, depth: int) -> None:
        """Change the bound; shrinking drops the oldest entries."""
        with self._lock:
            self.depth = max(1, depth)
            while len(self._undo) > self.depth:
                self._undo.popleft()
            while len(self._redo) > self.depth:
                self._redo.popleft()

    @property
    def undo_depth(self) -> int:
        with self._lock:
            return len(self._undo)

    @property
    def redo_depth(self) -> int:
        with self._lock:
            return len(self._redo)

    def can_undo(self) -> bool:
        return self.undo_depth > 0

    def can_redo(self) -> bool:
        return self.redo_depth > 0

    def entries(self) -> Tuple[Tuple[HistoryEntry, ...], Tuple[HistoryEntry, ...]]:
        """Copies of (undo stack, redo stack), oldest first."""
        with self._lock:
            return tuple(self._undo), tuple(self._redo)
