"""
VoxEdit - Voice-command engine for live dictation transcripts.

This package provides:
- Fuzzy detection of spoken commands inside a growing transcript
- Optional trigger prefix ("computer, delete that")
- Parameter extraction with safe defaults ("delete last 2 words")
- Invertible edit operations with bounded undo/redo history
- Fire-and-forget recording control (pause / resume / stop)
- In-process event dispatch for UI and audio consumers

Main entry point: python -m voxedit
"""

__version__ = "1.0.0"

from .types import CommandType, DetectedCommand, EditOperation, TranscriptSnapshot
from .engine import CommandEngine

__all__ = [
    "CommandEngine",
    "CommandType",
    "DetectedCommand",
    "EditOperation",
    "TranscriptSnapshot",
]
