"""
Console entry point for VoxEdit.

Run with: python -m voxedit

Each line read from stdin is treated as one transcript delta from the
recognizer. Detected commands are applied and the transcript is printed
after every line. Lines starting with ":" are UI actions:
:undo, :redo, :clear, :history, :quit.
"""

import signal
import sys
from typing import Optional

from . import __version__
from .config import Config
from .controller import NullController
from .engine import CommandEngine
from .events import CommandDetected, CommandIgnored, ControlActionResult, Event
from .metrics import MetricsWriter, get_metrics


# Global state
config: Config
engine: CommandEngine
metrics: Optional[MetricsWriter] = None


def main():
    """Main entry point."""
    global config, engine, metrics

    print(f"VoxEdit v{__version__} starting...")

    # Load configuration
    config = Config.load()
    snapshot = config.snapshot()
    print(f"  Trigger prefix: {snapshot.trigger_prefix or '(none)'}"
          f"{' (required)' if snapshot.require_prefix else ''}")
    print(f"  Confidence threshold: {snapshot.confidence_threshold:.2f}")
    print(f"  Custom commands: {len(snapshot.custom_commands)}")

    # Initialize metrics (if enabled)
    if snapshot.metrics_enabled:
        metrics = get_metrics(config.metrics_file)
        print(f"  Event log: {config.metrics_file}")

    engine = CommandEngine(snapshot, controller=NullController(), metrics=metrics)
    engine.events.subscribe_all(on_event)

    signal.signal(signal.SIGTERM, _signal_handler)

    print("Ready! Type dictation, one delta per line. Ctrl+D to quit.")

    try:
        for line in sys.stdin:
            line = line.rstrip("\n")
            if line.startswith(":"):
                if not handle_action(line[1:].strip()):
                    break
                continue
            engine.feed(line).result()
            print(f"> {engine.snapshot().text!r}")
    except KeyboardInterrupt:
        pass
    finally:
        shutdown()


def handle_action(action: str) -> bool:
    """Run a UI action. Returns False to quit."""
    if action == "quit":
        return False
    if action == "undo":
        engine.undo()
    elif action == "redo":
        engine.redo()
    elif action == "clear":
        engine.clear()
    elif action == "history":
        undo_stack, redo_stack = engine.history_snapshot()
        print(f"  undo: {[e.label for e in undo_stack]}")
        print(f"  redo: {[e.label for e in redo_stack]}")
        for command in engine.recent_commands():
            print(f"  recent: {command.command_type.value} ({command.trigger_text!r})")
        return True
    else:
        print(f"Unknown action: {action}")
        return True
    print(f"> {engine.snapshot().text!r}")
    return True


def on_event(event: Event) -> None:
    """Echo interesting events to the console."""
    if isinstance(event, CommandDetected):
        print(f"  [{event.status}] {event.command.command_type.value} "
              f"({event.command.trigger_text!r}, {event.command.confidence:.2f})")
    elif isinstance(event, CommandIgnored) and event.phrase:
        print(f"  [ignored] {event.reason}: '{event.phrase}' ({event.score:.2f})")
    elif isinstance(event, ControlActionResult):
        print(f"  [control] {event.action} -> {'ok' if event.success else event.error} "
              f"(recording {event.state})")


def _signal_handler(signum, frame):
    """Handle termination signal."""
    shutdown()
    sys.exit(0)


def shutdown() -> None:
    """Clean shutdown."""
    print("\nShutting down...")
    engine.shutdown()
    if metrics:
        metrics.shutdown()


if __name__ == "__main__":
    main()
