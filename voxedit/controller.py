"""
Recording controller: the audio/transcription collaborator's interface.

The engine sends pause / resume / stop requests and never waits for
them. Each request is acknowledged later through the on_result callback,
possibly from another thread.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Optional


CONTROL_ACTIONS = ("pause", "resume", "stop")

# on_result(action, success, error)
ResultCallback = Callable[[str, bool, Optional[str]], None]


class RecordingController(ABC):
    """
    Base class for recording controllers.

    Subclasses must implement:
    - request(): start the action and acknowledge it through on_result
    - shutdown(): free resources
    """

    @abstractmethod
    def request(self, action: str, on_result: ResultCallback) -> None:
        """
        Ask the audio pipeline to pause, resume or stop. Must not block.

        Args:
            action: One of CONTROL_ACTIONS
            on_result: Called exactly once with (action, success, error)
        """
        pass

    def shutdown(self) -> None:
        pass


class BackgroundController(RecordingController):
    """
    Runs plain callables in a background thread and reports the outcome.

    A callable that raises, or returns False, is reported as a failure.

    Usage:
        controller = BackgroundController(
            pause=audio.pause, resume=audio.resume, stop=audio.stop,
        )
    """

    def __init__(
        self,
        pause: Optional[Callable[[], object]] = None,
        resume: Optional[Callable[[], object]] = None,
        stop: Optional[Callable[[], object]] = None,
    ):
        self._actions: Dict[str, Optional[Callable[[], object]]] = {
            "pause": pause,
            "resume": resume,
            "stop": stop,
        }
        self._executor = ThreadPoolExecutor(max_workers=1)

    def request(self, action: str, on_result: ResultCallback) -> None:
        fn = self._actions.get(action)
        if fn is None:
            on_result(action, False, f"Unsupported action: {action}")
            return
        future = self._executor.submit(fn)
        future.add_done_callback(lambda f: self._handle_result(action, f, on_result))

    def _handle_result(self, action: str, future: Future, on_result: ResultCallback) -> None:
        if future.cancelled():
            on_result(action, False, "Cancelled")
            return
        try:
            result = future.result()
        except Exception as e:
            on_result(action, False, str(e)[:100])
            return
        if result is False:
            on_result(action, False, "Rejected by audio pipeline")
        else:
            on_result(action, True, None)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)


class NullController(RecordingController):
    """Acknowledges every request immediately. For tests and headless use."""

    def __init__(self):
        self.requests = []

    def request(self, action: str, on_result: ResultCallback) -> None:
        self.requests.append(action)
        on_result(action, True, None)
