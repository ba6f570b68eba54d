import threading

from eyeris.domain.models import TokenUsage


class TokenStats:
    """
    Cumulative token counters shared by every in-flight request.

    Adds come from provider calls running on the event loop as well as from
    worker threads, so all three counters are updated under one lock and a
    snapshot is always internally consistent.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._prompt_tokens = 0
        self._completion_tokens = 0
        self._total_tokens = 0

    def add(self, usage: TokenUsage) -> None:
        with self._lock:
            self._prompt_tokens += usage.prompt_tokens
            self._completion_tokens += usage.completion_tokens
            self._total_tokens += usage.total_tokens

    def snapshot(self) -> TokenUsage:
        with self._lock:
            return TokenUsage(
                prompt_tokens=self._prompt_tokens,
                completion_tokens=self._completion_tokens,
                total_tokens=self._total_tokens,
            )

    def reset(self) -> None:
        with self._lock:
            self._prompt_tokens = 0
            self._completion_tokens = 0
            self._total_tokens = 0
