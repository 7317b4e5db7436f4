# tchat_core/outbound_queue.py
import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, List

from tchat_core.config_defs import DEFAULT_INTERVAL, DEFAULT_LINES_PER_INTERVAL

logger = logging.getLogger("tchat.outbound_queue")


@dataclass
class RateWindow:
    """
    Tracks how many lines may still leave in the current rate window.

    Attributes:
        budget (int): Lines allowed per window.
        remaining (int): Lines still allowed in the current window (0 <= remaining <= budget).
        window_duration (float): Window length in seconds.
        elapsed (float): Seconds elapsed in the current window.
    """

    budget: int
    remaining: int
    window_duration: float
    elapsed: float = 0.0

    def advance(self, elapsed: float) -> bool:
        """Adds elapsed time; returns True if the window was reset."""
        self.elapsed += elapsed
        if self.elapsed >= self.window_duration:
            self.remaining = self.budget
            self.elapsed = 0.0
            return True
        return False

    def consume(self, count: int = 1) -> None:
        self.remaining = max(0, self.remaining - count)

    def restart(self, consumed: int = 0) -> None:
        self.elapsed = 0.0
        self.remaining = max(0, self.budget - consumed)


class OutboundQueue:
    """FIFO of outbound lines released at most `budget` lines per window."""

    def __init__(
        self,
        num_lines_per_interval: int = DEFAULT_LINES_PER_INTERVAL,
        interval: float = DEFAULT_INTERVAL,
    ):
        if num_lines_per_interval <= 0:
            raise ValueError(f"num_lines_per_interval must be positive (got {num_lines_per_interval})")
        if interval <= 0:
            raise ValueError(f"interval must be positive (got {interval})")
        self.window = RateWindow(
            budget=num_lines_per_interval,
            remaining=num_lines_per_interval,
            window_duration=interval,
        )
        self._lines: Deque[str] = deque()

    @property
    def pending(self) -> int:
        return len(self._lines)

    def enqueue(self, line: str) -> None:
        self._lines.append(line)
        logger.debug(f"Queued line ({len(self._lines)} pending, {self.window.remaining} left in window)")

    def drain_ready(self, elapsed: float) -> List[str]:
        """
        Advances the rate window by `elapsed` seconds and pops every line that
        may be sent now, oldest first. The caller transmits the returned lines
        and flushes once if the list is non-empty.
        """
        if self.window.advance(elapsed):
            logger.debug(f"Rate window reset, budget {self.window.budget}")

        ready: List[str] = []
        while self.window.remaining > 0 and self._lines:
            ready.append(self._lines.popleft())
            self.window.consume()

        if self._lines and not self.window.remaining:
            logger.debug(f"Rate limit reached, {len(self._lines)} line(s) held until window resets")
        return ready

    def record_forced_send(self, count: int = 1) -> None:
        self.window.consume(count)

    def restart_window(self, consumed: int = 0) -> None:
        self.window.restart(consumed)

    def clear(self) -> None:
        if self._lines:
            logger.info(f"Discarding {len(self._lines)} unsent line(s)")
        self._lines.clear()
