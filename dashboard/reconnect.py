from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ReconnectPolicy:
    """Fixed-delay reconnect schedule with a hard cap on attempts."""

    delay: float = 5.0
    max_attempts: int = 3
    attempts: int = 0

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts

    def next_delay(self) -> Optional[float]:
        """Claim the next attempt; ``None`` once the cap has been reached."""
        if self.exhausted:
            return None
        self.attempts += 1
        return self.delay

    def reset(self) -> None:
        self.attempts = 0
