import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry with a fixed pause between attempts.

    Args:
        max_attempts: Total number of attempts, including the first one.
        delay: Pause in seconds before every attempt after the first.
        sleep: Coroutine function used to pause; tests pass a recorder.
    """

    max_attempts: int = 10
    delay: float = 2.0
    sleep: Sleep = field(default=asyncio.sleep, compare=False, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")

    def attempts(self) -> range:
        """1-based attempt numbers."""
        return range(1, self.max_attempts + 1)

    async def pause(self, attempt: int) -> None:
        """Wait before the given attempt; the first attempt never waits."""
        if attempt > 1:
            await self.sleep(self.delay)
