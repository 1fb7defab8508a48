import asyncio
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Time source used by polling loops so tests can simulate elapsed time"""

    @abstractmethod
    def monotonic(self) -> float:
        """Current time in seconds from an arbitrary fixed point"""
        pass

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        pass

    def elapsed_ms(self, start: float) -> float:
        return (self.monotonic() - start) * 1000


class SystemClock(Clock):
    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
