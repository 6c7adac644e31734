"""Time sources for interest accrual"""
import time
from dataclasses import dataclass
from typing import Protocol


class Clock(Protocol):
    def __call__(self) -> int: ...


class SystemClock:
    """Wall clock, whole seconds"""

    def __call__(self) -> int:
        return int(time.time())


@dataclass
class ManualClock:
    """Clock that only moves when told to"""
    now: int = 0

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        self.now += seconds
        return self.now
