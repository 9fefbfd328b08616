from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Time source for round-close delays and the playback grace interval."""

    def now(self) -> float: ...


class RealClock:
    """time.monotonic() seconds for the pygame shell."""

    __slots__ = ()

    def now(self) -> float:
        return time.monotonic()
