from __future__ import annotations

import random
from collections.abc import Iterable, Sequence, Set
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class NextPick:
    target: str | None
    cursor: int

    @property
    def exhausted(self) -> bool:
        return self.target is None


def build_order(ids: Iterable[str], rng: random.Random | None = None) -> tuple[str, ...]:
    """Pass order: catalog order, or a seeded shuffle when ``rng`` is given."""

    order = list(ids)
    if rng is not None:
        rng.shuffle(order)
    return tuple(order)


def next_target(order: Sequence[str], cursor: int, completed: Set[str]) -> NextPick:
    """Forward circular scan from ``cursor`` for the first incomplete id.

    The returned cursor points one past the chosen position so repeated calls
    progress instead of repeating. When every id is completed the pick is
    exhausted and the cursor is returned unchanged; deciding what exhaustion
    means is left to the caller.
    """

    n = len(order)
    if n == 0:
        raise ValueError("order must not be empty")
    start = int(cursor) % n
    for step in range(n):
        idx = (start + step) % n
        candidate = order[idx]
        if candidate not in completed:
            return NextPick(target=candidate, cursor=(idx + 1) % n)
    return NextPick(target=None, cursor=int(cursor))
