from __future__ import annotations

from typing import Iterable, List, Optional, TypeVar

import numpy as np

T = TypeVar("T")


def make_rng(random_state: Optional[int] = None) -> np.random.Generator:
    return np.random.default_rng(random_state)


def shuffle(items: Iterable[T], rng: np.random.Generator) -> List[T]:
    """Fisher-Yates shuffle into a new list; `items` is left untouched."""
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = int(rng.integers(0, i + 1))
        out[i], out[j] = out[j], out[i]
    return out
