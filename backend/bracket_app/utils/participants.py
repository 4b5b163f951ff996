"""
Participant list helpers (input side of the engine).
"""
import random
from typing import List, Optional, Sequence


def parse_participants(raw: str) -> List[str]:
    """One participant per line; surrounding whitespace trimmed, blank lines dropped."""
    if not raw:
        return []
    return [line.strip() for line in raw.splitlines() if line.strip()]


def find_duplicates(names: Sequence[str]) -> List[str]:
    """Names that appear more than once, in first-seen order."""
    seen = set()
    dupes: List[str] = []
    for name in names:
        if name in seen and name not in dupes:
            dupes.append(name)
        seen.add(name)
    return dupes


def shuffle_participants(names: Sequence[str], seed: Optional[int] = None) -> List[str]:
    """Fisher-Yates shuffle into a new list. A fixed seed gives a reproducible draw."""
    rng = random.Random(seed)
    arr = list(names)
    for i in range(len(arr) - 1, 0, -1):
        j = rng.randint(0, i)
        arr[i], arr[j] = arr[j], arr[i]
    return arr
