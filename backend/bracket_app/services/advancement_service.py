"""
Auto-Advance: propagate byes until the match list reaches a fixed point.

A match against a bye is decided without user input; a match between two byes
is decided as a phantom (winner = BYE) so its own winner/loser refs resolve.
Each decision can unlock later rounds, so scans repeat until one full pass
changes nothing.
"""
import logging
from typing import List

from bracket_app.services.bracket_types import BYE, BracketMatch
from bracket_app.services.slot_resolver import resolve_sides

logger = logging.getLogger(__name__)


def settle(matches: List[BracketMatch], wins_needed: int) -> List[BracketMatch]:
    """
    Auto-decide every pending match whose two sides are resolved and include a bye.

    Returns:
        New match list at the fixed point.

    Guarantees:
        - Idempotent (settle(settle(x)) == settle(x))
        - Deterministic (scans in list order)
        - Never touches matches that already have a winner
    """
    current = list(matches)
    passes = 0
    decided = 0

    while True:
        passes += 1
        changed = False
        for i, m in enumerate(current):
            if m.winner:
                continue
            res_a, res_b = resolve_sides(current, m)
            if not (res_a.resolved and res_b.resolved):
                continue

            if res_a.is_bye and res_b.is_bye:
                current[i] = m.model_copy(update={"winner": BYE})
            elif res_a.is_bye:
                current[i] = m.model_copy(update={"score_a": 0, "score_b": wins_needed, "winner": res_b.name})
            elif res_b.is_bye:
                current[i] = m.model_copy(update={"score_a": wins_needed, "score_b": 0, "winner": res_a.name})
            else:
                continue
            changed = True
            decided += 1

        if not changed:
            break

    logger.debug("settle: %d pass(es), %d match(es) auto-decided", passes, decided)
    return current
