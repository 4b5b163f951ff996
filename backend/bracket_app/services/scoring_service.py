"""
Match scoring and cascading reset.

apply_win records one game for one side; reset_match clears a result and every
downstream match that had already recorded progress on top of it. Neither call
settles byes: run advancement_service.settle on the result.
"""
import logging
from typing import Dict, List, Optional, Set

from bracket_app.services.bracket_types import BracketMatch
from bracket_app.services.slot_resolver import can_play, dependents_of, index_matches, resolve_sides

logger = logging.getLogger(__name__)

SIDE_A = "a"
SIDE_B = "b"


def apply_win(matches: List[BracketMatch], match_id: str, side: str, wins_needed: int) -> List[BracketMatch]:
    """
    Add one game to `side` of a match, capped at wins_needed.

    The winner is set to the resolved name of a side once its score reaches
    wins_needed. Unknown ids, decided matches and matches that cannot be
    played yet (unresolved side or a bye) return the input list unchanged.
    """
    if side not in (SIDE_A, SIDE_B):
        raise ValueError(f"side must be 'a' or 'b', got {side!r}")

    positions = index_matches(matches)
    idx = positions.get(match_id)
    if idx is None:
        return matches

    match = matches[idx]
    if not can_play(matches, match):
        return matches

    score_a = min(wins_needed, match.score_a + 1) if side == SIDE_A else match.score_a
    score_b = min(wins_needed, match.score_b + 1) if side == SIDE_B else match.score_b

    res_a, res_b = resolve_sides(matches, match)
    winner: Optional[str] = None
    if score_a >= wins_needed:
        winner = res_a.name
    elif score_b >= wins_needed:
        winner = res_b.name

    updated = list(matches)
    updated[idx] = match.model_copy(update={"score_a": score_a, "score_b": score_b, "winner": winner})
    if winner:
        logger.info("Match %s decided: %s (%d-%d)", match.id, winner, score_a, score_b)
    return updated


def reset_match(matches: List[BracketMatch], match_id: str) -> List[BracketMatch]:
    """
    Clear a match's scores and winner, then recursively clear every direct
    dependent that carries progress (nonzero score or a winner).

    Dependents without progress are left untouched; their slots re-resolve
    lazily. An unknown id returns the input list unchanged.
    """
    positions = index_matches(matches)
    if match_id not in positions:
        return matches

    current = list(matches)
    cleared: List[str] = []
    _reset_recursive(current, positions, match_id, set(), cleared)
    logger.info("Reset %s: cleared %d match(es) %s", match_id, len(cleared), cleared)
    return current


def _reset_recursive(
    current: List[BracketMatch],
    positions: Dict[str, int],
    match_id: str,
    visited: Set[str],
    cleared: List[str],
) -> None:
    if match_id in visited:
        logger.warning("Reset cycle detected at %s; not descending further", match_id)
        return
    visited.add(match_id)

    idx = positions[match_id]
    current[idx] = current[idx].cleared()
    cleared.append(match_id)

    for dependent_id in [d.id for d in dependents_of(current, match_id)]:
        # Re-read: an earlier sibling's cascade may already have cleared it
        if current[positions[dependent_id]].has_progress:
            _reset_recursive(current, positions, dependent_id, visited, cleared)


def reset_all_results(matches: List[BracketMatch]) -> List[BracketMatch]:
    """Clear every score and winner while keeping the bracket topology."""
    return [m.cleared() for m in matches]
