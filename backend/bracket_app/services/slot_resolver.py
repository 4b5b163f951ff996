"""
Slot Resolver: compute who currently occupies a slot.

Resolution is always recomputed from the match list it is given (never cached
across mutations), so it is a pure function of (matches, slot).
"""
import logging
from typing import Dict, FrozenSet, List, Optional, Tuple

from bracket_app.services.bracket_types import (
    BYE,
    UNKNOWN,
    BracketMatch,
    ByeSlot,
    PlayerSlot,
    RefSlot,
    ResolvedSlot,
    ROLE_WINNER,
    Slot,
)

logger = logging.getLogger(__name__)

# Elimination graphs are at most ~2*log2(P)+2 deep. Anything deeper, or any
# ref revisited on the same path, is a malformed (cyclic) match list.
MAX_RESOLVE_DEPTH = 64

_BYE_SLOT = ResolvedSlot(name=BYE, is_bye=True, resolved=True)
_DANGLING = ResolvedSlot(name=UNKNOWN, is_bye=False, resolved=False)


def find_match(matches: List[BracketMatch], match_id: str) -> Optional[BracketMatch]:
    """Look up a match by id in the current match list."""
    for m in matches:
        if m.id == match_id:
            return m
    return None


def index_matches(matches: List[BracketMatch]) -> Dict[str, int]:
    """Map match id -> position in the list."""
    return {m.id: i for i, m in enumerate(matches)}


def dependents_of(matches: List[BracketMatch], match_id: str) -> List[BracketMatch]:
    """Matches whose slot A or slot B refers to match_id (direct dependents only)."""
    return [
        m
        for m in matches
        if (isinstance(m.a, RefSlot) and m.a.source_match_id == match_id)
        or (isinstance(m.b, RefSlot) and m.b.source_match_id == match_id)
    ]


def resolve_slot(matches: List[BracketMatch], slot: Slot) -> ResolvedSlot:
    """
    Resolve a slot against the match list.

    Returns:
        ResolvedSlot where:
        - player slot -> (name, False, True)
        - bye slot -> ("BYE", True, True)
        - winner ref -> source winner, BYE if the source was a double-bye,
          or "Winner of <name>" (unresolved) while pending
        - loser ref -> the side that did not win; BYE if either side of the
          source was a bye, or "Loser of <name>" (unresolved) while pending
        - dangling ref -> ("—", False, False)
    """
    return _resolve(matches, slot, frozenset(), {})


def _resolve(
    matches: List[BracketMatch],
    slot: Slot,
    path: FrozenSet[Tuple[str, str]],
    memo: Dict[Tuple[str, str], ResolvedSlot],
) -> ResolvedSlot:
    if isinstance(slot, PlayerSlot):
        return ResolvedSlot(name=slot.name, is_bye=False, resolved=True)
    if isinstance(slot, ByeSlot):
        return _BYE_SLOT
    if not isinstance(slot, RefSlot):
        return _DANGLING

    key = (slot.source_match_id, slot.which)
    if key in memo:
        return memo[key]
    if key in path:
        logger.warning("Cyclic ref to %s of %s; leaving slot unresolved", slot.which, slot.source_match_id)
        return _DANGLING
    if len(path) >= MAX_RESOLVE_DEPTH:
        logger.warning("Slot resolution exceeded depth %d at %s", MAX_RESOLVE_DEPTH, slot.source_match_id)
        return _DANGLING

    source = find_match(matches, slot.source_match_id)
    if source is None:
        return _DANGLING

    if slot.which == ROLE_WINNER:
        if source.winner == BYE:
            return _BYE_SLOT
        if source.winner:
            return ResolvedSlot(name=source.winner, is_bye=False, resolved=True)
        return ResolvedSlot(name=f"Winner of {source.name}", is_bye=False, resolved=False)

    if not source.winner:
        return ResolvedSlot(name=f"Loser of {source.name}", is_bye=False, resolved=False)

    path = path | {key}
    res_a = _resolve(matches, source.a, path, memo)
    res_b = _resolve(matches, source.b, path, memo)
    memo[key] = _loser_of(source, res_a, res_b)
    return memo[key]


def _loser_of(source: BracketMatch, res_a: ResolvedSlot, res_b: ResolvedSlot) -> ResolvedSlot:
    # A bye never "loses" a real participant into the next stage
    if res_a.is_bye or res_b.is_bye:
        return _BYE_SLOT
    if source.winner == res_a.name:
        return ResolvedSlot(name=res_b.name, is_bye=False, resolved=res_b.resolved)
    if source.winner == res_b.name:
        return ResolvedSlot(name=res_a.name, is_bye=False, resolved=res_a.resolved)
    return _DANGLING


def resolve_sides(matches: List[BracketMatch], match: BracketMatch):
    """Resolve both slots of a match: (side_a, side_b)."""
    return resolve_slot(matches, match.a), resolve_slot(matches, match.b)


def match_loser(matches: List[BracketMatch], match: BracketMatch) -> Optional[str]:
    """Resolved name of the side that did not win; None if undecided or indeterminate."""
    if not match.winner or match.winner == BYE:
        return None
    res_a, res_b = resolve_sides(matches, match)
    if match.winner == res_a.name:
        return res_b.name
    if match.winner == res_b.name:
        return res_a.name
    return None


def can_play(matches: List[BracketMatch], match: BracketMatch) -> bool:
    """A match takes a scored result only when undecided with two real, known sides."""
    if match.winner:
        return False
    res_a, res_b = resolve_sides(matches, match)
    return res_a.resolved and res_b.resolved and not res_a.is_bye and not res_b.is_bye
