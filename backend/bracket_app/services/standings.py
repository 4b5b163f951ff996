"""
Standings derivation for the display layer.

Round-robin: 3 points per series won, map points = games won, ordered by match
points, then map points, then wins. Walkovers against the bye never count.

Elimination: podium from the final (single) or the grand final / bracket reset
(double). Single-elimination reports no third place.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel

from bracket_app.services.bracket_generator import BRACKET_RESET_ID, GRAND_FINAL_ID
from bracket_app.services.bracket_types import (
    BYE,
    UNKNOWN,
    BracketMatch,
    BracketSegment,
    TournamentFormat,
)
from bracket_app.services.slot_resolver import find_match, match_loser, resolve_sides

MATCH_WIN_POINTS = 3


class PlayerStats(BaseModel):
    name: str
    played: int = 0
    wins: int = 0
    losses: int = 0
    match_points: int = 0
    map_points: int = 0


class Podium(BaseModel):
    first: str = UNKNOWN
    second: str = UNKNOWN
    third: str = UNKNOWN
    table: Optional[List[PlayerStats]] = None


def round_robin_table(matches: List[BracketMatch]) -> List[PlayerStats]:
    """Aggregate per-player results over decided, non-walkover matches."""
    stats: Dict[str, PlayerStats] = {}
    for m in matches:
        for side in resolve_sides(matches, m):
            if side.resolved and not side.is_bye and side.name not in stats:
                stats[side.name] = PlayerStats(name=side.name)

    for m in matches:
        if not m.winner or m.winner == BYE:
            continue
        res_a, res_b = resolve_sides(matches, m)
        if res_a.is_bye or res_b.is_bye:
            continue

        a_won = m.winner == res_a.name
        winner = stats.get(m.winner)
        loser = stats.get(res_b.name if a_won else res_a.name)

        if winner is not None:
            winner.played += 1
            winner.wins += 1
            winner.match_points += MATCH_WIN_POINTS
            winner.map_points += m.score_a if a_won else m.score_b
        if loser is not None:
            loser.played += 1
            loser.losses += 1
            loser.map_points += m.score_b if a_won else m.score_a

    return sorted(
        stats.values(),
        key=lambda s: (s.match_points, s.map_points, s.wins),
        reverse=True,
    )


def is_bracket_reset_live(matches: List[BracketMatch]) -> bool:
    """True once the losers-bracket side has won GF-1, so GF-2 must be played."""
    grand_final = find_match(matches, GRAND_FINAL_ID)
    if grand_final is None or not grand_final.winner or grand_final.winner == BYE:
        return False
    _, res_b = resolve_sides(matches, grand_final)
    return res_b.resolved and grand_final.winner == res_b.name


def dead_match_ids(matches: List[BracketMatch]) -> List[str]:
    """Matches present in the graph that no longer affect the result."""
    grand_final = find_match(matches, GRAND_FINAL_ID)
    reset = find_match(matches, BRACKET_RESET_ID)
    if grand_final is None or reset is None or not grand_final.winner:
        return []
    if is_bracket_reset_live(matches):
        return []
    return [reset.id]


def _final_match(matches: List[BracketMatch], fmt: TournamentFormat) -> Optional[BracketMatch]:
    if fmt == TournamentFormat.single:
        wb = [m for m in matches if m.bracket == BracketSegment.WB]
        if not wb:
            return None
        last_round = max(m.round for m in wb)
        return next(m for m in wb if m.round == last_round)

    reset = find_match(matches, BRACKET_RESET_ID)
    if reset is not None and reset.winner and is_bracket_reset_live(matches):
        return reset
    return find_match(matches, GRAND_FINAL_ID)


def _lb_final(matches: List[BracketMatch]) -> Optional[BracketMatch]:
    lb = [m for m in matches if m.bracket == BracketSegment.LB]
    if not lb:
        return None
    return max(lb, key=lambda m: m.round)


def podium(matches: List[BracketMatch], fmt: TournamentFormat) -> Podium:
    """First/second/third place for the current state of the bracket."""
    fmt = TournamentFormat(fmt)

    if fmt == TournamentFormat.roundrobin:
        table = round_robin_table(matches)
        names = [s.name for s in table[:3]] + [UNKNOWN] * (3 - min(3, len(table)))
        return Podium(first=names[0], second=names[1], third=names[2], table=table)

    result = Podium()
    final = _final_match(matches, fmt)
    if final is not None and final.winner and final.winner != BYE:
        result.first = final.winner
        result.second = match_loser(matches, final) or UNKNOWN

    if fmt == TournamentFormat.double:
        lb_final = _lb_final(matches)
        if lb_final is not None:
            third = match_loser(matches, lb_final)
            if third and third != BYE:
                result.third = third

    return result
