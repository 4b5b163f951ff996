"""
Bracket Topology Generator

Builds the initial match graph for a format and an already-ordered participant
list. Deterministic: the same (format, names) always yields the same list.

Match ids:
    single-elimination  S<round>-<n>
    double-elimination  W<round>-<n>, L<round>-<n>, GF-1, GF-2
    round-robin         RR<round>-<n>
"""
import logging
from typing import Dict, List, Sequence, TypeVar

from bracket_app.services.bracket_types import (
    BYE,
    BracketMatch,
    BracketSegment,
    Slot,
    TournamentFormat,
    loser_ref,
    slot_for_entry,
    winner_ref,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

GRAND_FINAL_ID = "GF-1"
BRACKET_RESET_ID = "GF-2"
LB_FINAL_NAME = "LB Final"


def next_pow2(n: int) -> int:
    """Smallest power of two >= n."""
    p = 1
    while p < n:
        p <<= 1
    return p


def chunk_pairs(items: Sequence[T]) -> List[List[T]]:
    """[a, b, c, d] -> [[a, b], [c, d]]"""
    return [list(items[i : i + 2]) for i in range(0, len(items), 2)]


def _pad_with_byes(names: Sequence[str]) -> List[str]:
    size = next_pow2(max(2, len(names)))
    return list(names) + [BYE] * (size - len(names))


def _new_match(match_id: str, bracket: BracketSegment, round_no: int, name: str, a: Slot, b: Slot) -> BracketMatch:
    return BracketMatch(id=match_id, name=name, bracket=bracket, round=round_no, a=a, b=b)


def _build_winners_bracket(seeded: List[str], prefix: str) -> Dict[int, List[BracketMatch]]:
    """Round 1 pairs consecutive entries; each later round pairs consecutive winners."""
    rounds: Dict[int, List[BracketMatch]] = {1: []}
    for idx, (entry_a, entry_b) in enumerate(chunk_pairs(seeded), start=1):
        match_id = f"{prefix}1-{idx}"
        rounds[1].append(
            _new_match(match_id, BracketSegment.WB, 1, match_id, slot_for_entry(entry_a), slot_for_entry(entry_b))
        )

    round_count = len(seeded).bit_length() - 1
    for r in range(2, round_count + 1):
        rounds[r] = []
        for idx, (src_a, src_b) in enumerate(chunk_pairs(rounds[r - 1]), start=1):
            match_id = f"{prefix}{r}-{idx}"
            rounds[r].append(
                _new_match(match_id, BracketSegment.WB, r, match_id, winner_ref(src_a.id), winner_ref(src_b.id))
            )
    return rounds


def _flatten(rounds: Dict[int, List[BracketMatch]]) -> List[BracketMatch]:
    return [m for r in sorted(rounds) for m in rounds[r]]


def generate_single_elim(names: Sequence[str]) -> List[BracketMatch]:
    """
    Single-elimination: pad to P = next power of two >= max(2, N) with byes.

    Produces log2(P) rounds and P - 1 matches.
    """
    rounds = _build_winners_bracket(_pad_with_byes(names), "S")
    return _flatten(rounds)


def generate_double_elim(names: Sequence[str]) -> List[BracketMatch]:
    """
    Double-elimination: winners bracket as in single-elimination, plus a losers
    bracket, a grand final (GF-1) and an always-present bracket reset (GF-2).

    Losers bracket layout for wr = log2(P) winners rounds:
        L1       losers of W1, paired consecutively
        for each W round r in 2..wr-1:
            even   previous L round winners vs losers dropping from W r
            odd    even round winners paired consecutively
        LB Final last L round winner vs loser of the W final

    With only two entrants (wr == 1) there is nothing to play in the losers
    bracket, so the W final loser goes straight into the grand final.
    """
    wb_rounds = _build_winners_bracket(_pad_with_byes(names), "W")
    wr = max(wb_rounds)
    wb_final = wb_rounds[wr][0]

    lb_rounds: Dict[int, List[BracketMatch]] = {}
    lb_final = None

    if wr >= 2:
        lb_round = 1
        lb_rounds[lb_round] = []
        w1_losers = [loser_ref(m.id) for m in wb_rounds[1]]
        for idx, (slot_a, slot_b) in enumerate(chunk_pairs(w1_losers), start=1):
            match_id = f"L{lb_round}-{idx}"
            lb_rounds[lb_round].append(_new_match(match_id, BracketSegment.LB, lb_round, match_id, slot_a, slot_b))

        for r in range(2, wr):
            # Drop-down round: survivors meet the fresh losers of W round r
            lb_round += 1
            even = lb_round
            lb_rounds[even] = []
            survivors = [winner_ref(m.id) for m in lb_rounds[even - 1]]
            dropped = [loser_ref(m.id) for m in wb_rounds[r]]
            for idx, (slot_a, slot_b) in enumerate(zip(survivors, dropped), start=1):
                match_id = f"L{even}-{idx}"
                lb_rounds[even].append(_new_match(match_id, BracketSegment.LB, even, match_id, slot_a, slot_b))

            # Consolidation round: survivors play each other
            lb_round += 1
            odd = lb_round
            lb_rounds[odd] = []
            survivors = [winner_ref(m.id) for m in lb_rounds[even]]
            for idx, (slot_a, slot_b) in enumerate(chunk_pairs(survivors), start=1):
                match_id = f"L{odd}-{idx}"
                lb_rounds[odd].append(_new_match(match_id, BracketSegment.LB, odd, match_id, slot_a, slot_b))

        final_round = lb_round + 1
        lb_final = _new_match(
            f"L{final_round}-1",
            BracketSegment.LB,
            final_round,
            LB_FINAL_NAME,
            winner_ref(lb_rounds[lb_round][0].id),
            loser_ref(wb_final.id),
        )
        lb_rounds[final_round] = [lb_final]

    gf_side_b = winner_ref(lb_final.id) if lb_final is not None else loser_ref(wb_final.id)
    grand_final = _new_match(GRAND_FINAL_ID, BracketSegment.GF, 1, "Grand Final", winner_ref(wb_final.id), gf_side_b)
    bracket_reset = _new_match(
        BRACKET_RESET_ID,
        BracketSegment.GF,
        2,
        "Bracket Reset",
        loser_ref(GRAND_FINAL_ID),
        winner_ref(GRAND_FINAL_ID),
    )

    return _flatten(wb_rounds) + _flatten(lb_rounds) + [grand_final, bracket_reset]


def generate_round_robin(names: Sequence[str]) -> List[BracketMatch]:
    """
    Round-robin by the circle method.

    An odd field gets a BYE filler. Position 0 stays fixed; the rest rotate by
    one each round. Round r pairs position i with n-1-i for i in [0, n/2).
    """
    players = list(names)
    if len(players) % 2 == 1:
        players.append(BYE)

    n = len(players)
    half = n // 2
    matches: List[BracketMatch] = []

    arr = players
    for r in range(1, n):
        for i in range(half):
            match_id = f"RR{r}-{i + 1}"
            matches.append(
                _new_match(
                    match_id,
                    BracketSegment.RR,
                    r,
                    f"R{r}",
                    slot_for_entry(arr[i]),
                    slot_for_entry(arr[n - 1 - i]),
                )
            )
        rest = arr[1:]
        arr = [arr[0], rest[-1]] + rest[:-1]

    return matches


_GENERATORS = {
    TournamentFormat.single: generate_single_elim,
    TournamentFormat.double: generate_double_elim,
    TournamentFormat.roundrobin: generate_round_robin,
}


def generate(fmt: TournamentFormat, names: Sequence[str]) -> List[BracketMatch]:
    """
    Build the match list for a format.

    Raises:
        ValueError: fewer than 2 names, duplicate names, a name equal to the
            bye sentinel, or an unknown format
    """
    if len(names) < 2:
        raise ValueError(f"At least 2 participants are required, got {len(names)}")
    if len(set(names)) != len(names):
        raise ValueError("Participant names must be distinct")
    if BYE in names:
        raise ValueError(f"'{BYE}' is reserved and cannot be used as a participant name")

    try:
        builder = _GENERATORS[TournamentFormat(fmt)]
    except ValueError:
        raise ValueError(f"Unknown tournament format: {fmt}") from None

    matches = builder(names)
    logger.info("Generated %s bracket: %d participants, %d matches", TournamentFormat(fmt).value, len(names), len(matches))
    return matches
