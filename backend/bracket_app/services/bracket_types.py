"""
Bracket Types: match graph data model (single source of truth).

A match list is an arena of BracketMatch records keyed by id. Slots either
name a player, stand for a bye, or refer to the winner/loser of another match
by id (a weak reference: the match list owns every match).
"""
from __future__ import annotations

from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

BYE = "BYE"
UNKNOWN = "—"

ROLE_WINNER = "winner"
ROLE_LOSER = "loser"


class TournamentFormat(str, Enum):
    single = "single"
    double = "double"
    roundrobin = "roundrobin"


class BracketSegment(str, Enum):
    WB = "WB"  # Winners bracket
    LB = "LB"  # Losers bracket
    GF = "GF"  # Grand final
    RR = "RR"  # Round robin


class PlayerSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["player"] = "player"
    name: str


class ByeSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["bye"] = "bye"


class RefSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["ref"] = "ref"
    source_match_id: str
    which: Literal["winner", "loser"]


Slot = Annotated[Union[PlayerSlot, ByeSlot, RefSlot], Field(discriminator="kind")]


class BracketMatch(BaseModel):
    """One match node. Only score_a/score_b/winner change after generation."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    bracket: BracketSegment
    round: int = Field(ge=1)
    a: Slot
    b: Slot
    score_a: int = Field(default=0, ge=0)
    score_b: int = Field(default=0, ge=0)
    winner: Optional[str] = None  # resolved name, BYE, or None while pending

    @property
    def has_progress(self) -> bool:
        return self.score_a > 0 or self.score_b > 0 or bool(self.winner)

    def cleared(self) -> "BracketMatch":
        return self.model_copy(update={"score_a": 0, "score_b": 0, "winner": None})


MatchList = List[BracketMatch]


class ResolvedSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    is_bye: bool
    resolved: bool


def slot_for_entry(entry: str) -> Union[PlayerSlot, ByeSlot]:
    """Seed-list entry -> slot; the BYE filler becomes a bye slot."""
    if entry == BYE:
        return ByeSlot()
    return PlayerSlot(name=entry)


def winner_ref(match_id: str) -> RefSlot:
    return RefSlot(source_match_id=match_id, which=ROLE_WINNER)


def loser_ref(match_id: str) -> RefSlot:
    return RefSlot(source_match_id=match_id, which=ROLE_LOSER)


def wins_needed(best_of: int) -> int:
    """Series length -> wins required (best-of-1: 1, best-of-3: 2)."""
    if best_of == 1:
        return 1
    if best_of == 3:
        return 2
    raise ValueError(f"best_of must be 1 or 3, got {best_of}")
