"""
Tournament state endpoints: settings, bracket generation, bulk resets, standings.
Every mutation loads the saved state, runs the engine, settles byes and saves.
"""
import logging
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from bracket_app.database import get_session
from bracket_app.services.advancement_service import settle
from bracket_app.services.bracket_generator import generate
from bracket_app.services.bracket_types import BracketMatch, ResolvedSlot, Slot, TournamentFormat
from bracket_app.services.scoring_service import reset_all_results
from bracket_app.services.slot_resolver import can_play, resolve_sides
from bracket_app.services.standings import Podium, dead_match_ids, podium
from bracket_app.services.state_store import (
    SECTIONS,
    CollapseFlags,
    PersistedState,
    clear_state,
    load_state,
    save_state,
)
from bracket_app.utils.participants import find_duplicates, parse_participants, shuffle_participants

logger = logging.getLogger(__name__)

router = APIRouter()


class TournamentSettingsUpdate(BaseModel):
    player_input: Optional[str] = None
    format: Optional[TournamentFormat] = None
    best_of: Optional[Literal[1, 3]] = None
    collapsed: Optional[CollapseFlags] = None


class GenerateRequest(BaseModel):
    shuffle: bool = True
    seed: Optional[int] = None


class MatchView(BaseModel):
    id: str
    name: str
    bracket: str
    round: int
    a: Slot
    b: Slot
    score_a: int
    score_b: int
    winner: Optional[str] = None
    resolved_a: ResolvedSlot
    resolved_b: ResolvedSlot
    playable: bool
    dead: bool


class TournamentView(BaseModel):
    player_input: str
    format: TournamentFormat
    best_of: int
    wins_needed: int
    collapsed: CollapseFlags
    match_counts: Dict[str, int]
    matches: List[MatchView]
    standings: Podium


def _match_to_view(matches: List[BracketMatch], m: BracketMatch, dead: List[str]) -> MatchView:
    res_a, res_b = resolve_sides(matches, m)
    return MatchView(
        id=m.id,
        name=m.name,
        bracket=m.bracket.value,
        round=m.round,
        a=m.a,
        b=m.b,
        score_a=m.score_a,
        score_b=m.score_b,
        winner=m.winner,
        resolved_a=res_a,
        resolved_b=res_b,
        playable=can_play(matches, m) and m.id not in dead,
        dead=m.id in dead,
    )


def build_tournament_view(state: PersistedState) -> TournamentView:
    matches = state.matches
    dead = dead_match_ids(matches)
    counts: Dict[str, int] = {}
    for m in matches:
        counts[m.bracket.value] = counts.get(m.bracket.value, 0) + 1
    return TournamentView(
        player_input=state.player_input,
        format=state.format,
        best_of=state.best_of,
        wins_needed=state.wins_needed,
        collapsed=state.collapsed,
        match_counts=counts,
        matches=[_match_to_view(matches, m, dead) for m in matches],
        standings=podium(matches, state.format),
    )


@router.get("/tournament", response_model=TournamentView)
def get_tournament(session: Session = Depends(get_session)):
    """Current saved tournament with resolved slots and standings"""
    return build_tournament_view(load_state(session))


@router.patch("/tournament", response_model=TournamentView)
def update_tournament_settings(payload: TournamentSettingsUpdate, session: Session = Depends(get_session)):
    """
    Update participants text, format, best-of or collapse flags.

    Matches are kept as-is, except that a best-of change clears every result
    and re-settles byes.
    """
    state = load_state(session)
    update = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "collapsed" in update:
        update["collapsed"] = payload.collapsed
    best_of_changed = "best_of" in update and update["best_of"] != state.best_of
    state = state.model_copy(update=update)
    if best_of_changed and state.matches:
        logger.info("Series length changed to best-of-%d; clearing results", state.best_of)
        state = state.model_copy(update={"matches": settle(reset_all_results(state.matches), state.wins_needed)})
    save_state(session, state)
    return build_tournament_view(state)


@router.post("/tournament/sections/{section}/toggle", response_model=TournamentView)
def toggle_section(section: str, session: Session = Depends(get_session)):
    """Flip the collapse flag of one bracket section (wb, lb, rr)"""
    if section not in SECTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown section: {section}")
    state = load_state(session)
    flags = state.collapsed.model_copy(update={section: not getattr(state.collapsed, section)})
    state = state.model_copy(update={"collapsed": flags})
    save_state(session, state)
    return build_tournament_view(state)


@router.post("/tournament/generate", response_model=TournamentView)
def generate_bracket(payload: Optional[GenerateRequest] = None, session: Session = Depends(get_session)):
    """
    Build a fresh bracket from the saved participants text.

    Participants are validated before generation: at least 2, all distinct.
    Shuffling is done here (the generator keeps the order it is given).
    """
    payload = payload or GenerateRequest()
    state = load_state(session)

    names = parse_participants(state.player_input)
    if len(names) < 2:
        raise HTTPException(status_code=422, detail="Please enter at least 2 players.")
    dupes = find_duplicates(names)
    if dupes:
        raise HTTPException(status_code=422, detail=f"Duplicate player names: {', '.join(dupes)}")

    if payload.shuffle:
        names = shuffle_participants(names, payload.seed)

    try:
        matches = generate(state.format, names)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    state = state.model_copy(
        update={
            "matches": settle(matches, state.wins_needed),
            "collapsed": CollapseFlags(),
        }
    )
    save_state(session, state)
    return build_tournament_view(state)


@router.post("/tournament/reset-scores", response_model=TournamentView)
def reset_scores(session: Session = Depends(get_session)):
    """Clear every result; the bracket structure stays."""
    state = load_state(session)
    matches = settle(reset_all_results(state.matches), state.wins_needed)
    state = state.model_copy(update={"matches": matches})
    save_state(session, state)
    return build_tournament_view(state)


@router.delete("/tournament", response_model=TournamentView)
def clear_tournament(session: Session = Depends(get_session)):
    """Clear all data: participants, settings and bracket return to defaults."""
    return build_tournament_view(clear_state(session))


@router.get("/tournament/standings", response_model=Podium)
def get_standings(session: Session = Depends(get_session)):
    """Podium (and round-robin table) for the saved tournament"""
    state = load_state(session)
    return podium(state.matches, state.format)
