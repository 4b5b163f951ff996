"""
Match result endpoints. Scoring and resets go through the engine and are
settled (bye propagation) before the state is saved.
"""
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from bracket_app.database import get_session
from bracket_app.routes.tournament import TournamentView, build_tournament_view
from bracket_app.services.advancement_service import settle
from bracket_app.services.scoring_service import apply_win, reset_match
from bracket_app.services.slot_resolver import find_match
from bracket_app.services.standings import dead_match_ids
from bracket_app.services.state_store import PersistedState, load_state, save_state

router = APIRouter()


class MatchWinRequest(BaseModel):
    side: Literal["a", "b"]


def _load_with_match(session: Session, match_id: str) -> PersistedState:
    state = load_state(session)
    if find_match(state.matches, match_id) is None:
        raise HTTPException(status_code=404, detail="Match not found")
    return state


@router.post("/tournament/matches/{match_id}/win", response_model=TournamentView)
def record_game_win(match_id: str, payload: MatchWinRequest, session: Session = Depends(get_session)):
    """Record one game for a side. Decided, dead or not-yet-playable matches are left unchanged."""
    state = _load_with_match(session, match_id)
    if match_id in dead_match_ids(state.matches):
        return build_tournament_view(state)
    wins = state.wins_needed
    matches = settle(apply_win(state.matches, match_id, payload.side, wins), wins)
    state = state.model_copy(update={"matches": matches})
    save_state(session, state)
    return build_tournament_view(state)


@router.post("/tournament/matches/{match_id}/reset", response_model=TournamentView)
def reset_match_result(match_id: str, session: Session = Depends(get_session)):
    """Clear a match result and every downstream result built on it."""
    state = _load_with_match(session, match_id)
    matches = settle(reset_match(state.matches, match_id), state.wins_needed)
    state = state.model_copy(update={"matches": matches})
    save_state(session, state)
    return build_tournament_view(state)
