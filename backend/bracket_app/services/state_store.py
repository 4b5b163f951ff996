"""
Tournament state persistence.

The saved record is a flat JSON document (participants text, format, best-of,
match list, section collapse flags) stored under a fixed storage key. Loading
never fails: a missing or unparsable field falls back to its default without
affecting the other fields.
"""
import json
import logging
import os
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from sqlmodel import Session, select

from bracket_app.models.tournament_state import TournamentState, utc_now
from bracket_app.services.bracket_types import BracketMatch, TournamentFormat, wins_needed

logger = logging.getLogger(__name__)

STORAGE_KEY = os.getenv("STORAGE_KEY", "zh_tournament_state_v1")

DEFAULT_PLAYERS = "\n".join("EBAKA TIMUR KOLYAN DIMOS STASYA ANDREY".split())

SECTIONS = ("wb", "lb", "rr")


class CollapseFlags(BaseModel):
    wb: bool = False
    lb: bool = False
    rr: bool = False


class PersistedState(BaseModel):
    """Externally-owned tournament settings + match list, passed into engine entry points."""

    player_input: str = DEFAULT_PLAYERS
    format: TournamentFormat = TournamentFormat.double
    best_of: Literal[1, 3] = 1
    matches: List[BracketMatch] = Field(default_factory=list)
    collapsed: CollapseFlags = Field(default_factory=CollapseFlags)

    @property
    def wins_needed(self) -> int:
        return wins_needed(self.best_of)


_FIELD_ADAPTERS: Dict[str, TypeAdapter] = {
    "player_input": TypeAdapter(str),
    "format": TypeAdapter(TournamentFormat),
    "best_of": TypeAdapter(Literal[1, 3]),
    "matches": TypeAdapter(List[BracketMatch]),
}


def _parse_collapsed(raw: Any) -> CollapseFlags:
    """Merge saved flags over defaults one flag at a time."""
    flags = CollapseFlags()
    if not isinstance(raw, dict):
        logger.warning("Saved collapse flags unreadable; using defaults")
        return flags
    for section in SECTIONS:
        value = raw.get(section)
        if isinstance(value, bool):
            setattr(flags, section, value)
    return flags


def parse_state(raw_json: str) -> PersistedState:
    """
    Rebuild a PersistedState from saved JSON, field by field.

    Returns defaults for the whole record when the JSON itself is unparsable.
    """
    try:
        raw = json.loads(raw_json)
    except (TypeError, json.JSONDecodeError):
        logger.exception("Failed to parse saved tournament state; using defaults")
        return PersistedState()
    if not isinstance(raw, dict):
        logger.warning("Saved tournament state is not an object; using defaults")
        return PersistedState()

    values: Dict[str, Any] = {}
    for field_name, adapter in _FIELD_ADAPTERS.items():
        if field_name not in raw:
            continue
        try:
            values[field_name] = adapter.validate_python(raw[field_name])
        except ValidationError as e:
            logger.warning("Saved field %r invalid, falling back to default: %s", field_name, e.errors()[:1])
    if "collapsed" in raw:
        values["collapsed"] = _parse_collapsed(raw["collapsed"])

    return PersistedState(**values)


def _get_row(session: Session, key: str):
    return session.exec(select(TournamentState).where(TournamentState.storage_key == key)).first()


def load_state(session: Session, key: str = STORAGE_KEY) -> PersistedState:
    """Load the saved state for `key`, or defaults when nothing is saved."""
    row = _get_row(session, key)
    if row is None:
        return PersistedState()
    return parse_state(row.state_json)


def save_state(session: Session, state: PersistedState, key: str = STORAGE_KEY) -> PersistedState:
    """Upsert the state for `key`."""
    row = _get_row(session, key)
    payload = state.model_dump_json()
    if row is None:
        row = TournamentState(storage_key=key, state_json=payload)
    else:
        row.state_json = payload
        row.updated_at = utc_now()
    session.add(row)
    session.commit()
    return state


def clear_state(session: Session, key: str = STORAGE_KEY) -> PersistedState:
    """Delete the saved state for `key` and return fresh defaults."""
    row = _get_row(session, key)
    if row is not None:
        session.delete(row)
        session.commit()
    return PersistedState()
