from bracket_app.models.tournament_state import TournamentState

__all__ = [
    "TournamentState",
]
