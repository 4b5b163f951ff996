"""HTTP flow: settings, generation, scoring, resets, clear, standings."""
from fastapi.testclient import TestClient
from sqlmodel import Session

from bracket_app.services.bracket_types import BracketMatch, BracketSegment, TournamentFormat, loser_ref
from bracket_app.services.state_store import PersistedState, save_state


def _match(view, match_id):
    return next(m for m in view["matches"] if m["id"] == match_id)


def _setup(client: TestClient, players, fmt="single", best_of=1, shuffle=False):
    response = client.patch(
        "/api/tournament",
        json={"player_input": "\n".join(players), "format": fmt, "best_of": best_of},
    )
    assert response.status_code == 200
    response = client.post("/api/tournament/generate", json={"shuffle": shuffle})
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_default_state(client: TestClient):
    response = client.get("/api/tournament")
    assert response.status_code == 200
    data = response.json()
    assert data["format"] == "double"
    assert data["best_of"] == 1
    assert data["wins_needed"] == 1
    assert data["matches"] == []
    assert data["player_input"].split("\n")[0] == "EBAKA"
    assert data["standings"]["first"] == "—"


def test_generate_settles_byes(client: TestClient):
    data = _setup(client, ["A", "B", "C"])
    assert [m["id"] for m in data["matches"]] == ["S1-1", "S1-2", "S2-1"]
    assert data["match_counts"] == {"WB": 3}

    walkover = _match(data, "S1-2")
    assert walkover["winner"] == "C"
    assert walkover["resolved_b"] == {"name": "BYE", "is_bye": True, "resolved": True}
    assert walkover["playable"] is False

    final = _match(data, "S2-1")
    assert final["resolved_a"]["name"] == "Winner of S1-1"
    assert final["resolved_b"]["name"] == "C"
    assert final["playable"] is False
    assert _match(data, "S1-1")["playable"] is True


def test_generate_with_participant_whitespace(client: TestClient):
    client.patch("/api/tournament", json={"player_input": "  A \n\n B\n   \nC  ", "format": "roundrobin"})
    data = client.post("/api/tournament/generate", json={"shuffle": False}).json()
    assert len(data["matches"]) == 6
    names = {data["matches"][0]["a"]["name"], data["matches"][0]["b"].get("name")}
    assert "A" in names


def test_generate_requires_two_players(client: TestClient):
    client.patch("/api/tournament", json={"player_input": "Solo\n\n"})
    response = client.post("/api/tournament/generate", json={})
    assert response.status_code == 422
    assert "at least 2" in response.json()["detail"]
    assert client.get("/api/tournament").json()["matches"] == []


def test_generate_rejects_duplicates(client: TestClient):
    client.patch("/api/tournament", json={"player_input": "A\nB\nA"})
    response = client.post("/api/tournament/generate", json={"shuffle": False})
    assert response.status_code == 422
    assert "A" in response.json()["detail"]


def test_generate_shuffle_with_seed_is_reproducible(client: TestClient):
    players = [f"P{i}" for i in range(1, 9)]
    client.patch("/api/tournament", json={"player_input": "\n".join(players), "format": "single"})
    first = client.post("/api/tournament/generate", json={"shuffle": True, "seed": 42}).json()
    second = client.post("/api/tournament/generate", json={"shuffle": True, "seed": 42}).json()
    assert first["matches"] == second["matches"]
    seeded = sorted(s["name"] for m in first["matches"][:4] for s in (m["a"], m["b"]))
    assert seeded == sorted(players)


def test_generate_without_body_defaults_to_shuffle(client: TestClient):
    client.patch("/api/tournament", json={"player_input": "A\nB\nC\nD", "format": "double"})
    response = client.post("/api/tournament/generate")
    assert response.status_code == 200
    assert response.json()["match_counts"] == {"WB": 3, "LB": 2, "GF": 2}


def test_record_win_and_advance(client: TestClient):
    _setup(client, ["A", "B", "C", "D"])
    response = client.post("/api/tournament/matches/S1-1/win", json={"side": "b"})
    assert response.status_code == 200
    data = response.json()
    assert _match(data, "S1-1")["winner"] == "B"
    assert _match(data, "S2-1")["resolved_a"]["name"] == "B"

    data = client.post("/api/tournament/matches/S1-2/win", json={"side": "a"}).json()
    data = client.post("/api/tournament/matches/S2-1/win", json={"side": "a"}).json()
    assert data["standings"]["first"] == "B"
    assert data["standings"]["second"] == "C"
    assert data["standings"]["third"] == "—"

    # Persisted
    assert client.get("/api/tournament").json()["standings"]["first"] == "B"


def test_best_of_three_flow(client: TestClient):
    _setup(client, ["A", "B"], best_of=3)
    data = client.post("/api/tournament/matches/S1-1/win", json={"side": "a"}).json()
    assert _match(data, "S1-1")["score_a"] == 1
    assert _match(data, "S1-1")["winner"] is None
    data = client.post("/api/tournament/matches/S1-1/win", json={"side": "a"}).json()
    assert _match(data, "S1-1")["winner"] == "A"
    # Decided: further wins are ignored
    data = client.post("/api/tournament/matches/S1-1/win", json={"side": "b"}).json()
    assert _match(data, "S1-1")["score_b"] == 0


def test_best_of_change_clears_results(client: TestClient):
    _setup(client, ["A", "B", "C"], best_of=3)
    client.post("/api/tournament/matches/S1-1/win", json={"side": "a"})
    data = client.post("/api/tournament/matches/S1-1/win", json={"side": "a"}).json()
    assert _match(data, "S1-1")["score_a"] == 2
    assert _match(data, "S1-2")["score_a"] == 2

    data = client.patch("/api/tournament", json={"best_of": 1}).json()
    assert data["wins_needed"] == 1
    assert _match(data, "S1-1")["winner"] is None
    assert _match(data, "S1-1")["score_a"] == 0
    walkover = _match(data, "S1-2")
    assert walkover["winner"] == "C"
    assert walkover["score_a"] == 1
    assert all(m["score_a"] <= 1 and m["score_b"] <= 1 for m in data["matches"])


def test_same_best_of_keeps_results(client: TestClient):
    _setup(client, ["A", "B"])
    client.post("/api/tournament/matches/S1-1/win", json={"side": "b"})
    data = client.patch("/api/tournament", json={"best_of": 1, "player_input": "A\nB\nC"}).json()
    assert _match(data, "S1-1")["winner"] == "B"


def test_win_on_unknown_match_is_404(client: TestClient):
    _setup(client, ["A", "B"])
    response = client.post("/api/tournament/matches/S9-9/win", json={"side": "a"})
    assert response.status_code == 404


def test_win_with_bad_side_is_422(client: TestClient):
    _setup(client, ["A", "B"])
    response = client.post("/api/tournament/matches/S1-1/win", json={"side": "c"})
    assert response.status_code == 422


def test_reset_match_cascades(client: TestClient):
    _setup(client, ["A", "B", "C", "D"])
    for match_id, side in (("S1-1", "a"), ("S1-2", "a"), ("S2-1", "a")):
        client.post(f"/api/tournament/matches/{match_id}/win", json={"side": side})

    data = client.post("/api/tournament/matches/S1-1/reset").json()
    assert _match(data, "S1-1")["winner"] is None
    assert _match(data, "S2-1")["winner"] is None
    assert _match(data, "S1-2")["winner"] == "C"
    assert data["standings"]["first"] == "—"


def test_reset_unknown_match_is_404(client: TestClient):
    response = client.post("/api/tournament/matches/nope/reset")
    assert response.status_code == 404


def test_reset_scores_keeps_structure_and_byes(client: TestClient):
    _setup(client, ["A", "B", "C"])
    client.post("/api/tournament/matches/S1-1/win", json={"side": "a"})
    data = client.post("/api/tournament/reset-scores").json()
    assert [m["id"] for m in data["matches"]] == ["S1-1", "S1-2", "S2-1"]
    assert _match(data, "S1-1")["winner"] is None
    assert _match(data, "S1-2")["winner"] == "C"


def test_double_elim_dead_bracket_reset(client: TestClient):
    _setup(client, ["A", "B", "C", "D"], fmt="double")
    for match_id, side in (
        ("W1-1", "a"),
        ("W1-2", "a"),
        ("W2-1", "a"),
        ("L1-1", "a"),
        ("L2-1", "b"),
        ("GF-1", "a"),
    ):
        response = client.post(f"/api/tournament/matches/{match_id}/win", json={"side": side})
        assert response.status_code == 200

    data = response.json()
    reset = _match(data, "GF-2")
    assert reset["dead"] is True
    assert reset["playable"] is False
    assert data["standings"] == {"first": "A", "second": "C", "third": "B", "table": None}

    # A dead bracket reset takes no result
    data = client.post("/api/tournament/matches/GF-2/win", json={"side": "a"}).json()
    reset = _match(data, "GF-2")
    assert reset["winner"] is None
    assert reset["score_a"] == 0
    assert _match(client.get("/api/tournament").json(), "GF-2")["score_a"] == 0


def test_update_settings_validation(client: TestClient):
    assert client.patch("/api/tournament", json={"best_of": 2}).status_code == 422
    assert client.patch("/api/tournament", json={"format": "swiss"}).status_code == 422

    data = client.patch("/api/tournament", json={"best_of": 3}).json()
    assert data["best_of"] == 3
    assert data["wins_needed"] == 2
    assert data["format"] == "double"


def test_toggle_section(client: TestClient):
    data = client.post("/api/tournament/sections/lb/toggle").json()
    assert data["collapsed"] == {"wb": False, "lb": True, "rr": False}
    data = client.post("/api/tournament/sections/lb/toggle").json()
    assert data["collapsed"]["lb"] is False
    assert client.post("/api/tournament/sections/xx/toggle").status_code == 404


def test_generate_expands_sections(client: TestClient):
    client.patch("/api/tournament", json={"collapsed": {"wb": True, "lb": True, "rr": True}})
    data = _setup(client, ["A", "B"])
    assert data["collapsed"] == {"wb": False, "lb": False, "rr": False}


def test_clear_tournament(client: TestClient):
    _setup(client, ["A", "B"], best_of=3)
    data = client.delete("/api/tournament").json()
    assert data["matches"] == []
    assert data["best_of"] == 1
    assert data["format"] == "double"
    assert client.get("/api/tournament").json()["matches"] == []


def test_round_robin_standings_endpoint(client: TestClient):
    _setup(client, ["A", "B", "C"], fmt="roundrobin")
    data = client.get("/api/tournament").json()
    for m in data["matches"]:
        if m["playable"]:
            side = "a" if m["a"].get("name") == "A" or m["b"].get("name") == "C" else "b"
            client.post(f"/api/tournament/matches/{m['id']}/win", json={"side": side})

    standings = client.get("/api/tournament/standings").json()
    assert [row["name"] for row in standings["table"]] == ["A", "B", "C"]
    assert standings["first"] == "A"
    assert standings["table"][0]["match_points"] == 6


def test_corrupted_self_referencing_match_still_loads(client: TestClient, session: Session):
    looped = BracketMatch(
        id="M1", name="M1", bracket=BracketSegment.WB, round=1, a=loser_ref("M1"), b=loser_ref("M1"), winner="A"
    )
    save_state(session, PersistedState(format=TournamentFormat.single, matches=[looped]))

    response = client.get("/api/tournament")
    assert response.status_code == 200
    view = _match(response.json(), "M1")
    assert view["resolved_a"] == {"name": "—", "is_bye": False, "resolved": False}
    assert view["playable"] is False
