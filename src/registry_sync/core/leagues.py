from __future__ import annotations

LEAGUE_NAMES: dict[int, str] = {
    39: "Premier League",
    61: "Ligue 1",
    74: "Brasileiro Women",
    135: "Serie A",
    140: "La Liga",
}


def league_name(league_id: int) -> str:
    return LEAGUE_NAMES.get(league_id, f"League {league_id}")
