from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path

# API-Football team id -> team fan-token symbol (Ligue 1).
TEAM_TOKEN_SYMBOLS: dict[int, str] = {
    77: "ANG",  # Angers
    79: "LIL",  # Lille
    80: "LYO",  # Lyon
    81: "MAR",  # Marseille
    82: "MON",  # Montpellier
    83: "NAN",  # Nantes
    84: "NIC",  # Nice
    85: "PAR",  # Paris Saint-Germain
    91: "MOA",  # Monaco
    93: "REI",  # Reims
    94: "REN",  # Rennes
    95: "STR",  # Strasbourg
    96: "TOU",  # Toulouse
    106: "BRE",  # Stade Brestois 29
    108: "AUX",  # Auxerre
    111: "HAV",  # Le Havre
    112: "MET",  # Metz
    116: "LEN",  # Lens
    1063: "ETI",  # Saint Etienne
}


def load_team_token_addresses(path: Path) -> dict[str, str]:
    """Load a ``{symbol: address}`` JSON mapping of team payment tokens."""

    raw = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a JSON object of symbol -> address")
    return {str(k): str(v) for k, v in raw.items() if v}


def resolve_team_token_address(team_id: int, addresses: Mapping[str, str]) -> str | None:
    symbol = TEAM_TOKEN_SYMBOLS.get(team_id)
    if symbol is None:
        return None
    return addresses.get(symbol)
