from __future__ import annotations

from typing import Any

from registry_sync.core.text import full_name
from registry_sync.domain.models import (
    EntityStats,
    ExternalEntity,
    StatSnapshot,
    TeamRecord,
    VenueInfo,
)
from registry_sync.ingestion.providers.base.errors import ProviderMappingError

ApiItem = dict[str, Any]


def _obj(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _int_or_none(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _require_id(obj: dict[str, Any], *, what: str) -> int:
    value = _int_or_none(obj.get("id"))
    if value is None:
        raise ProviderMappingError(f"{what} item has no usable id", context={"item": obj})
    return value


def parse_team(item: ApiItem) -> TeamRecord:
    """Parse one ``/teams`` response item."""

    team = _obj(item.get("team"))
    venue = _obj(item.get("venue"))
    team_id = _require_id(team, what="team")

    return TeamRecord(
        team_id=team_id,
        name=str(team.get("name") or team_id),
        code=team.get("code"),
        country=team.get("country"),
        logo_url=team.get("logo"),
        venue=VenueInfo(
            name=venue.get("name"),
            city=venue.get("city"),
            capacity=_int_or_none(venue.get("capacity")),
        ),
    )


def select_statistics(item: ApiItem, *, league_id: int | None = None) -> dict[str, Any] | None:
    """Pick the statistics block for the league in scope (first block otherwise)."""

    blocks = [b for b in item.get("statistics") or [] if isinstance(b, dict)]
    if not blocks:
        return None
    if league_id is not None:
        for block in blocks:
            if _int_or_none(_obj(block.get("league")).get("id")) == league_id:
                return block
    return blocks[0]


def parse_snapshot(stats: dict[str, Any], *, last_updated: int) -> StatSnapshot:
    goals = _obj(stats.get("goals"))
    shots = _obj(stats.get("shots"))
    duels = _obj(stats.get("duels"))
    tackles = _obj(stats.get("tackles"))
    games = _obj(stats.get("games"))
    cards = _obj(stats.get("cards"))
    penalty = _obj(stats.get("penalty"))

    return StatSnapshot(
        goals=_int_or_none(goals.get("total")),
        assists=_int_or_none(goals.get("assists")),
        penalties_scored=_int_or_none(penalty.get("scored")),
        shots_total=_int_or_none(shots.get("total")),
        shots_on_target=_int_or_none(shots.get("on")),
        duels_total=_int_or_none(duels.get("total")),
        duels_won=_int_or_none(duels.get("won")),
        tackles_total=_int_or_none(tackles.get("total")),
        # (sic) the provider spells it "appearences"
        appearances=_int_or_none(games.get("appearences")),
        yellow_cards=_int_or_none(cards.get("yellow")),
        red_cards=_int_or_none(cards.get("red")),
        last_updated=last_updated,
    )


def parse_player(
    item: ApiItem,
    *,
    team_id: int,
    team_name: str,
    league_id: int | None = None,
    last_updated: int = 0,
) -> ExternalEntity:
    """Parse one ``/players?team=`` response item into an ExternalEntity."""

    player = _obj(item.get("player"))
    external_id = _require_id(player, what="player")
    first = str(player.get("firstname") or "")
    last = str(player.get("lastname") or "")

    stats = select_statistics(item, league_id=league_id)
    games = _obj(stats.get("games")) if stats else {}
    stats_team = _obj(stats.get("team")) if stats else {}

    return ExternalEntity(
        external_id=external_id,
        display_name=full_name(first, last, fallback=str(player.get("name") or external_id)),
        first_name=first,
        last_name=last,
        team_external_id=team_id,
        team_name=stats_team.get("name") or team_name,
        position=games.get("position"),
        nationality=player.get("nationality"),
        age=_int_or_none(player.get("age")),
        photo_url=player.get("photo"),
        snapshot=parse_snapshot(stats, last_updated=last_updated) if stats else None,
    )


def parse_entity_stats(
    item: ApiItem,
    *,
    league_id: int | None = None,
    last_updated: int,
) -> EntityStats | None:
    """Parse one ``/players?id=`` response item; None when it carries no statistics."""

    player = _obj(item.get("player"))
    external_id = _require_id(player, what="player")
    stats = select_statistics(item, league_id=league_id)
    if stats is None:
        return None

    team = _obj(stats.get("team"))
    return EntityStats(
        external_id=external_id,
        snapshot=parse_snapshot(stats, last_updated=last_updated),
        photo_url=player.get("photo") or "",
        team_logo_url=team.get("logo") or "",
    )
