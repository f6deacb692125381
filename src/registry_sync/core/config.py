from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from registry_sync.core.leagues import league_name
from registry_sync.core.team_tokens import load_team_token_addresses
from registry_sync.domain.models import STAT_COUNTER_FIELDS, DatasetScope


@dataclass(frozen=True)
class PipelineConfig:
    """Everything a provisioning or reconciliation pass needs to know.

    Built once per invocation and passed explicitly into every orchestrator and
    engine call.
    """

    scope: DatasetScope
    collection_name: str
    initial_supply: str = "1000000"
    pace_ms: int = 2000
    checkpoint_every: int = 5
    snapshot_fields: tuple[str, ...] = STAT_COUNTER_FIELDS
    team_token_addresses: dict[str, str] = field(default_factory=dict)
    require_team_token: bool = False
    stop_on_failure: bool = False

    def __post_init__(self) -> None:
        if self.checkpoint_every < 0:
            raise ValueError("checkpoint_every must be >= 0")
        if self.pace_ms < 0:
            raise ValueError("pace_ms must be >= 0")
        unknown = [f for f in self.snapshot_fields if f not in STAT_COUNTER_FIELDS]
        if unknown:
            raise ValueError(f"Unknown snapshot fields: {unknown}")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # dataset scope
    league_id: int = 61
    season: int = 2024

    # api-football
    api_football_key: str | None = Field(default=None, repr=False)
    api_football_base_url: str = "https://v3.football.api-sports.io"
    api_football_timeout_s: float = 30.0
    api_football_low_watermark: int = 2
    api_football_exhausted_cooldown_s: float = 60.0
    api_football_near_limit_cooldown_s: float = 10.0

    # registry
    registry_backend: Literal["json", "sql"] = "json"
    registry_dir: Path = Path(".")
    database_url: str = Field(
        default="sqlite+pysqlite:///./registry_sync.db",
        validation_alias="DATABASE_URL",
    )
    db_echo: bool = False

    # ledger gateway
    ledger_gateway_url: str | None = None
    ledger_api_key: str | None = Field(default=None, repr=False)
    ledger_timeout_s: float = 30.0
    ledger_confirm_timeout_s: float = 120.0
    ledger_poll_interval_s: float = 2.0

    initial_supply: str = "1000000"
    team_token_addresses_file: Path | None = None
    require_team_token: bool = False

    # pacing / checkpoints
    provision_pace_ms: int = 2000
    reconcile_pace_ms: int = 1000
    checkpoint_every: int = 5
    snapshot_fields: list[str] | None = None

    # scheduling
    reconcile_cron: str = "0 2 * * *"
    scheduler_timezone: str = "UTC"

    summary_dir: Path = Path(".")
    log_level: str = "INFO"

    # -----------------------------
    # Required-key helpers
    # -----------------------------

    def require_api_football_key(self) -> str:
        if not self.api_football_key:
            raise RuntimeError(
                "API_FOOTBALL_KEY is not set. Set it in the environment or .env file."
            )
        return self.api_football_key

    def require_ledger_gateway_url(self) -> str:
        if not self.ledger_gateway_url:
            raise RuntimeError(
                "LEDGER_GATEWAY_URL is not set. Set it in the environment or .env file, "
                "or pass --dry-run."
            )
        return self.ledger_gateway_url

    def pipeline_config(
        self,
        *,
        league_id: int | None = None,
        season: int | None = None,
        pace_ms: int | None = None,
        checkpoint_every: int | None = None,
        stop_on_failure: bool = False,
        for_reconcile: bool = False,
    ) -> PipelineConfig:
        scope = DatasetScope(
            collection_id=league_id if league_id is not None else self.league_id,
            period=season if season is not None else self.season,
        )
        default_pace = self.reconcile_pace_ms if for_reconcile else self.provision_pace_ms
        token_addresses: dict[str, str] = {}
        if self.team_token_addresses_file is not None:
            token_addresses = load_team_token_addresses(self.team_token_addresses_file)

        return PipelineConfig(
            scope=scope,
            collection_name=league_name(scope.collection_id),
            initial_supply=self.initial_supply,
            pace_ms=pace_ms if pace_ms is not None else default_pace,
            checkpoint_every=(
                checkpoint_every if checkpoint_every is not None else self.checkpoint_every
            ),
            snapshot_fields=(
                tuple(self.snapshot_fields) if self.snapshot_fields else STAT_COUNTER_FIELDS
            ),
            team_token_addresses=token_addresses,
            require_team_token=self.require_team_token,
            stop_on_failure=stop_on_failure,
        )


settings = Settings()
