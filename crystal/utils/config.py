"""Configuration dataclasses and environment loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from crystal.ratings.elo import EloConfig

DEFAULT_DATABASE_URL = "sqlite:///crystal.db"


@dataclass
class ProjectionConfig:
    """Heuristics used to project categorical and numeric questions."""

    # Ten picks per game (five per side)
    picks_per_game: float = 10.0
    # Expected occurrences per game for numeric questions without their own rate
    default_per_game_rate: float = 1.0


@dataclass
class StoreConfig:
    database_url: str = DEFAULT_DATABASE_URL
    echo: bool = False


@dataclass
class CrystalConfig:
    elo: EloConfig = field(default_factory=EloConfig)
    projection: ProjectionConfig = field(default_factory=ProjectionConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    lolesports_api_key: str | None = None

    @classmethod
    def from_env(cls, environ=None) -> "CrystalConfig":
        """
        Build a config from environment variables.

        Recognized:
          CRYSTAL_DATABASE_URL (falls back to DATABASE_URL)
          CRYSTAL_ELO_K, CRYSTAL_ELO_HOME_ADVANTAGE, CRYSTAL_ELO_BASE
          CRYSTAL_PICKS_PER_GAME
          LOLESPORTS_API_KEY
        """
        env = os.environ if environ is None else environ
        elo = EloConfig()
        projection = ProjectionConfig()

        if env.get("CRYSTAL_ELO_K"):
            elo.k = float(env["CRYSTAL_ELO_K"])
        if env.get("CRYSTAL_ELO_HOME_ADVANTAGE"):
            elo.home_advantage = float(env["CRYSTAL_ELO_HOME_ADVANTAGE"])
        if env.get("CRYSTAL_ELO_BASE"):
            elo.base = float(env["CRYSTAL_ELO_BASE"])
        if env.get("CRYSTAL_PICKS_PER_GAME"):
            projection.picks_per_game = float(env["CRYSTAL_PICKS_PER_GAME"])

        url = env.get("CRYSTAL_DATABASE_URL") or env.get("DATABASE_URL") or DEFAULT_DATABASE_URL
        return cls(
            elo=elo,
            projection=projection,
            store=StoreConfig(database_url=url),
            lolesports_api_key=env.get("LOLESPORTS_API_KEY") or None,
        )
