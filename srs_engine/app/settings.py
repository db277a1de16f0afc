"""Configuration helpers for the review engine runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from srs_engine.srs.queue import DEFAULT_NEW_CARDS_PER_SESSION, HardRatingPolicy


DEFAULT_CURATOR_MODEL = "gpt-5-mini"
DEFAULT_CURATOR_MAX_CARDS = 30


def _read_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer.") from exc


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    new_cards_per_session: int
    hard_rating_policy: HardRatingPolicy
    openai_api_key: Optional[str]
    curator_model: str
    curator_max_cards: int

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        app_name = os.getenv("APP_NAME", "SRS Review Engine")
        app_env = os.getenv("APP_ENV", "development")
        log_level = os.getenv("LOG_LEVEL", "INFO")

        new_cards_per_session = _read_int("NEW_CARDS_PER_SESSION", DEFAULT_NEW_CARDS_PER_SESSION)
        if new_cards_per_session < 0:
            raise RuntimeError("NEW_CARDS_PER_SESSION must not be negative.")

        raw_policy = os.getenv("HARD_RATING_POLICY", HardRatingPolicy.DROP.value).strip().lower()
        try:
            hard_rating_policy = HardRatingPolicy(raw_policy)
        except ValueError as exc:
            choices = ", ".join(policy.value for policy in HardRatingPolicy)
            raise RuntimeError(f"HARD_RATING_POLICY must be one of: {choices}.") from exc

        curator_max_cards = _read_int("CURATOR_MAX_CARDS", DEFAULT_CURATOR_MAX_CARDS)
        if curator_max_cards < 1 or curator_max_cards > 100:
            raise RuntimeError("CURATOR_MAX_CARDS must be between 1 and 100.")

        return cls(
            app_name=app_name,
            app_env=app_env,
            log_level=log_level,
            new_cards_per_session=new_cards_per_session,
            hard_rating_policy=hard_rating_policy,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            curator_model=os.getenv("CURATOR_MODEL", DEFAULT_CURATOR_MODEL),
            curator_max_cards=curator_max_cards,
        )
