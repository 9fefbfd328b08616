from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .audio_guard import DEFAULT_GRACE_INTERVAL_S, MAX_GRACE_INTERVAL_S

SUPPORTED_LOCALES: tuple[str, ...] = ("ro", "en")
DEFAULT_LOCALE = "ro"

LOCALE_ENV = "INSTRUMENT_QUIZ_LOCALE"
CATALOG_ENV = "INSTRUMENT_QUIZ_CATALOG"
ASSETS_ENV = "INSTRUMENT_QUIZ_ASSETS"
SHUFFLE_ENV = "INSTRUMENT_QUIZ_SHUFFLE"
SEED_ENV = "INSTRUMENT_QUIZ_SEED"
LOG_LEVEL_ENV = "INSTRUMENT_QUIZ_LOG_LEVEL"

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})


def _default_assets_dir() -> Path:
    return Path(__file__).resolve().parents[1] / "assets"


@dataclass(frozen=True, slots=True)
class QuizConfig:
    locale: str = DEFAULT_LOCALE
    grace_interval_s: float = DEFAULT_GRACE_INTERVAL_S
    # Pause before the next sound is offered.
    round_close_delay_s: float = 1.5
    shuffle_order: bool = False
    seed: int | None = None
    catalog_path: Path | None = None
    assets_dir: Path | None = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.locale not in SUPPORTED_LOCALES:
            raise ValueError(f"locale must be one of {SUPPORTED_LOCALES}")
        if not (0.0 <= self.grace_interval_s <= MAX_GRACE_INTERVAL_S):
            raise ValueError(f"grace_interval_s must be in [0.0, {MAX_GRACE_INTERVAL_S}]")
        if self.round_close_delay_s < 0:
            raise ValueError("round_close_delay_s must be >= 0")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"unknown log level: {self.log_level!r}")

    def resolved_assets_dir(self) -> Path:
        return self.assets_dir if self.assets_dir is not None else _default_assets_dir()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "QuizConfig":
        env = os.environ if environ is None else environ

        locale = env.get(LOCALE_ENV, "").strip().lower() or DEFAULT_LOCALE
        catalog = env.get(CATALOG_ENV, "").strip()
        assets = env.get(ASSETS_ENV, "").strip()
        shuffle = env.get(SHUFFLE_ENV, "").strip().lower() in _TRUE_STRINGS
        raw_seed = env.get(SEED_ENV, "").strip()
        try:
            seed = int(raw_seed) if raw_seed else None
        except ValueError as exc:
            raise ValueError(f"{SEED_ENV} must be an integer, got {raw_seed!r}") from exc

        return cls(
            locale=locale,
            shuffle_order=shuffle,
            seed=seed,
            catalog_path=Path(catalog).expanduser() if catalog else None,
            assets_dir=Path(assets).expanduser() if assets else None,
            log_level=env.get(LOG_LEVEL_ENV, "").strip().upper() or "INFO",
        )
