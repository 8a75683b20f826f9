"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parents[2]

load_dotenv()


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    app_name: str = "Intelligent Allocation Plan Generator"
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    database_path: Path = PROJECT_ROOT / "data" / "plan_generator.db"

    planner_days_per_year: int = 365
    planner_default_seasonality_percentage: float = 8.33
    planner_pass1_max_idle_rounds: int = 3
    planner_pass2_stall_rounds: int = 2
    planner_algorithm_version: str = "1.0"
    planner_random_seed: Optional[int] = None

    demo_seed_enabled: bool = True
    demo_account_id: int = 1
    demo_carrier_id: int = 1
    demo_product_id: int = 1


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process from environment variables."""
    defaults = Settings()
    return Settings(
        app_name=os.getenv("APP_NAME", defaults.app_name),
        app_version=os.getenv("APP_VERSION", defaults.app_version),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        database_path=Path(os.getenv("DATABASE_PATH", str(defaults.database_path))),
        planner_days_per_year=_env_int(
            "PLANNER_DAYS_PER_YEAR", defaults.planner_days_per_year
        ),
        planner_default_seasonality_percentage=_env_float(
            "PLANNER_DEFAULT_SEASONALITY_PERCENTAGE",
            defaults.planner_default_seasonality_percentage,
        ),
        planner_pass1_max_idle_rounds=_env_int(
            "PLANNER_PASS1_MAX_IDLE_ROUNDS", defaults.planner_pass1_max_idle_rounds
        ),
        planner_pass2_stall_rounds=_env_int(
            "PLANNER_PASS2_STALL_ROUNDS", defaults.planner_pass2_stall_rounds
        ),
        planner_algorithm_version=os.getenv(
            "PLANNER_ALGORITHM_VERSION", defaults.planner_algorithm_version
        ),
        planner_random_seed=_env_int("PLANNER_RANDOM_SEED", defaults.planner_random_seed),
        demo_seed_enabled=os.getenv("DEMO_SEED_ENABLED", "true").strip().lower()
        in {"1", "true", "yes"},
        demo_account_id=_env_int("DEMO_ACCOUNT_ID", defaults.demo_account_id),
        demo_carrier_id=_env_int("DEMO_CARRIER_ID", defaults.demo_carrier_id),
        demo_product_id=_env_int("DEMO_PRODUCT_ID", defaults.demo_product_id),
    )
