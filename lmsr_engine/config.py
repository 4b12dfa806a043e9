"""Runtime configuration for the quote engine and its preview API.

Values are read from the environment, after loading a ``.env`` file if one
is present. Every setting has a default so the engine can be used without
any configuration at all. A variable that is set but malformed or out of
range raises ``ValueError`` naming it; a quote priced on a silently
substituted fee rate would not match the ledger.
"""

import math
import os
from typing import Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

from lmsr_engine.fees import DEFAULT_FEE_RATE_BP, MAX_FEE_RATE_BP

DEFAULT_LIQUIDITY = 1_000_000.0
DEFAULT_TOLERANCE = 1e-9
DEFAULT_MAX_ITERATIONS = 30


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    fee_rate_bp: float = DEFAULT_FEE_RATE_BP
    default_liquidity: float = DEFAULT_LIQUIDITY
    newton_tolerance: float = DEFAULT_TOLERANCE
    newton_max_iterations: int = DEFAULT_MAX_ITERATIONS
    log_level: str = "INFO"
    cors_origins: Tuple[str, ...] = ()


def _env_float(
    name: str,
    default: float,
    minimum: float = 0.0,
    maximum: Optional[float] = None,
    positive: bool = False,
) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {raw!r}")
    if positive and value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    if value < minimum or (maximum is not None and value > maximum):
        raise ValueError(f"{name} must be between {minimum} and {maximum}, got {raw!r}")
    return value


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {raw!r}")
    return value


def load_settings() -> Settings:
    load_dotenv()
    origins = os.getenv("LMSR_CORS_ORIGINS", "")
    return Settings(
        fee_rate_bp=_env_float("LMSR_FEE_RATE_BP", DEFAULT_FEE_RATE_BP, maximum=MAX_FEE_RATE_BP),
        default_liquidity=_env_float("LMSR_DEFAULT_LIQUIDITY", DEFAULT_LIQUIDITY, positive=True),
        newton_tolerance=_env_float("LMSR_NEWTON_TOLERANCE", DEFAULT_TOLERANCE, positive=True),
        newton_max_iterations=_env_int("LMSR_NEWTON_MAX_ITERATIONS", DEFAULT_MAX_ITERATIONS),
        log_level=os.getenv("LMSR_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
    )
