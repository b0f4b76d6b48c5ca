from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

from .errors import ConfigError
from .project_constants import (
    DEFAULT_DB_POOL_SIZE,
    DEFAULT_DB_TIMEOUT_S,
    DEFAULT_NOTIFIER_TIMEOUT_S,
    DEFAULT_NOTIFIER_URL,
    DEFAULT_RPC_TIMEOUT_S,
    DEFAULT_RPC_URL,
    MIN_BALANCE,
    TOKEN_MINT,
)


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name, "").strip()
    return value or default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def _env_decimal(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ConfigError(f"{name} must be a decimal amount, got {raw!r}")
    if not value.is_finite() or value < 0:
        raise ConfigError(f"{name} must be a non-negative amount, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    rpc_url: str = DEFAULT_RPC_URL
    token_mint: str = TOKEN_MINT
    min_balance: Decimal = MIN_BALANCE
    database_url: str = ""
    notifier_url: str = DEFAULT_NOTIFIER_URL
    rpc_timeout_s: float = DEFAULT_RPC_TIMEOUT_S
    notifier_timeout_s: float = DEFAULT_NOTIFIER_TIMEOUT_S
    db_timeout_s: float = DEFAULT_DB_TIMEOUT_S
    db_pool_size: int = DEFAULT_DB_POOL_SIZE

    @staticmethod
    def from_env(
        rpc_url_override: str | None = None,
        rpc_timeout_override: float | None = None,
    ) -> "Settings":
        load_dotenv()

        # If user provides --rpc-url, trust it.
        rpc_url = rpc_url_override or _env_str("RPC_URL", DEFAULT_RPC_URL)
        if rpc_timeout_override is not None:
            if rpc_timeout_override <= 0:
                raise ConfigError(f"--timeout must be positive, got {rpc_timeout_override}")
            rpc_timeout = rpc_timeout_override
        else:
            rpc_timeout = _env_float("RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT_S)

        return Settings(
            rpc_url=rpc_url,
            token_mint=_env_str("TOKEN_MINT_ADDRESS", TOKEN_MINT),
            min_balance=_env_decimal("MIN_TOKEN_BALANCE", MIN_BALANCE),
            database_url=os.getenv("DATABASE_URL", "").strip(),
            notifier_url=_env_str("NOTIFIER_URL", DEFAULT_NOTIFIER_URL),
            rpc_timeout_s=rpc_timeout,
            notifier_timeout_s=_env_float("NOTIFIER_TIMEOUT", DEFAULT_NOTIFIER_TIMEOUT_S),
            db_timeout_s=_env_float("DB_TIMEOUT", DEFAULT_DB_TIMEOUT_S),
            db_pool_size=_env_int("DB_POOL_SIZE", DEFAULT_DB_POOL_SIZE),
        )

    def require_database_url(self) -> str:
        if not self.database_url:
            raise ConfigError(
                "Missing DATABASE_URL. Put it in .env or export it."
            )
        return self.database_url
