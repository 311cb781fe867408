from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

from .errors import ConfigurationError
from .project_constants import DEFAULT_RPC_URL, LAMPORTS_PER_SOL


def sol_to_lamports(amount: Decimal) -> int:
    return int(amount * LAMPORTS_PER_SOL)


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports) / LAMPORTS_PER_SOL


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_sol(name: str, default: str) -> Decimal:
    raw = os.getenv(name, "").strip() or default
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ConfigurationError(f"{name} must be a decimal SOL amount, got {raw!r}")
    if not value.is_finite():
        raise ConfigurationError(f"{name} must be a finite SOL amount, got {raw!r}")
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {raw}")
    return value


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    wallets_file: str = "wallets.txt"
    fund_file: str = "fund.txt"
    # Parsed and validated, but wallets are always processed one at a time.
    parallel_wallets: int = 3
    batch_size: int = 3
    delay_between_wallets_ms: int = 1000
    delay_between_batches_ms: int = 2000
    min_claimable_sol: Decimal = Decimal("0.001")
    transaction_fee_sol: Decimal = Decimal("0.000005")
    min_balance_to_collect_sol: Decimal = Decimal("0.00001")
    confirm_retries: int = 3
    commitment: str = "confirmed"

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ConfigurationError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.parallel_wallets < 1:
            raise ConfigurationError(
                f"parallel_wallets must be >= 1, got {self.parallel_wallets}"
            )
        if self.delay_between_wallets_ms < 0 or self.delay_between_batches_ms < 0:
            raise ConfigurationError("delays must not be negative")
        for name in (
            "min_claimable_sol",
            "transaction_fee_sol",
            "min_balance_to_collect_sol",
        ):
            value = getattr(self, name)
            if not value.is_finite() or value < 0:
                raise ConfigurationError(
                    f"{name} must be a finite amount >= 0, got {value}"
                )

    @property
    def min_claimable_lamports(self) -> int:
        return sol_to_lamports(self.min_claimable_sol)

    @property
    def transaction_fee_lamports(self) -> int:
        return sol_to_lamports(self.transaction_fee_sol)

    @property
    def min_balance_to_collect_lamports(self) -> int:
        return sol_to_lamports(self.min_balance_to_collect_sol)

    @property
    def wallet_delay_s(self) -> float:
        return self.delay_between_wallets_ms / 1000

    @property
    def batch_delay_s(self) -> float:
        return self.delay_between_batches_ms / 1000

    @staticmethod
    def from_env(
        rpc_url_override: str | None = None, env_file: str | None = None
    ) -> "Settings":
        load_dotenv(env_file)

        return Settings(
            rpc_url=_resolve_rpc_url(rpc_url_override),
            wallets_file=os.getenv("WALLETS_FILE", "").strip() or "wallets.txt",
            fund_file=os.getenv("FUND_FILE", "").strip() or "fund.txt",
            parallel_wallets=_env_int("PARALLEL_WALLETS", 3, minimum=1),
            batch_size=_env_int("BATCH_SIZE", 3, minimum=1),
            delay_between_wallets_ms=_env_int(
                "DELAY_BETWEEN_WALLETS_MS", 1000, minimum=0
            ),
            delay_between_batches_ms=_env_int(
                "DELAY_BETWEEN_BATCHES_MS", 2000, minimum=0
            ),
            min_claimable_sol=_env_sol("MIN_CLAIMABLE_SOL", "0.001"),
            transaction_fee_sol=_env_sol("TRANSACTION_FEE_SOL", "0.000005"),
            min_balance_to_collect_sol=_env_sol(
                "MIN_BALANCE_TO_COLLECT_SOL", "0.00001"
            ),
            confirm_retries=_env_int("CONFIRM_RETRIES", 3, minimum=0),
            commitment=os.getenv("COMMITMENT", "").strip() or "confirmed",
        )


def _resolve_rpc_url(override: str | None) -> str:
    # If user provides --rpc-url, trust it.
    if override:
        return override

    env_rpc = os.getenv("RPC_URL", "").strip()
    if env_rpc:
        return env_rpc

    helius_key = os.getenv("HELIUS_API_KEY", "").strip()
    if helius_key:
        return f"https://mainnet.helius-rpc.com/?api-key={helius_key}"

    return DEFAULT_RPC_URL
