from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Sequence

from .config import Settings
from .errors import RECOVERABLE_ERRORS
from .pacing import Sleeper, paced
from .rpc import ChainClient
from .stats import RunStats, fmt_sol
from .token_accounts import estimate_refund_lamports, select_empty
from .wallets import EligibleWallet, WalletRecord

log = logging.getLogger(__name__)


@dataclass
class CheckResult:
    stats: RunStats
    eligible: List[EligibleWallet] = field(default_factory=list)


class Checker:
    """Read-only scan: counts empty token accounts, never sends transactions."""

    def __init__(
        self, chain: ChainClient, settings: Settings, sleep: Sleeper = time.sleep
    ) -> None:
        self.chain = chain
        self.settings = settings
        self.sleep = sleep

    def check_wallet(self, wallet: WalletRecord) -> EligibleWallet:
        empty = select_empty(self.chain.get_token_accounts_by_owner(wallet.address))
        return EligibleWallet(
            address=wallet.address,
            secret=wallet.secret,
            estimated_claimable_lamports=estimate_refund_lamports(len(empty)),
            empty_accounts=len(empty),
        )

    def is_eligible(self, candidate: EligibleWallet) -> bool:
        threshold = self.settings.min_claimable_lamports
        return candidate.estimated_claimable_lamports > threshold

    def check_all(self, wallets: Sequence[WalletRecord]) -> CheckResult:
        result = CheckResult(stats=RunStats(mode="check", total=len(wallets)))
        stats = result.stats
        n = len(wallets)

        for i, wallet in paced(wallets, self.settings.wallet_delay_s, self.sleep):
            label = f"Wallet {i + 1}/{n}"
            try:
                candidate = self.check_wallet(wallet)
            except RECOVERABLE_ERRORS as e:
                log.error("%s: error - %s", label, e)
                stats.record_failure()
                continue

            if self.is_eligible(candidate):
                result.eligible.append(candidate)
                stats.record_success()
                stats.claimable_lamports += candidate.estimated_claimable_lamports
                log.info(
                    "%s: %s SOL (%d empty accounts)",
                    label,
                    fmt_sol(candidate.estimated_claimable_lamports),
                    candidate.empty_accounts,
                )
            else:
                stats.record_neutral()
                estimate = fmt_sol(candidate.estimated_claimable_lamports)
                log.info("%s: %s SOL", label, estimate)

        return result
