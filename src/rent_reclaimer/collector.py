from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Sequence

from solders.pubkey import Pubkey

from .config import Settings
from .errors import RECOVERABLE_ERRORS
from .instructions import build_transfer_ix
from .pacing import Sleeper, paced
from .project_constants import COLLECT_FEE_RESERVE_LAMPORTS
from .prompts import Prompter
from .rpc import ChainClient
from .stats import RunStats, fmt_sol
from .wallets import WalletRecord

log = logging.getLogger(__name__)


@dataclass
class CollectionResult:
    destination: str
    stats: RunStats
    cancelled: bool = False


class Collector:
    def __init__(
        self,
        chain: ChainClient,
        settings: Settings,
        prompter: Prompter,
        sleep: Sleeper = time.sleep,
        fee_reserve_lamports: int = COLLECT_FEE_RESERVE_LAMPORTS,
    ) -> None:
        self.chain = chain
        self.settings = settings
        self.prompter = prompter
        self.sleep = sleep
        self.fee_reserve_lamports = fee_reserve_lamports

    def amount_to_send(self, balance: int) -> int:
        """Lamports to sweep from `balance`; <= 0 means nothing to send."""
        return balance - self.fee_reserve_lamports

    def collect_all(
        self, wallets: Sequence[WalletRecord], destination: str
    ) -> CollectionResult:
        stats = RunStats(mode="collect", total=len(wallets))
        if not self.prompter.confirm("\nCollect all SOL into this wallet? (y/n): "):
            return CollectionResult(
                destination=destination, stats=stats, cancelled=True
            )

        dest = Pubkey.from_string(destination)
        min_balance = self.settings.min_balance_to_collect_lamports
        n = len(wallets)

        for i, wallet in paced(wallets, self.settings.wallet_delay_s, self.sleep):
            label = f"Wallet {i + 1}/{n}"
            try:
                balance = self.chain.get_balance(wallet.address)
                if balance < min_balance:
                    log.info("%s: skipped (balance %s SOL)", label, fmt_sol(balance))
                    stats.record_skip()
                    continue

                amount = self.amount_to_send(balance)
                if amount <= 0:
                    log.warning("%s: balance too small to cover the fee", label)
                    stats.record_skip()
                    continue

                log.info("%s: sending %s SOL...", label, fmt_sol(amount))
                ix = build_transfer_ix(wallet.signer.pubkey(), dest, amount)
                sig = self.chain.send_and_confirm(
                    [ix], wallet.signer, max_retries=self.settings.confirm_retries
                )
            except RECOVERABLE_ERRORS as e:
                log.error("%s: %s", label, e)
                stats.record_skip()
                continue

            stats.record_success()
            stats.collected_lamports += amount
            stats.fee_lamports += self.settings.transaction_fee_lamports
            log.info("  Sent %s SOL (%s...)", fmt_sol(amount), sig[:12])

        return CollectionResult(destination=destination, stats=stats)
