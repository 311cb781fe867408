from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Sequence

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .config import Settings
from .errors import RECOVERABLE_ERRORS, InsufficientFundsError, ValidationError
from .instructions import build_transfer_ix
from .pacing import Sleeper, paced
from .prompts import Prompter
from .rpc import ChainClient
from .stats import RunStats, fmt_sol

log = logging.getLogger(__name__)


@dataclass
class DisbursementResult:
    stats: RunStats
    cancelled: bool = False
    signatures: List[str] = field(default_factory=list)

    @property
    def successful(self) -> int:
        return self.stats.successful

    @property
    def failed(self) -> int:
        return self.stats.failed

    @property
    def total_sent_lamports(self) -> int:
        return self.stats.sent_lamports


class Disburser:
    def __init__(
        self,
        chain: ChainClient,
        settings: Settings,
        prompter: Prompter,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self.chain = chain
        self.settings = settings
        self.prompter = prompter
        self.sleep = sleep

    def required_lamports(self, amount_lamports: int, count: int) -> int:
        return amount_lamports * count + self.settings.transaction_fee_lamports * count

    def disburse_equal_amounts(
        self, destinations: Sequence[str], amount_lamports: int, signer: Keypair
    ) -> DisbursementResult:
        """
        Sends `amount_lamports` from `signer` to every destination, in order.

        Fails closed: if the signer cannot cover every transfer plus fees,
        InsufficientFundsError is raised before anything is sent. A declined
        confirmation returns a cancelled result.
        """
        if amount_lamports <= 0:
            raise ValidationError(
                f"Amount must be positive, got {amount_lamports} lamports"
            )

        n = len(destinations)
        stats = RunStats(mode="fund", total=n)

        balance = self.chain.get_balance(str(signer.pubkey()))
        required = self.required_lamports(amount_lamports, n)
        log.info(
            "%s SOL x %d wallets + fees ~%s SOL = %s SOL (balance %s SOL)",
            fmt_sol(amount_lamports),
            n,
            fmt_sol(self.settings.transaction_fee_lamports * n),
            fmt_sol(required),
            fmt_sol(balance),
        )
        if required > balance:
            raise InsufficientFundsError(
                f"Not enough SOL: short by ~{fmt_sol(required - balance)} SOL",
                balance=balance,
                required=required,
            )

        if not self.prompter.confirm("\nContinue? (y/n): "):
            return DisbursementResult(stats=stats, cancelled=True)

        result = DisbursementResult(stats=stats)
        for i, address in paced(destinations, self.settings.wallet_delay_s, self.sleep):
            label = f"{i + 1}/{n}"
            try:
                ix = build_transfer_ix(
                    signer.pubkey(), Pubkey.from_string(address), amount_lamports
                )
                sig = self.chain.send_and_confirm(
                    [ix], signer, max_retries=self.settings.confirm_retries
                )
            except RECOVERABLE_ERRORS as e:
                stats.record_failure()
                log.error("%s: %s", label, e)
                continue

            stats.record_success()
            stats.sent_lamports += amount_lamports
            result.signatures.append(sig)
            log.info(
                "%s: %s SOL -> %s... (%s...)",
                label,
                fmt_sol(amount_lamports),
                address[:12],
                sig[:12],
            )

        return result
