from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Sequence

from .config import Settings
from .errors import RECOVERABLE_ERRORS, InsufficientFundsError
from .instructions import build_close_account_ix
from .pacing import Sleeper, paced
from .project_constants import MIN_FEE_RESERVE_LAMPORTS
from .rpc import ChainClient
from .stats import RunStats, fmt_sol
from .token_accounts import (
    TokenAccountRef,
    estimate_refund_lamports,
    partition,
    select_empty,
)
from .wallets import WalletRecord

log = logging.getLogger(__name__)


class BatchState(Enum):
    BATCH_ATTEMPT = "batch_attempt"
    BATCH_CLOSED = "batch_closed"
    BATCH_FAILED = "batch_failed"
    SINGLES_DONE = "singles_done"


TERMINAL_STATES = (BatchState.BATCH_CLOSED, BatchState.SINGLES_DONE)


@dataclass
class BatchReport:
    number: int  # 1-based
    accounts: List[TokenAccountRef]
    state: BatchState = BatchState.BATCH_ATTEMPT
    closed: int = 0
    signatures: List[str] = field(default_factory=list)
    # account address -> error message, for accounts that could not be closed
    errors: Dict[str, str] = field(default_factory=dict)
    batch_error: str = ""

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass
class ClosureResult:
    address: str
    candidates: int
    closed_count: int = 0
    batches: List[BatchReport] = field(default_factory=list)

    @property
    def estimated_recovered_lamports(self) -> int:
        return estimate_refund_lamports(self.closed_count)


class BatchCloser:
    """
    Closes a wallet's empty token accounts in fixed-size batches.

    Each batch is a small state machine:
    BATCH_ATTEMPT -> BATCH_CLOSED on success, or
    BATCH_ATTEMPT -> BATCH_FAILED -> SINGLES_DONE, where every account of the
    failed batch gets exactly one single-instruction attempt.
    """

    def __init__(
        self, chain: ChainClient, settings: Settings, sleep: Sleeper = time.sleep
    ) -> None:
        self.chain = chain
        self.settings = settings
        self.sleep = sleep

    def _close(self, wallet: WalletRecord, accounts: Sequence[TokenAccountRef]) -> str:
        owner = wallet.signer.pubkey()
        ixs = [
            build_close_account_ix(a.account_address, owner, a.program_id)
            for a in accounts
        ]
        return self.chain.send_and_confirm(
            ixs, wallet.signer, max_retries=self.settings.confirm_retries
        )

    def step(self, wallet: WalletRecord, report: BatchReport) -> None:
        """Advances `report` by one state transition."""
        if report.state is BatchState.BATCH_ATTEMPT:
            try:
                sig = self._close(wallet, report.accounts)
            except RECOVERABLE_ERRORS as e:
                report.batch_error = str(e)
                report.state = BatchState.BATCH_FAILED
                log.warning(
                    "  Batch %d failed (%s), retrying one by one", report.number, e
                )
                return
            report.signatures.append(sig)
            report.closed = len(report.accounts)
            report.state = BatchState.BATCH_CLOSED
            log.info(
                "  Batch %d: %d accounts closed (%s...)",
                report.number,
                len(report.accounts),
                sig[:12],
            )

        elif report.state is BatchState.BATCH_FAILED:
            for account in report.accounts:
                try:
                    sig = self._close(wallet, [account])
                except RECOVERABLE_ERRORS as e:
                    report.errors[account.account_address] = str(e)
                    log.warning("  Failed to close %s: %s", account.account_address, e)
                    continue
                report.signatures.append(sig)
                report.closed += 1
                log.info("  Closed %s (%s...)", account.account_address, sig[:12])
            report.state = BatchState.SINGLES_DONE

        else:
            raise RuntimeError(
                f"Batch {report.number} already finished ({report.state.value})"
            )

    def run_batch(
        self, wallet: WalletRecord, number: int, accounts: Sequence[TokenAccountRef]
    ) -> BatchReport:
        report = BatchReport(number=number, accounts=list(accounts))
        while not report.done:
            self.step(wallet, report)
        return report

    def close_empty_accounts(self, wallet: WalletRecord) -> ClosureResult:
        """
        Closes every empty token account of `wallet`.

        Raises InsufficientFundsError when the wallet holds less than the fee
        reserve. Nothing is looked up or sent in that case.
        """
        balance = self.chain.get_balance(wallet.address)
        if balance < MIN_FEE_RESERVE_LAMPORTS:
            raise InsufficientFundsError(
                f"insufficient SOL for fees ({fmt_sol(balance)})",
                balance=balance,
                required=MIN_FEE_RESERVE_LAMPORTS,
            )

        empty = select_empty(self.chain.get_token_accounts_by_owner(wallet.address))
        result = ClosureResult(address=wallet.address, candidates=len(empty))
        if not empty:
            return result

        batches = partition(empty, self.settings.batch_size)
        log.debug(
            "%s: %d accounts in %d batches", wallet.address, len(empty), len(batches)
        )
        for i, batch in paced(batches, self.settings.batch_delay_s, self.sleep):
            report = self.run_batch(wallet, i + 1, batch)
            result.batches.append(report)
            result.closed_count += report.closed
        return result

    def claim_all(self, wallets: Sequence[WalletRecord]) -> RunStats:
        stats = RunStats(mode="claim", total=len(wallets))
        n = len(wallets)

        for i, wallet in paced(wallets, self.settings.wallet_delay_s, self.sleep):
            label = f"Wallet {i + 1}/{n}"
            try:
                result = self.close_empty_accounts(wallet)
            except InsufficientFundsError as e:
                log.warning("%s: %s", label, e)
                stats.record_failure()
                continue
            except RECOVERABLE_ERRORS as e:
                log.error("%s: %s", label, e)
                stats.record_failure()
                continue

            if result.candidates == 0:
                log.info("%s: nothing to close", label)
                stats.record_neutral()
                continue

            stats.total_closed += result.closed_count
            stats.recovered_lamports += result.estimated_recovered_lamports
            if result.closed_count > 0:
                stats.record_success()
                log.info(
                    "%s: recovered %s SOL (%d/%d)",
                    label,
                    fmt_sol(result.estimated_recovered_lamports),
                    result.closed_count,
                    result.candidates,
                )
            else:
                stats.record_failure()
                log.warning("%s: no accounts could be closed", label)

        return stats
