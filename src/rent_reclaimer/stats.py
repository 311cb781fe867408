from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .config import lamports_to_sol


def fmt_sol(lamports: int) -> str:
    return f"{lamports_to_sol(lamports):.6f}"


@dataclass
class RunStats:
    """Counters for one run of one mode. Not shared between runs."""

    mode: str
    total: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    total_closed: int = 0
    recovered_lamports: int = 0
    claimable_lamports: int = 0
    sent_lamports: int = 0
    collected_lamports: int = 0
    fee_lamports: int = 0

    def record_success(self) -> None:
        self.processed += 1
        self.successful += 1

    def record_failure(self) -> None:
        self.processed += 1
        self.failed += 1

    def record_skip(self) -> None:
        self.processed += 1
        self.skipped += 1

    def record_neutral(self) -> None:
        self.processed += 1

    def render(self) -> str:
        lines: List[str] = []
        if self.mode == "check":
            lines.append(f"Eligible wallets : {self.successful}/{self.total}")
            lines.append(f"Errors           : {self.failed}")
            lines.append(f"Claimable        : {fmt_sol(self.claimable_lamports)} SOL")
        elif self.mode == "claim":
            lines.append(f"Processed        : {self.processed}/{self.total}")
            lines.append(f"Successful       : {self.successful}")
            lines.append(f"Failed           : {self.failed}")
            lines.append(f"Accounts closed  : {self.total_closed}")
            lines.append(f"Recovered        : {fmt_sol(self.recovered_lamports)} SOL")
        elif self.mode == "fund":
            lines.append(f"Successful       : {self.successful}/{self.total}")
            lines.append(f"Failed           : {self.failed}")
            lines.append(f"Sent             : {fmt_sol(self.sent_lamports)} SOL")
        elif self.mode == "collect":
            lines.append(f"Processed        : {self.processed}/{self.total}")
            lines.append(f"Transfers sent   : {self.successful}")
            lines.append(f"Skipped          : {self.skipped}")
            lines.append(f"Collected        : {fmt_sol(self.collected_lamports)} SOL")
            lines.append(f"Fees (approx.)   : {fmt_sol(self.fee_lamports)} SOL")
        else:
            raise ValueError(f"Unknown mode: {self.mode}")
        return "\n".join(lines)
