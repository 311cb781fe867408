from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Sequence, TypeVar

from .project_constants import RENT_EXEMPT_REFUND_LAMPORTS, TOKEN_PROGRAM_ID

T = TypeVar("T")


@dataclass(frozen=True)
class TokenAccountRef:
    owner: str  # address of the owning wallet
    account_address: str
    token_balance: Decimal
    mint: str = ""
    lamports: int = 0
    program_id: str = TOKEN_PROGRAM_ID

    @property
    def closable(self) -> bool:
        return self.token_balance == 0


def parse_token_account(owner: str, item: Dict[str, Any]) -> TokenAccountRef | None:
    """
    Parses one `getTokenAccountsByOwner` (jsonParsed) entry.
    Layout: {"pubkey": ..., "account": {"lamports": ..., "owner": <program>,
             "data": {"parsed": {"info": {"mint": ..., "tokenAmount": {...}}}}}}
    """
    try:
        account = item["account"]
        info = account["data"]["parsed"]["info"]
        token_amount = info["tokenAmount"]
        account_address = item["pubkey"]
    except (KeyError, TypeError):
        return None

    ui_amount = token_amount.get("uiAmountString")
    if ui_amount is None:
        ui_amount = token_amount.get("uiAmount")
    try:
        balance = Decimal(str(ui_amount))
    except InvalidOperation:
        return None

    return TokenAccountRef(
        owner=owner,
        account_address=account_address,
        token_balance=balance,
        mint=info.get("mint", ""),
        lamports=int(account.get("lamports", 0) or 0),
        program_id=account.get("owner", TOKEN_PROGRAM_ID),
    )


def parse_token_accounts(
    owner: str, items: Iterable[Dict[str, Any]]
) -> List[TokenAccountRef]:
    out: List[TokenAccountRef] = []
    for item in items:
        ref = parse_token_account(owner, item)
        if ref is not None:
            out.append(ref)
    return out


def select_empty(accounts: Iterable[TokenAccountRef]) -> List[TokenAccountRef]:
    # Accounts still holding tokens are never touched.
    return [a for a in accounts if a.closable]


def partition(items: Sequence[T], batch_size: int) -> List[List[T]]:
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [list(items[i : i + batch_size]) for i in range(0, len(items), batch_size)]


def estimate_refund_lamports(closed_count: int) -> int:
    return closed_count * RENT_EXEMPT_REFUND_LAMPORTS
