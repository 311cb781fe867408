from __future__ import annotations

from decimal import Decimal
from typing import Callable, Dict, List, Sequence, Set

import base58
import pytest
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import decode_transfer

from rent_reclaimer.config import Settings
from rent_reclaimer.errors import TransientNetworkError
from rent_reclaimer.token_accounts import TokenAccountRef
from rent_reclaimer.wallets import WalletRecord


def secret_of(kp: Keypair) -> str:
    return base58.b58encode(bytes(kp)).decode("ascii")


def make_wallet(index: int = 0) -> WalletRecord:
    kp = Keypair()
    return WalletRecord(
        index=index,
        address=str(kp.pubkey()),
        signer=kp,
        source_line=index + 1,
        secret=secret_of(kp),
    )


def token_account(owner: str, balance: str = "0") -> TokenAccountRef:
    return TokenAccountRef(
        owner=owner,
        account_address=str(Pubkey.new_unique()),
        token_balance=Decimal(balance),
        lamports=2_039_280,
    )


def closed_addresses(instructions: Sequence[Instruction]) -> List[str]:
    return [str(ix.accounts[0].pubkey) for ix in instructions]


def transfer_of(instructions: Sequence[Instruction]) -> Dict:
    assert len(instructions) == 1
    return decode_transfer(instructions[0])


class FakeChain:
    """In-memory ChainClient; `fail_when` decides which submissions fail."""

    def __init__(self) -> None:
        self.balances: Dict[str, int] = {}
        self.token_accounts: Dict[str, List[TokenAccountRef]] = {}
        self.broken_wallets: Set[str] = set()
        self.fail_when: Callable[[List[Instruction]], bool] = lambda ixs: False
        self.sent: List[List[Instruction]] = []
        self.balance_reads: List[str] = []
        self.token_reads: List[str] = []

    def get_balance(self, address: str) -> int:
        self.balance_reads.append(address)
        if address in self.broken_wallets:
            raise TransientNetworkError("RPC error: node is behind")
        return self.balances.get(address, 0)

    def get_token_accounts_by_owner(self, owner: str) -> List[TokenAccountRef]:
        self.token_reads.append(owner)
        if owner in self.broken_wallets:
            raise TransientNetworkError("RPC error: node is behind")
        return list(self.token_accounts.get(owner, []))

    def send_and_confirm(self, instructions, signer, max_retries=3) -> str:
        ixs = list(instructions)
        self.sent.append(ixs)
        if self.fail_when(ixs):
            raise TransientNetworkError("Transaction failed: custom program error")
        return f"{len(self.sent):04d}" + "5" * 84


class FakePrompter:
    def __init__(self, answers: Sequence[str] = (), confirm: bool = True) -> None:
        self.answers = list(answers)
        self.confirm_answer = confirm
        self.questions: List[str] = []

    def ask(self, question: str) -> str:
        self.questions.append(question)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)

    def confirm(self, question: str) -> bool:
        self.questions.append(question)
        return self.confirm_answer


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def settings() -> Settings:
    return Settings(rpc_url="http://rpc.test")


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()
