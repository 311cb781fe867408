from __future__ import annotations

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from conftest import FakePrompter, transfer_of
from rent_reclaimer.disburser import Disburser
from rent_reclaimer.errors import InsufficientFundsError, ValidationError

AMOUNT = 1_000_000  # 0.001 SOL
FEE = 5_000  # default 0.000005 SOL


def destinations(n):
    return [str(Pubkey.new_unique()) for _ in range(n)]


def test_sends_fixed_amount_to_each_destination_in_order(chain, settings, sleeper):
    signer = Keypair()
    dests = destinations(3)
    chain.balances[str(signer.pubkey())] = 3 * (AMOUNT + FEE)
    prompter = FakePrompter()

    result = Disburser(chain, settings, prompter, sleep=sleeper).disburse_equal_amounts(
        dests, AMOUNT, signer
    )

    assert not result.cancelled
    assert result.successful == 3
    assert result.failed == 0
    assert result.total_sent_lamports == 3 * AMOUNT
    transfers = [transfer_of(ixs) for ixs in chain.sent]
    assert [str(t["to_pubkey"]) for t in transfers] == dests
    assert all(t["lamports"] == AMOUNT for t in transfers)
    assert all(t["from_pubkey"] == signer.pubkey() for t in transfers)
    assert sleeper.calls == [1.0, 1.0]
    assert len(prompter.questions) == 1


def test_preflight_guard_blocks_every_transfer(chain, settings, sleeper):
    signer = Keypair()
    chain.balances[str(signer.pubkey())] = 3 * (AMOUNT + FEE) - 1
    prompter = FakePrompter()

    with pytest.raises(InsufficientFundsError) as exc:
        Disburser(chain, settings, prompter, sleep=sleeper).disburse_equal_amounts(
            destinations(3), AMOUNT, signer
        )

    assert exc.value.required == 3 * (AMOUNT + FEE)
    assert chain.sent == []
    assert prompter.questions == []


def test_declined_confirmation_sends_nothing(chain, settings, sleeper):
    signer = Keypair()
    chain.balances[str(signer.pubkey())] = 10**9

    disburser = Disburser(chain, settings, FakePrompter(confirm=False), sleep=sleeper)
    result = disburser.disburse_equal_amounts(destinations(2), AMOUNT, signer)

    assert result.cancelled
    assert chain.sent == []


def test_failures_do_not_stop_the_run(chain, settings, sleeper):
    signer = Keypair()
    chain.balances[str(signer.pubkey())] = 10**9
    dests = destinations(3)
    dests.insert(1, "not-an-address")
    chain.fail_when = lambda ixs: str(transfer_of(ixs)["to_pubkey"]) == dests[2]

    disburser = Disburser(chain, settings, FakePrompter(), sleep=sleeper)
    result = disburser.disburse_equal_amounts(dests, AMOUNT, signer)

    assert result.successful == 2
    assert result.failed == 2
    assert result.total_sent_lamports == 2 * AMOUNT
    assert len(result.signatures) == 2
    assert len(sleeper.calls) == 3


@pytest.mark.parametrize("amount", [0, -5])
def test_rejects_non_positive_amount(chain, settings, amount):
    with pytest.raises(ValidationError):
        Disburser(chain, settings, FakePrompter()).disburse_equal_amounts(
            destinations(1), amount, Keypair()
        )
    assert chain.balance_reads == []
