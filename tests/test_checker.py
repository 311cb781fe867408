from __future__ import annotations

from decimal import Decimal

from conftest import make_wallet, token_account
from rent_reclaimer.checker import Checker
from rent_reclaimer.config import Settings
from rent_reclaimer.wallets import write_eligible_files


def seed(chain, wallets, empty_counts):
    for wallet, count in zip(wallets, empty_counts):
        accounts = [token_account(wallet.address) for _ in range(count)]
        chain.token_accounts[wallet.address] = accounts + [
            token_account(wallet.address, "3")
        ]


def test_classifies_by_claimable_threshold(chain, settings, sleeper):
    wallets = [make_wallet(i) for i in range(4)]
    seed(chain, wallets, [2, 0, 1, 5])

    result = Checker(chain, settings, sleep=sleeper).check_all(wallets)

    # 1 empty account = 0.00203928 SOL > 0.001 SOL threshold
    expected = [wallets[0], wallets[2], wallets[3]]
    assert [e.address for e in result.eligible] == [w.address for w in expected]
    assert [e.empty_accounts for e in result.eligible] == [2, 1, 5]
    assert [e.secret for e in result.eligible] == [w.secret for w in expected]
    assert result.stats.claimable_lamports == 8 * 2_039_280
    assert result.stats.successful == 3
    assert sleeper.calls == [1.0, 1.0, 1.0]
    assert chain.sent == []


def test_threshold_is_strict(chain, sleeper):
    settings = Settings(
        rpc_url="http://rpc.test", min_claimable_sol=Decimal("0.00407856")
    )
    wallets = [make_wallet(0), make_wallet(1)]
    seed(chain, wallets, [2, 3])

    result = Checker(chain, settings, sleep=sleeper).check_all(wallets)

    assert [e.address for e in result.eligible] == [wallets[1].address]


def test_wallet_errors_are_counted_and_skipped(chain, settings, sleeper):
    wallets = [make_wallet(i) for i in range(3)]
    seed(chain, wallets, [1, 1, 1])
    chain.broken_wallets.add(wallets[1].address)

    result = Checker(chain, settings, sleep=sleeper).check_all(wallets)

    expected = [wallets[0].address, wallets[2].address]
    assert [e.address for e in result.eligible] == expected
    assert result.stats.failed == 1


def test_repeated_checks_write_identical_files(chain, settings, sleeper, tmp_path):
    wallets = [make_wallet(i) for i in range(5)]
    seed(chain, wallets, [3, 0, 2, 1, 0])
    checker = Checker(chain, settings, sleep=sleeper)
    outputs = []

    for run in range(2):
        keys = tmp_path / f"keys{run}.txt"
        addresses = tmp_path / f"addresses{run}.txt"
        eligible = checker.check_all(wallets).eligible
        write_eligible_files(eligible, str(keys), str(addresses))
        outputs.append(
            (
                keys.read_text(encoding="utf-8"),
                addresses.read_text(encoding="utf-8"),
            )
        )

    assert outputs[0] == outputs[1]
    keys_lines, address_lines = outputs[0][0].splitlines(), outputs[0][1].splitlines()
    assert len(keys_lines) == len(address_lines) == 3
    by_address = {w.address: w.secret for w in wallets}
    assert [by_address[a] for a in address_lines] == keys_lines
