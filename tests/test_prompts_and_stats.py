from __future__ import annotations

from decimal import Decimal

import pytest

from rent_reclaimer.errors import ValidationError
from rent_reclaimer.pacing import paced
from rent_reclaimer.prompts import ConsolePrompter, is_affirmative, parse_sol_amount
from rent_reclaimer.stats import RunStats


@pytest.mark.parametrize(
    "answer,expected",
    [
        ("y", True),
        ("YES", True),
        (" yes\n", True),
        ("n", False),
        ("", False),
        ("yep", False),
    ],
)
def test_is_affirmative(answer, expected):
    assert is_affirmative(answer) is expected


def test_console_prompter(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "Y")
    assert ConsolePrompter().confirm("Continue? ")


def test_parse_sol_amount():
    assert parse_sol_amount(" 0.001 ") == Decimal("0.001")
    for bad in ["", "abc", "0", "-1", "nan", "inf"]:
        with pytest.raises(ValidationError):
            parse_sol_amount(bad)


def test_paced_sleeps_between_items_only():
    calls = []
    items = list(paced(["a", "b", "c"], 0.5, calls.append))
    assert items == [(0, "a"), (1, "b"), (2, "c")]
    assert calls == [0.5, 0.5]


def test_paced_zero_delay_never_sleeps():
    calls = []
    list(paced([1, 2], 0, calls.append))
    assert calls == []


def test_stats_render():
    stats = RunStats(mode="claim", total=3)
    stats.record_success()
    stats.record_failure()
    stats.record_neutral()
    stats.total_closed = 4
    stats.recovered_lamports = 4 * 2_039_280

    text = stats.render()

    assert "Processed        : 3/3" in text
    assert "Successful       : 1" in text
    assert "Failed           : 1" in text
    assert "Recovered        : 0.008157 SOL" in text


def test_stats_render_unknown_mode():
    with pytest.raises(ValueError):
        RunStats(mode="mint").render()
