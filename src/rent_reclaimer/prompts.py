from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Protocol

from .errors import ValidationError

AFFIRMATIVE = ("y", "yes")


class Prompter(Protocol):
    def ask(self, question: str) -> str: ...

    def confirm(self, question: str) -> bool: ...


class ConsolePrompter:
    """Blocks the process on one line of stdin per question."""

    def ask(self, question: str) -> str:
        return input(question)

    def confirm(self, question: str) -> bool:
        return is_affirmative(self.ask(question))


class AutoConfirm:
    """Answers yes to every confirmation (`--yes`)."""

    def ask(self, question: str) -> str:
        raise ValidationError(f"No interactive input available for: {question.strip()}")

    def confirm(self, question: str) -> bool:
        return True


def is_affirmative(answer: str) -> bool:
    return answer.strip().lower() in AFFIRMATIVE


def parse_sol_amount(text: str) -> Decimal:
    try:
        amount = Decimal(text.strip())
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {text.strip()!r}")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"Amount must be a positive number, got {text.strip()!r}")
    return amount
