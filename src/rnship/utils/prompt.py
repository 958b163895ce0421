from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

_YES = frozenset({"y", "yes"})
_VALID = _YES | {"n", "no"}


@runtime_checkable
class Confirmer(Protocol):
    """Answers a yes/no question. ``True`` means the user agreed."""

    async def confirm(self, message: str) -> bool: ...


class ConsoleConfirmer:
    """Asks on stdin until the answer is one of yes/no/y/n (default: no)."""

    async def confirm(self, message: str) -> bool:
        return await asyncio.to_thread(self._ask, message)

    @staticmethod
    def _ask(message: str) -> bool:
        while True:
            try:
                answer = input(f"{message} ").strip().lower()
            except EOFError:
                return False
            if not answer:
                return False
            if answer in _VALID:
                return answer in _YES
            print("Type yes/no")


class StaticConfirmer:
    """Always gives the same answer; used for scripted runs and tests."""

    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.questions: list[str] = []

    async def confirm(self, message: str) -> bool:
        self.questions.append(message)
        return self.answer
