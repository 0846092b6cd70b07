"""
src/context/history.py

In-memory conversation history owned by one orchestrator.
Grows by appending; the only way to shrink it is clear().
"""


from typing import Iterator, List, Optional

from orchestrator.models import Turn


class ConversationHistory:

    def __init__(self) -> None:

        self._turns: List[Turn] = []

    def append(self, turn: Turn) -> None:

        if not isinstance(turn, Turn):
            raise TypeError(f"Unsupported turn type: {type(turn)!r}")

        self._turns.append(turn)

    def clear(self) -> None:
        """Drop every turn. Clearing an empty history is a no-op."""

        self._turns.clear()

    @property
    def messages(self) -> List[Turn]:
        """Return a shallow copy of the recorded turns."""

        return list(self._turns)

    @property
    def last(self) -> Optional[Turn]:

        return self._turns[-1] if self._turns else None

    def __len__(self) -> int:

        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:

        return iter(list(self._turns))
