from __future__ import annotations

from typing import Iterable, Iterator, List, Tuple

from stackcrew.schemas.messages import Message


class Transcript:
    """Append-only conversation log shared by the orchestrator and every worker."""

    def __init__(self, initial: Iterable[Message] = ()) -> None:
        self._turns: List[Message] = list(initial)

    @classmethod
    def from_request(cls, request: str) -> Transcript:
        return cls([Message.user(request)])

    def append(self, message: Message) -> None:
        self._turns.append(message)

    def extend(self, messages: Iterable[Message]) -> None:
        for message in messages:
            self.append(message)

    def last(self, k: int = 1) -> List[Message]:
        if k <= 0:
            return []
        return self._turns[-k:]

    def all(self) -> Tuple[Message, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._turns))
