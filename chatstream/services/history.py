from typing import Iterator, List, Tuple

from chatstream.schemas import ASSISTANT, USER, Turn


class ConversationHistory:
    """
    Ordered log of completed turns for one client.
    Only whole turns (user then assistant) are ever appended.
    """

    def __init__(self) -> None:
        self._turns: List[Turn] = []

    def record(self, prompt: str, reply: str) -> None:
        self._turns.append(Turn(role=USER, content=prompt))
        self._turns.append(Turn(role=ASSISTANT, content=reply))

    def snapshot(self) -> Tuple[Turn, ...]:
        return tuple(self._turns)

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self.snapshot())
